"""
Discord webhook alerts for marketplace events (level-ups, approvals, withdrawals).
Best effort: a failed webhook is logged and never fails the request.
"""

import os
import logging
from datetime import datetime, timezone

import requests

logger = logging.getLogger(__name__)

DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL", "")
DISCORD_USERNAME = "TaskCube"


def notify_discord(title, description, color=0x00FF00, fields=None):
    """Send a Discord embed. Returns True if the webhook accepted it."""
    webhook_url = DISCORD_WEBHOOK_URL
    if not webhook_url:
        return False

    embed = {
        "title": title,
        "description": description,
        "color": color,
        "footer": {"text": "TaskCube"},
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    if fields:
        embed["fields"] = [{"name": k, "value": str(v), "inline": True} for k, v in fields.items()]

    try:
        resp = requests.post(webhook_url, json={"username": DISCORD_USERNAME, "embeds": [embed]}, timeout=10)
    except requests.RequestException as e:
        logger.warning("discord notify failed | title=%s error=%s", title, e)
        return False

    if resp.status_code >= 300:
        logger.warning("discord notify rejected | title=%s status=%d", title, resp.status_code)
        return False
    return True
