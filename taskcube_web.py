"""
TaskCube Web API v1.0.0
Task marketplace backend: daily check-ins, task rewards with two-level
referrals, deposits and withdrawals.

Blueprints:
- api_checkin  — streaks, levels, make-up check-ins
- api_rewards  — reward totals, bounty claims, invites
- api_tasks    — publish / join / submit / review tasks
- api_wallet   — deposits, withdrawals, balances
"""

import os
import logging

from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from api_checkin import checkin_bp
from api_rewards import rewards_bp
from api_tasks import tasks_bp
from api_wallet import wallet_bp

VERSION = "1.0.0"

app = Flask(__name__)
app.secret_key = os.getenv("SECRET_KEY", "taskcube-dev-key-change-in-prod")

# =============================================================================
# LOGGING
# =============================================================================
# Modules log via logging.getLogger(__name__); one handler on the root logger
_root_logger = logging.getLogger()
_root_logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
if not _root_logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S"
    ))
    _root_logger.addHandler(_handler)

logger = logging.getLogger("taskcube")

# CORS - front-end origins
CORS(app, origins=[
    o.strip() for o in os.getenv(
        "CORS_ORIGINS", "https://taskcube.xyz,http://localhost:3000"
    ).split(",") if o.strip()
])

# =============================================================================
# RATE LIMITING (Flask-Limiter)
# =============================================================================
app.config["RATELIMIT_ENABLED"] = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"

limiter = Limiter(
    app=app,
    key_func=get_remote_address,
    default_limits=["1000 per hour", "100 per minute"],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    strategy="fixed-window",
    headers_enabled=True,
)


@app.errorhandler(429)
def ratelimit_handler(e):
    logger.warning("rate limit exceeded | ip=%s path=%s", request.remote_addr, request.path)
    return jsonify({
        "success": False,
        "error": "Rate limit exceeded",
        "message": "Too many requests. Please slow down and try again later.",
        "retry_after": e.description if hasattr(e, "description") else "60 seconds"
    }), 429


@app.errorhandler(500)
def internal_error_handler(e):
    logger.error("internal error | path=%s error=%s", request.path, e)
    return jsonify({"success": False, "error": "Internal server error"}), 500


# =============================================================================
# REGISTER BLUEPRINTS
# =============================================================================
app.register_blueprint(checkin_bp)
app.register_blueprint(rewards_bp)
app.register_blueprint(tasks_bp)
app.register_blueprint(wallet_bp)

# Check-ins are once a day; cap hammering per client
limiter.limit("30 per minute")(checkin_bp)


@app.route('/health', methods=['GET'])
def health():
    return jsonify({"status": "ok", "version": VERSION})


if __name__ == '__main__':
    port = int(os.getenv("PORT", 5000))
    logger.info("TaskCube API v%s starting on port %d", VERSION, port)
    app.run(host='0.0.0.0', port=port)
