"""
Reward claims.
Pays earned bounty (the reward distribution totals) out to the user's wallet.

Claims:
    {
        "claim_id": "claim_ab12cd34ef56",
        "user_address": "0x...",
        "amount": "94",
        "type": "task" | "invite",
        "task_id": "task_ab12cd34ef56",
        "bounty_id": "3",
        "contract_request_id": "12",
        "status": "pending" | "executed" | "failed",
        "transaction_hash": "0x...",
        "execute_transaction_hash": "0x...",
        "related_tasks": [{"task_id": "...", "amount": "94", "type": "task"}],
        "created_at": "2026-10-19T08:00:00+00:00",
        "updated_at": "2026-10-19T08:00:00+00:00"
    }

Pending and executed claims both hold bounty; a failed claim releases it.
"""

import uuid
import logging
from datetime import timezone
from decimal import InvalidOperation

from ledger_errors import ClaimError, ClaimExceedsBounty
from reward_aggregator import aggregate_decimal, format_amount, to_decimal, ZERO

logger = logging.getLogger(__name__)

# === Configuration ===
VALID_CLAIM_TYPES = ['task', 'invite']
NEW_CLAIM_STATUSES = ['pending', 'executed']
HOLDING_STATUSES = ('pending', 'executed')
SETTLED_STATUSES = ['executed', 'failed']


def generate_claim_id():
    return f"claim_{uuid.uuid4().hex[:12]}"


def claimed_total(address, claims):
    return sum(
        (to_decimal(c.get("amount")) for c in claims
         if c.get("user_address") == address and c.get("status") in HOLDING_STATUSES),
        ZERO,
    )


def bounty_balance_decimal(address, records, claims):
    earned = aggregate_decimal(address, records)["total_bounty"]
    claimed = claimed_total(address, claims)
    return {
        "total_bounty": earned,
        "claimed": claimed,
        "claimable": earned - claimed,
    }


def bounty_balance(address, records, claims):
    """Earned, claimed and still claimable bounty, two decimals."""
    return {name: format_amount(value) for name, value in bounty_balance_decimal(address, records, claims).items()}


def build_claim(address, records, claims, raw_amount, task_id, now, claim_type="task",
                status="executed", bounty_id=None, contract_request_id=None,
                transaction_hash=None, execute_transaction_hash=None, related_tasks=None):
    """
    Validate and build a claim against address's unclaimed bounty.
    records are the distribution records naming address; claims its earlier claims.
    """
    if not task_id:
        raise ClaimError("task_id required")
    if claim_type not in VALID_CLAIM_TYPES:
        raise ClaimError(f"invalid type. Valid: {', '.join(VALID_CLAIM_TYPES)}")
    if status not in NEW_CLAIM_STATUSES:
        raise ClaimError(f"invalid status. Valid: {', '.join(NEW_CLAIM_STATUSES)}")
    if isinstance(raw_amount, bool):
        raise ClaimError("amount required")
    try:
        amount = to_decimal(raw_amount)
    except (InvalidOperation, ValueError):
        raise ClaimError(f"invalid amount: {raw_amount}")
    if not amount.is_finite() or amount <= 0:
        raise ClaimError("amount must be > 0")

    claimable = bounty_balance_decimal(address, records, claims)["claimable"]
    if amount > claimable:
        raise ClaimExceedsBounty(requested=amount, claimable=format_amount(claimable))

    if not isinstance(related_tasks, list) or not related_tasks:
        related_tasks = [{"task_id": task_id, "amount": str(amount), "type": claim_type}]

    stamp = now.astimezone(timezone.utc).isoformat()
    return {
        "claim_id": generate_claim_id(),
        "user_address": address,
        "amount": str(amount),
        "type": claim_type,
        "task_id": task_id,
        "bounty_id": bounty_id,
        "contract_request_id": contract_request_id,
        "status": status,
        "transaction_hash": transaction_hash,
        "execute_transaction_hash": execute_transaction_hash,
        "related_tasks": related_tasks,
        "created_at": stamp,
        "updated_at": stamp,
    }


def settle_claim(claim, status, execute_transaction_hash, now):
    """Resolve a pending claim. Returns the updated copy."""
    if claim.get("status") != "pending":
        raise ClaimError(f"claim is {claim.get('status')}, not pending")
    if status not in SETTLED_STATUSES:
        raise ClaimError(f"invalid status. Valid: {', '.join(SETTLED_STATUSES)}")
    if status == "executed" and not execute_transaction_hash:
        raise ClaimError("execute_transaction_hash required")

    updated = dict(claim)
    updated["status"] = status
    updated["execute_transaction_hash"] = execute_transaction_hash or claim.get("execute_transaction_hash")
    updated["updated_at"] = now.astimezone(timezone.utc).isoformat()
    logger.info("claim settled | claim=%s address=%.42s amount=%s status=%s",
                claim.get("claim_id"), claim.get("user_address"), claim.get("amount"), status)
    return updated
