"""
Deposit / withdrawal ledger.

Transactions:
    {
        "tx_id": "tx_ab12cd34ef56",
        "user_address": "0x...",
        "amount": "25.5",
        "type": "deposit" | "withdraw",
        "status": "completed" | "pending" | "executed",
        "date": "2026-10-19T08:00:00+00:00",
        "contract_request_id": "7",          (withdrawals only)
        "execute_tx_hash": None,
        "executed_at": None
    }

Deposits are final when recorded. Withdrawals wait as pending until an admin
executes them on chain.
"""

import os
import uuid
import logging
from datetime import timezone
from decimal import Decimal, InvalidOperation

from ledger_errors import TransactionError, InsufficientBalance
from reward_aggregator import to_decimal, format_amount

logger = logging.getLogger(__name__)

# === Configuration ===
BALANCE_DECIMALS = int(os.getenv("PLATFORM_BALANCE_DECIMALS", "6"))
BALANCE_PLACES = Decimal(1).scaleb(-BALANCE_DECIMALS)
VALID_TX_TYPES = ['deposit', 'withdraw']
MAX_AMOUNT = Decimal("1000000000")


def generate_tx_id():
    return f"tx_{uuid.uuid4().hex[:12]}"


def parse_amount(raw):
    """Positive decimal amount from request input."""
    if isinstance(raw, bool) or raw is None:
        raise TransactionError("amount required")
    try:
        amount = to_decimal(raw)
    except (InvalidOperation, ValueError):
        raise TransactionError(f"invalid amount: {raw}")
    if not amount.is_finite() or amount <= 0:
        raise TransactionError("amount must be > 0")
    if amount > MAX_AMOUNT:
        raise TransactionError(f"amount must be <= {MAX_AMOUNT}")
    return amount


def _sum(transactions, tx_type, status):
    return sum(
        (to_decimal(t.get("amount")) for t in transactions
         if t.get("type") == tx_type and t.get("status") == status),
        Decimal("0"),
    )


def compute_balance_decimal(transactions):
    deposits = _sum(transactions, "deposit", "completed")
    pending = _sum(transactions, "withdraw", "pending")
    executed = _sum(transactions, "withdraw", "executed")
    platform = deposits - executed
    return {
        "total_deposits": deposits,
        "pending_withdrawals_total": pending,
        "executed_withdrawals_total": executed,
        "platform_balance": platform,
        "available_balance": platform - pending,
    }


def compute_balance(transactions):
    """Balance summary as fixed six-decimal strings."""
    return {
        name: format_amount(value, BALANCE_PLACES)
        for name, value in compute_balance_decimal(transactions).items()
    }


def build_transaction(transactions, user_address, raw_amount, tx_type, now, contract_request_id=None):
    """
    Validate and build a new transaction for user_address.
    transactions must be this user's existing history (used for the balance check).
    """
    if tx_type not in VALID_TX_TYPES:
        raise TransactionError(f"invalid type. Valid: {', '.join(VALID_TX_TYPES)}")
    amount = parse_amount(raw_amount)

    if tx_type == "withdraw":
        available = compute_balance_decimal(transactions)["available_balance"]
        if amount > available:
            raise InsufficientBalance(
                f"Withdrawal of {amount} exceeds available balance {format_amount(available, BALANCE_PLACES)}"
            )

    return {
        "tx_id": generate_tx_id(),
        "user_address": user_address,
        "amount": str(amount),
        "type": tx_type,
        "status": "pending" if tx_type == "withdraw" else "completed",
        "date": now.astimezone(timezone.utc).isoformat(),
        "contract_request_id": contract_request_id if tx_type == "withdraw" else None,
        "execute_tx_hash": None,
        "executed_at": None,
    }


def execute_withdrawal(tx, execute_tx_hash, now):
    """Mark a pending withdrawal as executed on chain. Returns the updated copy."""
    if tx.get("type") != "withdraw":
        raise TransactionError("only withdrawals can be executed")
    if tx.get("status") != "pending":
        raise TransactionError(f"withdrawal is {tx.get('status')}, not pending")
    if not execute_tx_hash:
        raise TransactionError("execute_tx_hash required")

    updated = dict(tx)
    updated["status"] = "executed"
    updated["execute_tx_hash"] = execute_tx_hash
    updated["executed_at"] = now.astimezone(timezone.utc).isoformat()
    logger.info("withdrawal executed | tx=%s address=%.42s amount=%s",
                tx.get("tx_id"), tx.get("user_address"), tx.get("amount"))
    return updated
