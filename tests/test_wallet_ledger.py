from datetime import datetime, timezone

import pytest

from ledger_errors import InsufficientBalance, TransactionError
from wallet_ledger import build_transaction, compute_balance, execute_withdrawal

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
USER = "UserWallet"


def tx(tx_type, amount, status):
    return {"user_address": USER, "type": tx_type, "amount": amount, "status": status}


def test_balance_summary():
    history = [
        tx("deposit", "100.1", "completed"),
        tx("deposit", "0.2", "completed"),
        tx("withdraw", "30", "executed"),
        tx("withdraw", "20.05", "pending"),
    ]
    assert compute_balance(history) == {
        "total_deposits": "100.300000",
        "pending_withdrawals_total": "20.050000",
        "executed_withdrawals_total": "30.000000",
        "platform_balance": "70.300000",
        "available_balance": "50.250000",
    }


def test_empty_balance():
    assert compute_balance([])["available_balance"] == "0.000000"


def test_deposit_is_completed_immediately():
    new = build_transaction([], USER, "12.5", "deposit", NOW, contract_request_id="9")
    assert new["status"] == "completed"
    assert new["amount"] == "12.5"
    assert new["contract_request_id"] is None
    assert new["tx_id"].startswith("tx_")


def test_withdrawal_is_pending():
    history = [tx("deposit", "50", "completed")]
    new = build_transaction(history, USER, 20, "withdraw", NOW, contract_request_id="3")
    assert new["status"] == "pending"
    assert new["contract_request_id"] == "3"


def test_withdrawal_over_available_balance_rejected():
    history = [tx("deposit", "50", "completed"), tx("withdraw", "40", "pending")]
    with pytest.raises(InsufficientBalance):
        build_transaction(history, USER, "10.01", "withdraw", NOW)


@pytest.mark.parametrize("amount", [None, "abc", "-1", 0, "NaN", True])
def test_invalid_amounts_rejected(amount):
    with pytest.raises(TransactionError):
        build_transaction([], USER, amount, "deposit", NOW)


def test_invalid_type_rejected():
    with pytest.raises(TransactionError):
        build_transaction([], USER, "1", "transfer", NOW)


def test_execute_withdrawal():
    pending = build_transaction([tx("deposit", "5", "completed")], USER, "5", "withdraw", NOW)
    done = execute_withdrawal(pending, "0xfeed", NOW)
    assert done["status"] == "executed"
    assert done["execute_tx_hash"] == "0xfeed"
    assert pending["status"] == "pending"
    with pytest.raises(TransactionError):
        execute_withdrawal(done, "0xfeed", NOW)


def test_execute_requires_hash():
    pending = build_transaction([tx("deposit", "5", "completed")], USER, "5", "withdraw", NOW)
    with pytest.raises(TransactionError):
        execute_withdrawal(pending, "", NOW)
