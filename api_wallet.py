"""
Deposits & Withdrawals API

Endpoints:
    POST   /api/v1/transactions                             — Record a deposit or withdrawal request
    GET    /api/v1/transactions?address=<wallet>            — Latest 50 transactions
    GET    /api/v1/balance/<address>                        — Balance summary
    GET    /api/v1/admin/withdrawals?status=pending         — Withdrawal queue (admin)
    POST   /api/v1/admin/withdrawals/<tx_id>/execute        — Mark withdrawal executed (admin)

Withdrawal lifecycle: PENDING → EXECUTED (once the chain transfer is confirmed)
Admin routes require: Authorization: Bearer <ADMIN_PASSWORD>
"""

import os
import hmac
import logging
import functools
from datetime import datetime, timezone
from flask import Blueprint, request, jsonify

import ledger_store
import notifications
from ledger_errors import TransactionError
from wallet_ledger import build_transaction, compute_balance, execute_withdrawal
from wallets import normalize_address, short_wallet

logger = logging.getLogger(__name__)

wallet_bp = Blueprint('wallet', __name__)

TRANSACTION_LIST_LIMIT = 50


def admin_required(f):
    """Require the admin password as a bearer token."""
    @functools.wraps(f)
    def decorated_function(*args, **kwargs):
        admin_pass = os.environ.get('ADMIN_PASSWORD', '')
        auth_header = request.headers.get('Authorization', '')
        if not admin_pass or not hmac.compare_digest(auth_header, f'Bearer {admin_pass}'):
            return jsonify({"success": False, "error": "unauthorized"}), 401
        return f(*args, **kwargs)
    return decorated_function


def _user_transactions(transactions, address):
    return [t for t in transactions if t.get("user_address") == address]


@wallet_bp.route('/api/v1/transactions', methods=['POST'])
def create_transaction():
    """
    Record a deposit (completed on receipt) or a withdrawal request (pending).

    Request:
        {
            "user_address": "0x...",
            "amount": "25.50",
            "type": "deposit" | "withdraw",
            "contract_request_id": "12"    (withdrawals)
        }
    """
    body = request.get_json(silent=True) or {}
    user_address, error = normalize_address(body.get('user_address'))
    tx_type = (body.get('type') or '').strip().lower()

    if error:
        return jsonify({"success": False, "error": error}), 400

    with ledger_store.store_lock:
        transactions = ledger_store.load_transactions()
        try:
            tx = build_transaction(
                _user_transactions(transactions, user_address),
                user_address,
                body.get('amount'),
                tx_type,
                datetime.now(timezone.utc),
                contract_request_id=body.get('contract_request_id'),
            )
        except TransactionError as e:
            return jsonify(e.to_dict()), 400
        transactions.append(tx)
        ledger_store.save_transactions(transactions)

    logger.info("transaction recorded | tx=%s type=%s amount=%s address=%.42s",
                tx["tx_id"], tx_type, tx["amount"], user_address)

    if tx_type == "withdraw":
        notifications.notify_discord(
            "💸 Withdrawal Requested",
            f"{short_wallet(user_address)} requested {tx['amount']}",
            color=0xFFA500,
            fields={"TX ID": tx["tx_id"], "Contract Request": tx.get("contract_request_id") or "-"}
        )

    return jsonify({"success": True, "transaction": tx}), 201


@wallet_bp.route('/api/v1/transactions', methods=['GET'])
def list_transactions():
    address, error = normalize_address(request.args.get('address'))
    if error:
        return jsonify({"success": False, "error": error}), 400

    txs = _user_transactions(ledger_store.load_transactions(), address)
    txs.sort(key=lambda t: t.get("date", ""), reverse=True)

    return jsonify({
        "success": True,
        "transactions": [
            {
                "tx_id": t.get("tx_id"),
                "type": t.get("type"),
                "amount": t.get("amount"),
                "date": (t.get("date") or "")[:10],
                "status": t.get("status"),
            }
            for t in txs[:TRANSACTION_LIST_LIMIT]
        ]
    })


@wallet_bp.route('/api/v1/balance/<address>', methods=['GET'])
def get_balance(address):
    """Deposits, withdrawals and available balance, six decimals."""
    address, error = normalize_address(address)
    if error:
        return jsonify({"success": False, "error": error}), 400
    txs = _user_transactions(ledger_store.load_transactions(), address)
    return jsonify({"success": True, "address": address, **compute_balance(txs)})


@wallet_bp.route('/api/v1/admin/withdrawals', methods=['GET'])
@admin_required
def list_withdrawals():
    status = (request.args.get('status') or 'pending').strip().lower()
    withdrawals = [
        t for t in ledger_store.load_transactions()
        if t.get("type") == "withdraw" and (status == "all" or t.get("status") == status)
    ]
    withdrawals.sort(key=lambda t: t.get("date", ""))
    return jsonify({"success": True, "withdrawals": withdrawals, "total": len(withdrawals)})


@wallet_bp.route('/api/v1/admin/withdrawals/<tx_id>/execute', methods=['POST'])
@admin_required
def execute_withdrawal_request(tx_id):
    """
    Mark a pending withdrawal executed after the on-chain transfer.

    Request:
        {"execute_tx_hash": "0x..."}
    """
    body = request.get_json(silent=True) or {}
    execute_tx_hash = (body.get('execute_tx_hash') or '').strip()

    with ledger_store.store_lock:
        transactions = ledger_store.load_transactions()
        index = next((i for i, t in enumerate(transactions) if t.get("tx_id") == tx_id), None)
        if index is None:
            return jsonify({"success": False, "error": "transaction not found"}), 404
        try:
            updated = execute_withdrawal(transactions[index], execute_tx_hash, datetime.now(timezone.utc))
        except TransactionError as e:
            return jsonify(e.to_dict()), 409
        transactions[index] = updated
        ledger_store.save_transactions(transactions)

    return jsonify({"success": True, "transaction": updated})
