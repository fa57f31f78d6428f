"""
Rewards & Referrals API

Endpoints:
    GET    /api/v1/rewards/<address>                   — Reward totals by category
    GET    /api/v1/bounty/<address>                    — Earned, claimed and claimable bounty
    POST   /api/v1/claims                              — Record a bounty claim
    GET    /api/v1/claims?address=<wallet>&status=     — Claim history, newest first
    POST   /api/v1/admin/claims/<claim_id>/settle      — Resolve a pending claim (admin)
    POST   /api/v1/invites                             — Register inviter → invitee
    GET    /api/v1/invites?invitee=<wallet>            — Has this wallet been invited?
    GET    /api/v1/invites?inviter=<wallet>            — Two-level invite tree

Claim lifecycle: PENDING → EXECUTED | FAILED (failed claims release their bounty)
"""

import logging
from datetime import datetime, timezone
from flask import Blueprint, request, jsonify

import ledger_store
from api_wallet import admin_required
from ledger_errors import InviteError, ClaimError
from referrals import register_invite, find_inviter, invite_tree
from reward_aggregator import aggregate
from reward_claims import build_claim, bounty_balance, settle_claim
from wallets import normalize_address

logger = logging.getLogger(__name__)

rewards_bp = Blueprint('rewards', __name__)


def _user_claims(claims, address):
    return [c for c in claims if c.get("user_address") == address]


@rewards_bp.route('/api/v1/rewards/<address>', methods=['GET'])
def get_rewards(address):
    """
    Reward totals for a wallet.

    Query params:
        include_records — "true" to include the matching distribution records
    """
    address, error = normalize_address(address)
    if error:
        return jsonify({"success": False, "error": error}), 400

    records = ledger_store.find_distributions(address)
    totals = aggregate(address, records)

    payload = {
        "success": True,
        "address": address,
        "record_count": len(records),
        **totals
    }
    if (request.args.get('include_records') or '').lower() == 'true':
        payload["distributions"] = records
    return jsonify(payload)


@rewards_bp.route('/api/v1/bounty/<address>', methods=['GET'])
def get_bounty(address):
    address, error = normalize_address(address)
    if error:
        return jsonify({"success": False, "error": error}), 400

    balance = bounty_balance(address, ledger_store.find_distributions(address),
                             _user_claims(ledger_store.load_claims(), address))
    return jsonify({"success": True, "address": address, **balance})


@rewards_bp.route('/api/v1/claims', methods=['POST'])
def create_claim():
    """
    Claim earned bounty. The amount may not exceed what is still unclaimed.

    Request:
        {
            "user_address": "0x...",
            "amount": "94",
            "task_id": "task_ab12cd34ef56",
            "type": "task" | "invite",            (default task)
            "status": "pending" | "executed",     (default executed)
            "bounty_id": "3",                     (optional)
            "contract_request_id": "12",          (optional)
            "transaction_hash": "0x...",          (optional)
            "execute_transaction_hash": "0x...",  (optional)
            "related_tasks": [...]                (optional)
        }
    """
    body = request.get_json(silent=True) or {}
    address, error = normalize_address(body.get('user_address'))
    if error:
        return jsonify({"success": False, "error": error}), 400

    with ledger_store.store_lock:
        claims = ledger_store.load_claims()
        try:
            claim = build_claim(
                address,
                ledger_store.find_distributions(address),
                _user_claims(claims, address),
                body.get('amount'),
                (body.get('task_id') or '').strip(),
                datetime.now(timezone.utc),
                claim_type=(body.get('type') or 'task').strip().lower(),
                status=(body.get('status') or 'executed').strip().lower(),
                bounty_id=body.get('bounty_id'),
                contract_request_id=body.get('contract_request_id'),
                transaction_hash=body.get('transaction_hash'),
                execute_transaction_hash=body.get('execute_transaction_hash'),
                related_tasks=body.get('related_tasks'),
            )
        except ClaimError as e:
            logger.info("claim rejected | address=%.42s code=%s", address, e.code)
            return jsonify(e.to_dict()), 400
        claims.append(claim)
        ledger_store.save_claims(claims)

    logger.info("claim recorded | claim=%s address=%.42s amount=%s status=%s",
                claim["claim_id"], address, claim["amount"], claim["status"])
    return jsonify({"success": True, "claim": claim}), 201


@rewards_bp.route('/api/v1/claims', methods=['GET'])
def list_claims():
    raw_address = request.args.get('address')
    status = (request.args.get('status') or '').strip().lower()

    claims = ledger_store.load_claims()
    if raw_address:
        address, error = normalize_address(raw_address)
        if error:
            return jsonify({"success": False, "error": error}), 400
        claims = _user_claims(claims, address)
    if status:
        claims = [c for c in claims if c.get("status") == status]

    claims.sort(key=lambda c: c.get("created_at", ""), reverse=True)
    return jsonify({"success": True, "claims": claims, "total": len(claims)})


@rewards_bp.route('/api/v1/admin/claims/<claim_id>/settle', methods=['POST'])
@admin_required
def settle_claim_request(claim_id):
    """
    Resolve a pending claim once the chain transfer is confirmed or has failed.

    Request:
        {"status": "executed" | "failed", "execute_transaction_hash": "0x..."}
    """
    body = request.get_json(silent=True) or {}
    status = (body.get('status') or '').strip().lower()
    execute_hash = (body.get('execute_transaction_hash') or '').strip() or None

    with ledger_store.store_lock:
        claims = ledger_store.load_claims()
        index = next((i for i, c in enumerate(claims) if c.get("claim_id") == claim_id), None)
        if index is None:
            return jsonify({"success": False, "error": "claim not found"}), 404
        try:
            updated = settle_claim(claims[index], status, execute_hash, datetime.now(timezone.utc))
        except ClaimError as e:
            return jsonify(e.to_dict()), 409
        claims[index] = updated
        ledger_store.save_claims(claims)

    return jsonify({"success": True, "claim": updated})


@rewards_bp.route('/api/v1/invites', methods=['POST'])
def create_invite():
    """
    Register a referral.

    Request:
        {"inviter": "0xInviter...", "invitee": "0xInvitee..."}
    """
    body = request.get_json(silent=True) or {}

    wallets = {}
    for label in ("inviter", "invitee"):
        wallets[label], error = normalize_address(body.get(label))
        if error:
            return jsonify({"success": False, "error": f"{label}: {error}"}), 400
    inviter, invitee = wallets["inviter"], wallets["invitee"]

    with ledger_store.store_lock:
        invites = ledger_store.load_invites()
        try:
            invite = register_invite(invites, inviter, invitee, datetime.now(timezone.utc))
        except InviteError as e:
            return jsonify(e.to_dict()), 409
        invites.append(invite)
        ledger_store.save_invites(invites)

    logger.info("invite registered | inviter=%.42s invitee=%.42s", inviter, invitee)
    return jsonify({"success": True, "invite": invite}), 201


@rewards_bp.route('/api/v1/invites', methods=['GET'])
def get_invites():
    invitee = request.args.get('invitee')
    inviter = request.args.get('inviter')
    invites = ledger_store.load_invites()

    if invitee:
        invitee, error = normalize_address(invitee)
        if error:
            return jsonify({"success": False, "error": error}), 400
        existing = find_inviter(invites, invitee)
        if existing:
            return jsonify({"success": True, "status": "invited", "inviter": existing})
        return jsonify({"success": True, "status": "not_invited"})

    if inviter:
        inviter, error = normalize_address(inviter)
        if error:
            return jsonify({"success": False, "error": error}), 400
        return jsonify({"success": True, "inviter": inviter, "invites": invite_tree(invites, inviter)})

    return jsonify({"success": False, "error": "inviter or invitee required"}), 400
