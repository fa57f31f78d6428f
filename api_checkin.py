"""
Daily Check-in API
Streak tracking with level-gated make-up check-ins.

Endpoints:
    GET    /api/v1/checkin?address=<wallet>    — Check-in status
    POST   /api/v1/checkin                     — Daily check-in
    POST   /api/v1/checkin/makeup              — Make-up check-in (Operative and above)
    GET    /api/v1/users/<address>/level       — Current level

Levels: Initiate (0) → Operative (25) → Enforcer (50) → Vanguard (75) → Prime (100)
"""

import logging
from datetime import datetime, timezone
from flask import Blueprint, request, jsonify

import ledger_store
import notifications
from checkin_tracker import (
    check_in, make_up_check_in, check_in_status, level_for_days, level_rank, makeup_days_allowed,
)
from ledger_errors import LedgerError
from wallets import normalize_address, short_wallet

logger = logging.getLogger(__name__)

checkin_bp = Blueprint('checkin', __name__)


def _utcnow():
    return datetime.now(timezone.utc)


def _address_from_request():
    if request.method == 'GET':
        address = request.args.get('address', '')
    else:
        address = (request.get_json(silent=True) or {}).get('address') or ''
    return normalize_address(address)


def _store_new_state(address, previous, new_state):
    """Conditional write; (response, status) on conflict, else None."""
    expected = previous.get("last_check_in") if previous else None
    if not ledger_store.update_user_state(address, expected, new_state):
        return jsonify({"success": False, "error": "check-in already in progress, retry"}), 409
    return None


def _announce_level_up(address, previous, new_state):
    old_level = level_for_days(int(previous.get("consecutive_days") or 0)) if previous else None
    if old_level and level_rank(new_state["level"]) > level_rank(old_level):
        logger.info("level up | address=%.42s %s -> %s", address, old_level, new_state["level"])
        notifications.notify_discord(
            "⬆️ Level Up",
            f"{short_wallet(address)} reached **{new_state['level']}**",
            color=0xFFD700,
            fields={"Streak": f"{new_state['consecutive_days']} days"}
        )


@checkin_bp.route('/api/v1/checkin', methods=['GET'])
def get_checkin_status():
    """Current streak, level and whether a check-in or make-up is possible now."""
    address, error = _address_from_request()
    if error:
        return jsonify({"success": False, "error": error}), 400

    state = ledger_store.find_user(address)
    return jsonify({
        "success": True,
        "address": address,
        **check_in_status(state, _utcnow())
    })


@checkin_bp.route('/api/v1/checkin', methods=['POST'])
def post_checkin():
    """
    Daily check-in.

    Request:
        {"address": "0x..."}
    """
    address, error = _address_from_request()
    if error:
        return jsonify({"success": False, "error": error}), 400

    previous = ledger_store.find_user(address)
    try:
        new_state = check_in(address, previous, _utcnow())
    except LedgerError as e:
        return jsonify(e.to_dict()), 400

    conflict = _store_new_state(address, previous, new_state)
    if conflict:
        return conflict

    logger.info("checked in | address=%.42s days=%d level=%s",
                address, new_state["consecutive_days"], new_state["level"])
    _announce_level_up(address, previous, new_state)

    return jsonify({
        "success": True,
        "consecutive_days": new_state["consecutive_days"],
        "level": new_state["level"],
        "last_check_in": new_state["last_check_in"],
    })


@checkin_bp.route('/api/v1/checkin/makeup', methods=['POST'])
def post_makeup():
    """
    Make-up check-in. Credits the whole missed gap when it fits the level's allowance.

    Request:
        {"address": "0x..."}
    """
    address, error = _address_from_request()
    if error:
        return jsonify({"success": False, "error": error}), 400

    previous = ledger_store.find_user(address)
    if previous is None:
        return jsonify({"success": False, "error": "User not found"}), 404

    try:
        new_state = make_up_check_in(previous, _utcnow())
    except LedgerError as e:
        logger.info("make-up rejected | address=%.42s code=%s", address, e.code)
        return jsonify(e.to_dict()), 400

    conflict = _store_new_state(address, previous, new_state)
    if conflict:
        return conflict

    credited = new_state["consecutive_days"] - int(previous.get("consecutive_days") or 0)
    logger.info("made up | address=%.42s credited=%d days=%d level=%s",
                address, credited, new_state["consecutive_days"], new_state["level"])
    _announce_level_up(address, previous, new_state)

    return jsonify({
        "success": True,
        "consecutive_days": new_state["consecutive_days"],
        "credited_days": credited,
        "level": new_state["level"],
        "last_check_in": new_state["last_check_in"],
    })


@checkin_bp.route('/api/v1/users/<address>/level', methods=['GET'])
def get_user_level(address):
    """Level derived from the stored streak."""
    address, error = normalize_address(address)
    if error:
        return jsonify({"success": False, "error": error}), 400

    state = ledger_store.find_user(address)
    if not state:
        return jsonify({"success": False, "error": "User level not found"}), 404

    level = level_for_days(int(state.get("consecutive_days") or 0))
    return jsonify({
        "success": True,
        "address": address,
        "level": level,
        "consecutive_days": int(state.get("consecutive_days") or 0),
        "makeup_days_allowed": makeup_days_allowed(level),
    })
