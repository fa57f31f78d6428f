"""
TaskCube Task Marketplace
Flask blueprint for publishing, joining and reviewing reward tasks.

Endpoints:
    POST   /api/v1/tasks                         — Publish a task
    GET    /api/v1/tasks                         — List tasks (filter by status, type, level)
    GET    /api/v1/tasks/stats                   — Marketplace statistics
    GET    /api/v1/tasks/<task_id>               — Task details
    POST   /api/v1/tasks/<task_id>/join          — Join a task (level-gated)
    POST   /api/v1/tasks/<task_id>/submit        — Submit work for review
    POST   /api/v1/tasks/<task_id>/review        — Creator approves/rejects → reward distribution
    GET    /api/v1/users/<address>/profile       — Published/accepted tasks, rewards, level

Task lifecycle: PUBLISHED → PENDING_APPROVAL → COMPLETED
                PENDING_APPROVAL → PUBLISHED (rejected, slots left)
Participant:    ACCEPTED → SUBMITTED → APPROVED | REJECTED → SUBMITTED (resubmit)
"""

import uuid
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from flask import Blueprint, request, jsonify

import ledger_store
import notifications
from checkin_tracker import LEVELS, level_for_days, level_rank, parse_timestamp
from referrals import resolve_inviter_chain, distribute_reward
from reward_aggregator import aggregate, to_decimal
from wallets import normalize_address, short_wallet

logger = logging.getLogger(__name__)

tasks_bp = Blueprint('tasks', __name__)

# === Configuration ===
MAX_REWARD = Decimal("1000000")
MAX_TASK_COUNT = 1000
VALID_TYPES = ['social', 'content', 'code', 'survey', 'community', 'other']
VALID_STATUSES = ['published', 'pending_approval', 'completed']
VALID_ACTIONS = ['approve', 'reject']

# Minimum reward a task must offer to target each level
MIN_REWARD_BY_LEVEL = {
    'Initiate': Decimal("0"),
    'Operative': Decimal("100"),
    'Enforcer': Decimal("300"),
    'Vanguard': Decimal("500"),
    'Prime': Decimal("1000"),
}


def _notify_discord(title, message, color=0x00FF00, fields=None):
    notifications.notify_discord(title, message, color, fields)


def generate_task_id():
    """Generate unique task ID."""
    return f"task_{uuid.uuid4().hex[:12]}"


def _user_level(address):
    state = ledger_store.find_user(address)
    return level_for_days(int(state.get("consecutive_days") or 0)) if state else LEVELS[0]


def _find_participant(task, address):
    for p in task.get("participants", []):
        if p.get("address") == address:
            return p
    return None


def _recompute_status(task):
    participants = task.get("participants", [])
    approved = sum(1 for p in participants if p.get("status") == "approved")
    if approved >= int(task.get("task_count") or 1):
        return "completed"
    if any(p.get("status") == "submitted" for p in participants):
        return "pending_approval"
    return "published"


def _task_summary(task_id, task):
    return {
        "task_id": task_id,
        "title": task.get("title"),
        "task_type": task.get("task_type"),
        "reward": task.get("reward"),
        "participation_type": task.get("participation_type"),
        "status": task.get("status"),
        "task_count": task.get("task_count"),
        "participant_count": len(task.get("participants", [])),
        "start_date": task.get("start_date"),
        "end_date": task.get("end_date"),
        "created_at": task.get("created_at"),
        "creator_wallet": short_wallet(task.get("creator_wallet")),
    }


# === API Endpoints ===

@tasks_bp.route('/api/v1/tasks', methods=['POST'])
def create_task():
    """
    Publish a new task.

    Request:
        {
            "title": "Follow us and retweet the launch post",
            "description": "...",
            "task_type": "social",
            "reward": "150",
            "participation_type": "Operative",
            "creator_wallet": "0xCreator...",
            "task_count": 10,
            "start_date": "2026-10-20T00:00:00+00:00",
            "end_date": "2026-10-27T00:00:00+00:00",
            "on_chain_task_id": "42"          (optional)
        }
    """
    body = request.get_json(silent=True) or {}

    title = (body.get('title') or '').strip()
    description = (body.get('description') or '').strip()
    task_type = (body.get('task_type') or 'other').strip().lower()
    participation_type = (body.get('participation_type') or 'Initiate').strip()
    wallet = body.get('creator_wallet')
    task_count = body.get('task_count', 1)

    # === Validation ===
    if not title or len(title) > 200:
        return jsonify({"success": False, "error": "title required (max 200 chars)"}), 400
    if not description or len(description) > 4000:
        return jsonify({"success": False, "error": "description required (max 4000 chars)"}), 400
    if task_type not in VALID_TYPES:
        return jsonify({"success": False, "error": f"invalid task_type. Valid: {', '.join(VALID_TYPES)}"}), 400
    if participation_type not in LEVELS:
        return jsonify({"success": False, "error": f"invalid participation_type. Valid: {', '.join(LEVELS)}"}), 400
    wallet, error = normalize_address(wallet)
    if error:
        return jsonify({"success": False, "error": error}), 400
    if isinstance(task_count, bool) or not isinstance(task_count, int) or not 1 <= task_count <= MAX_TASK_COUNT:
        return jsonify({"success": False, "error": f"task_count must be 1-{MAX_TASK_COUNT}"}), 400

    try:
        reward = to_decimal(body.get('reward'))
    except (InvalidOperation, ValueError):
        return jsonify({"success": False, "error": "invalid reward"}), 400
    min_reward = MIN_REWARD_BY_LEVEL[participation_type]
    if not reward.is_finite() or reward <= 0 or reward < min_reward:
        return jsonify({"success": False, "error": f"reward must be > 0 and >= {min_reward} for {participation_type} tasks"}), 400
    if reward > MAX_REWARD:
        return jsonify({"success": False, "error": f"reward must be <= {MAX_REWARD}"}), 400

    try:
        start = parse_timestamp(body.get('start_date'))
        end = parse_timestamp(body.get('end_date'))
    except (ValueError, TypeError):
        return jsonify({"success": False, "error": "start_date/end_date must be ISO-8601"}), 400
    if not start or not end:
        return jsonify({"success": False, "error": "start_date and end_date required"}), 400
    if end <= start:
        return jsonify({"success": False, "error": "end_date must be after start_date"}), 400

    # === Create Task ===
    task_id = generate_task_id()
    task = {
        "title": title,
        "description": description,
        "task_type": task_type,
        "reward": str(reward),
        "participation_type": participation_type,
        "creator_wallet": wallet,
        "task_count": task_count,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "on_chain_task_id": body.get('on_chain_task_id'),
        "twitter_account": (body.get('twitter_account') or '').strip(),
        "telegram_account": (body.get('telegram_account') or '').strip(),
        "participants": [],
        "status": "published",
        "created_at": datetime.now(timezone.utc).isoformat(),
    }

    with ledger_store.store_lock:
        data = ledger_store.load_tasks()
        data["tasks"][task_id] = task
        data["stats"]["total_created"] = data["stats"].get("total_created", 0) + 1
        ledger_store.save_tasks(data)

    logger.info("task created | id=%s type=%s reward=%s level=%s wallet=%.42s",
                task_id, task_type, reward, participation_type, wallet)

    _notify_discord(
        "📋 New Task Published",
        f"**{title}**\n{reward} reward, {task_count} slot(s)",
        color=0x00BFFF,
        fields={"Type": task_type, "Level": participation_type, "Task ID": task_id}
    )

    return jsonify({
        "success": True,
        "task_id": task_id,
        "status": "published",
        "reward": task["reward"],
        "message": "Task published successfully"
    }), 201


@tasks_bp.route('/api/v1/tasks', methods=['GET'])
def list_tasks():
    """
    List tasks with optional filters.

    Query params:
        status  — published, pending_approval, completed
        type    — task type
        level   — participation_type (Initiate … Prime)
        limit   — max results (default 50, max 100)
    """
    status_filter = request.args.get('status', '').lower()
    type_filter = request.args.get('type', '').lower()
    level_filter = request.args.get('level', '').strip()
    try:
        limit = min(int(request.args.get('limit', 50)), 100)
    except ValueError:
        return jsonify({"success": False, "error": "invalid limit"}), 400

    data = ledger_store.load_tasks()

    tasks = []
    for task_id, task in data.get("tasks", {}).items():
        if status_filter and task.get("status") != status_filter:
            continue
        if type_filter and task.get("task_type") != type_filter:
            continue
        if level_filter and task.get("participation_type") != level_filter:
            continue
        tasks.append(_task_summary(task_id, task))

    # Newest first
    tasks.sort(key=lambda t: t.get("created_at") or "", reverse=True)
    tasks = tasks[:limit]

    return jsonify({
        "success": True,
        "tasks": tasks,
        "total": len(tasks),
        "stats": data.get("stats", {})
    })


@tasks_bp.route('/api/v1/tasks/stats', methods=['GET'])
def task_stats():
    data = ledger_store.load_tasks()
    tasks = data.get("tasks", {})

    by_status = {s: 0 for s in VALID_STATUSES}
    for task in tasks.values():
        status = task.get("status")
        if status in by_status:
            by_status[status] += 1

    return jsonify({
        "success": True,
        "total_tasks": len(tasks),
        "by_status": by_status,
        **data.get("stats", {})
    })


@tasks_bp.route('/api/v1/tasks/<task_id>', methods=['GET'])
def get_task(task_id):
    """Get full task details."""
    task = ledger_store.load_tasks().get("tasks", {}).get(task_id)
    if not task:
        return jsonify({"success": False, "error": "task not found"}), 404

    return jsonify({
        "success": True,
        "task_id": task_id,
        **task
    })


@tasks_bp.route('/api/v1/tasks/<task_id>/join', methods=['POST'])
def join_task(task_id):
    """
    Join a task. The wallet's check-in level must reach the task's participation_type.

    Request:
        {"wallet": "0x..."}
    """
    body = request.get_json(silent=True) or {}
    wallet, error = normalize_address(body.get('wallet'))
    if error:
        return jsonify({"success": False, "error": error}), 400

    with ledger_store.store_lock:
        data = ledger_store.load_tasks()
        task = data.get("tasks", {}).get(task_id)

        if not task:
            return jsonify({"success": False, "error": "task not found"}), 404
        if task.get("status") == "completed":
            return jsonify({"success": False, "error": "task is completed"}), 409
        if _find_participant(task, wallet):
            return jsonify({"success": False, "error": "already joined this task"}), 409

        end = parse_timestamp(task.get("end_date"))
        if end and datetime.now(timezone.utc) > end:
            return jsonify({"success": False, "error": "task has ended"}), 410

        active = [p for p in task.get("participants", []) if p.get("status") != "rejected"]
        if len(active) >= int(task.get("task_count") or 1):
            return jsonify({"success": False, "error": "task is full"}), 409

        required = task.get("participation_type", LEVELS[0])
        level = _user_level(wallet)
        if level_rank(level) < level_rank(required):
            return jsonify({
                "success": False,
                "error": f"task requires {required} level, wallet is {level}",
                "required_level": required,
                "level": level,
            }), 403

        task.setdefault("participants", []).append({
            "address": wallet,
            "status": "accepted",
            "joined_at": datetime.now(timezone.utc).isoformat(),
            "submitted_at": None,
            "proof": None,
            "reviewed_at": None,
        })
        ledger_store.save_tasks(data)

    logger.info("task joined | id=%s wallet=%.42s level=%s", task_id, wallet, level)
    return jsonify({"success": True, "task_id": task_id, "status": "accepted"})


@tasks_bp.route('/api/v1/tasks/<task_id>/submit', methods=['POST'])
def submit_task(task_id):
    """
    Submit work for review.

    Request:
        {"wallet": "0x...", "proof": "https://x.com/.../status/..."}
    """
    body = request.get_json(silent=True) or {}
    wallet, error = normalize_address(body.get('wallet'))
    proof = (body.get('proof') or '').strip()

    if error:
        return jsonify({"success": False, "error": error}), 400
    if len(proof) > 2000:
        return jsonify({"success": False, "error": "proof too long (max 2000 chars)"}), 400

    with ledger_store.store_lock:
        data = ledger_store.load_tasks()
        task = data.get("tasks", {}).get(task_id)
        if not task:
            return jsonify({"success": False, "error": "task not found"}), 404

        participant = _find_participant(task, wallet)
        if not participant:
            return jsonify({"success": False, "error": "wallet has not joined this task"}), 400
        if participant.get("status") not in ("accepted", "rejected"):
            return jsonify({"success": False, "error": f"submission is {participant.get('status')}"}), 409

        participant["status"] = "submitted"
        participant["proof"] = proof or None
        participant["submitted_at"] = datetime.now(timezone.utc).isoformat()
        task["status"] = _recompute_status(task)
        ledger_store.save_tasks(data)

    logger.info("task submitted | id=%s wallet=%.42s", task_id, wallet)
    return jsonify({"success": True, "task_id": task_id, "status": "submitted",
                    "message": "The task has been submitted for review"})


@tasks_bp.route('/api/v1/tasks/<task_id>/review', methods=['POST'])
def review_task(task_id):
    """
    Creator reviews a submission. Approval distributes the reward:
    94% participant, 5% direct inviter, 1% indirect inviter.

    Request:
        {
            "creator_wallet": "0xCreator...",
            "participant_address": "0x...",
            "action": "approve" | "reject"
        }
    """
    body = request.get_json(silent=True) or {}
    creator, _ = normalize_address(body.get('creator_wallet'))
    participant_address, _ = normalize_address(body.get('participant_address'))
    action = (body.get('action') or '').strip().lower()

    if not participant_address or action not in VALID_ACTIONS:
        return jsonify({"success": False, "error": "participant_address and action (approve|reject) required"}), 400

    distribution = None
    with ledger_store.store_lock:
        data = ledger_store.load_tasks()
        task = data.get("tasks", {}).get(task_id)
        if not task:
            return jsonify({"success": False, "error": "task not found"}), 404
        if task.get("creator_wallet") != creator:
            return jsonify({"success": False, "error": "only the task creator can review"}), 403

        participant = _find_participant(task, participant_address)
        if not participant:
            return jsonify({"success": False, "error": "participant not found"}), 404
        if participant.get("status") != "submitted":
            return jsonify({"success": False, "error": f"submission is {participant.get('status')}, not submitted"}), 409

        now = datetime.now(timezone.utc)
        participant["status"] = "approved" if action == "approve" else "rejected"
        participant["reviewed_at"] = now.isoformat()
        task["status"] = _recompute_status(task)

        if action == "approve" and participant_address != task.get("creator_wallet"):
            direct, indirect = resolve_inviter_chain(ledger_store.load_invites(), participant_address)
            distribution = distribute_reward(task_id, participant_address, task.get("reward"),
                                             direct, indirect, now)
            ledger_store.append_distribution(distribution)

        if action == "approve":
            stats = data["stats"]
            stats["total_completed"] = stats.get("total_completed", 0) + 1
            if distribution is not None:
                stats["total_rewarded"] = str(to_decimal(stats.get("total_rewarded")) + to_decimal(task.get("reward")))
        ledger_store.save_tasks(data)

    logger.info("task reviewed | id=%s participant=%.42s action=%s", task_id, participant_address, action)

    if action == "reject":
        return jsonify({"success": True, "task_id": task_id, "status": task["status"], "message": "Task rejected"})

    _notify_discord(
        "✅ Task Approved",
        f"**{task.get('title')}**\n{short_wallet(participant_address)} earned {distribution['user_reward'] if distribution else 0}",
        color=0x00FF00,
        fields={"Task ID": task_id, "Reward": task.get("reward")}
    )

    return jsonify({
        "success": True,
        "task_id": task_id,
        "status": task["status"],
        "reward": task.get("reward"),
        "distribution": distribution,
        "needs_contract_call": bool(task.get("on_chain_task_id")),
        "message": "Task approved"
    })


@tasks_bp.route('/api/v1/users/<address>/profile', methods=['GET'])
def user_profile(address):
    """Tasks published and joined by address, reward totals and level."""
    address, error = normalize_address(address)
    if error:
        return jsonify({"success": False, "error": error}), 400

    tasks = ledger_store.load_tasks().get("tasks", {})
    published = [_task_summary(tid, t) for tid, t in tasks.items() if t.get("creator_wallet") == address]
    accepted = []
    for tid, t in tasks.items():
        participant = _find_participant(t, address)
        if participant:
            accepted.append({**_task_summary(tid, t), "participant_status": participant.get("status")})

    return jsonify({
        "success": True,
        "address": address,
        "level": _user_level(address),
        "rewards": aggregate(address, ledger_store.find_distributions(address)),
        "published_tasks": published,
        "accepted_tasks": accepted,
    })
