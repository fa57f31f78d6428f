"""
TaskCube storage layer.
JSON documents under DATA_DIR, one file per collection.

All writes go through a process-wide lock. Check-in state updates are
conditional on the last_check_in value the caller read, so two requests that
both passed the 24h gate cannot both land.
"""

import os
import json
import logging
import threading

logger = logging.getLogger(__name__)

# === Configuration ===
DATA_DIR = os.getenv('DATA_DIR', '/app/data')

USERS_FILE = 'users.json'
DISTRIBUTIONS_FILE = 'reward_distributions.json'
INVITES_FILE = 'invites.json'
TRANSACTIONS_FILE = 'transactions.json'
TASKS_FILE = 'tasks.json'
CLAIMS_FILE = 'claims.json'

store_lock = threading.RLock()


# === Data helpers ===

def data_path(filename):
    return os.path.join(DATA_DIR, filename)


def load_json_data(filepath, default=None):
    """Load JSON data from file, return default if missing or unreadable."""
    if default is None:
        default = {}

    if not os.path.exists(filepath):
        return default

    try:
        with open(filepath, 'r') as f:
            return json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.error("Failed to load %s: %s", filepath, e)
        return default


def save_json_data(filepath, data):
    """Save JSON data to file."""
    os.makedirs(os.path.dirname(filepath), exist_ok=True)
    tmp_path = filepath + '.tmp'
    with open(tmp_path, 'w') as f:
        json.dump(data, f, indent=2)
    os.replace(tmp_path, filepath)


# === Users / check-in state ===

def load_users():
    return load_json_data(data_path(USERS_FILE), default={"users": {}})


def find_user(address):
    """Check-in state for address, or None."""
    return load_users().get("users", {}).get(address)


def update_user_state(address, expected_last_check_in, new_state):
    """
    Conditional upsert of a user's check-in state.

    Writes only if the stored last_check_in still equals expected_last_check_in
    (None meaning "no document / never checked in"). Returns True on write,
    False when another writer got there first.
    """
    with store_lock:
        data = load_users()
        users = data.setdefault("users", {})
        current = users.get(address)
        current_last = current.get("last_check_in") if current else None

        if current_last != expected_last_check_in:
            logger.warning("check-in conflict | address=%.42s expected=%s found=%s",
                           address, expected_last_check_in, current_last)
            return False

        merged = dict(current or {})
        merged.update(new_state)
        users[address] = merged
        save_json_data(data_path(USERS_FILE), data)
        return True


# === Reward distributions ===

def load_distributions():
    return load_json_data(data_path(DISTRIBUTIONS_FILE), default={"distributions": []}).get("distributions", [])


def find_distributions(address):
    """Distribution records naming address as participant or either inviter."""
    return [
        d for d in load_distributions()
        if address in (d.get("participant_address"),
                       d.get("direct_inviter_address"),
                       d.get("indirect_inviter_address"))
    ]


def append_distribution(record):
    with store_lock:
        data = load_json_data(data_path(DISTRIBUTIONS_FILE), default={"distributions": []})
        data.setdefault("distributions", []).append(record)
        save_json_data(data_path(DISTRIBUTIONS_FILE), data)


# === Invites ===

def load_invites():
    return load_json_data(data_path(INVITES_FILE), default={"invites": []}).get("invites", [])


def save_invites(invites):
    with store_lock:
        save_json_data(data_path(INVITES_FILE), {"invites": invites})


# === Transactions ===

def load_transactions():
    return load_json_data(data_path(TRANSACTIONS_FILE), default={"transactions": []}).get("transactions", [])


def save_transactions(transactions):
    with store_lock:
        save_json_data(data_path(TRANSACTIONS_FILE), {"transactions": transactions})


# === Tasks ===

def load_tasks():
    """Load tasks data from disk."""
    return load_json_data(
        data_path(TASKS_FILE),
        default={"tasks": {}, "stats": {"total_created": 0, "total_completed": 0, "total_rewarded": "0"}},
    )


def save_tasks(data):
    """Save tasks data to disk."""
    with store_lock:
        save_json_data(data_path(TASKS_FILE), data)


# === Claims ===

def load_claims():
    return load_json_data(data_path(CLAIMS_FILE), default={"claims": []}).get("claims", [])


def save_claims(claims):
    with store_lock:
        save_json_data(data_path(CLAIMS_FILE), {"claims": claims})
