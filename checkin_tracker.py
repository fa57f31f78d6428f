"""
Daily Check-in Tracker
Streaks, levels and make-up check-ins. Pure functions, no storage access.

State is the persisted user document:
    {
        "address": "0x...",
        "consecutive_days": 27,
        "last_check_in": "2026-10-18T09:12:44+00:00",   (or None)
        "level": "Operative"
    }

Callers pass the current time in; nothing here reads the clock.
"""

import logging
from datetime import datetime, timezone, timedelta

from ledger_errors import AlreadyCheckedIn, NoPriorCheckIn, MakeupWindowExpired

logger = logging.getLogger(__name__)

# === Configuration ===
CHECK_IN_INTERVAL = timedelta(hours=24)
ONE_DAY = timedelta(days=1)

LEVELS = ['Initiate', 'Operative', 'Enforcer', 'Vanguard', 'Prime']

# (minimum consecutive days, level), highest first
LEVEL_THRESHOLDS = [
    (100, 'Prime'),
    (75, 'Vanguard'),
    (50, 'Enforcer'),
    (25, 'Operative'),
    (0, 'Initiate'),
]

MAKEUP_DAYS_ALLOWED = {
    'Initiate': 0,
    'Operative': 1,
    'Enforcer': 3,
    'Vanguard': 5,
    'Prime': 7,
}


# === Levels ===

def level_for_days(consecutive_days):
    """Level whose threshold is the highest one not exceeding consecutive_days."""
    for threshold, level in LEVEL_THRESHOLDS:
        if consecutive_days >= threshold:
            return level
    return LEVELS[0]


def makeup_days_allowed(level):
    """Largest gap (whole days) a make-up check-in may cover at this level."""
    return MAKEUP_DAYS_ALLOWED.get(level, 0)


def level_rank(level):
    try:
        return LEVELS.index(level)
    except ValueError:
        return 0


# === Time helpers ===

def _as_utc(value):
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value):
    """Stored timestamps are ISO strings; accept datetimes too."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    return _as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def _last_check_in(state):
    if not state:
        return None
    return parse_timestamp(state.get("last_check_in"))


def days_since(last, now):
    """Whole days elapsed, truncated toward zero."""
    return int((_as_utc(now) - last) / ONE_DAY)


def _build_state(address, consecutive_days, now):
    return {
        "address": address,
        "consecutive_days": consecutive_days,
        "last_check_in": _as_utc(now).isoformat(),
        "level": level_for_days(consecutive_days),
    }


# === Operations ===

def can_check_in(state, now):
    """True when the user has never checked in or the last one is over 24h old."""
    last = _last_check_in(state)
    if last is None:
        return True
    return _as_utc(now) - last > CHECK_IN_INTERVAL


def check_in(address, state, now):
    """
    Regular daily check-in.

    Returns the new state; the streak grows by exactly one per call.
    Raises AlreadyCheckedIn inside the 24h window.
    """
    if not can_check_in(state, now):
        next_at = (_last_check_in(state) + CHECK_IN_INTERVAL).isoformat()
        raise AlreadyCheckedIn(next_check_in_at=next_at)

    if state is None:
        consecutive_days = 1
    else:
        address = state.get("address") or address
        consecutive_days = int(state.get("consecutive_days") or 0) + 1

    new_state = _build_state(address, consecutive_days, now)
    logger.debug("check-in | address=%.42s days=%d level=%s",
                 address, consecutive_days, new_state["level"])
    return new_state


def make_up_check_in(state, now):
    """
    Make-up check-in after the 24h window was missed.

    The whole elapsed gap (in whole days) is credited at once, provided it
    fits the level's allowance. Initiate has no allowance, so it is always
    rejected. A make-up that would credit nothing (less than a day elapsed,
    or a last check-in stamped after now) raises AlreadyCheckedIn and leaves
    the streak and its 24h window alone.
    """
    last = _last_check_in(state)
    if last is None:
        raise NoPriorCheckIn()

    consecutive_days = int(state.get("consecutive_days") or 0)
    level = level_for_days(consecutive_days)
    allowed = makeup_days_allowed(level)
    gap = days_since(last, now)

    if allowed == 0 or gap > allowed:
        raise MakeupWindowExpired(days_since=max(gap, 0), allowed=allowed)
    if gap < 1:
        raise AlreadyCheckedIn(next_check_in_at=(last + CHECK_IN_INTERVAL).isoformat())

    new_state = _build_state(state.get("address"), consecutive_days + gap, now)
    logger.debug("make-up check-in | address=%.42s gap=%d days=%d level=%s",
                 new_state["address"], gap, new_state["consecutive_days"], new_state["level"])
    return new_state


def check_in_status(state, now):
    """Read-only summary for the status endpoint."""
    if not state:
        return {
            "consecutive_days": 0,
            "last_check_in": None,
            "level": LEVELS[0],
            "can_check_in": True,
            "days_since_last_check_in": None,
            "makeup_days_allowed": 0,
            "can_make_up": False,
        }

    consecutive_days = int(state.get("consecutive_days") or 0)
    level = level_for_days(consecutive_days)
    allowed = makeup_days_allowed(level)
    last = _last_check_in(state)
    gap = days_since(last, now) if last else None

    return {
        "consecutive_days": consecutive_days,
        "last_check_in": last.isoformat() if last else None,
        "level": level,
        "can_check_in": can_check_in(state, now),
        "days_since_last_check_in": gap,
        "makeup_days_allowed": allowed,
        "can_make_up": last is not None and allowed > 0 and 1 <= gap <= allowed,
    }
