"""
Referral graph and task reward distribution.

Invites are stored as a flat list:
    {"inviter": "0xInviter...", "invitee": "0xInvitee...", "created_at": "..."}

An invitee has exactly one inviter. Rewards flow two hops up the chain:
participant 94%, direct inviter 5%, indirect inviter 1%. Whatever share has
no inviter to go to stays in the pool as unclaimed_reward.
"""

import logging
from datetime import timezone
from decimal import Decimal

from ledger_errors import InviteError
from reward_aggregator import to_decimal

logger = logging.getLogger(__name__)

# === Configuration ===
USER_SHARE = Decimal("0.94")
DIRECT_INVITER_SHARE = Decimal("0.05")
INDIRECT_INVITER_SHARE = Decimal("0.01")
PLATFORM_FEE_SHARE = Decimal("0")
INVITE_TREE_DEPTH = 2


# === Invite graph ===

def find_inviter(invites, invitee):
    for invite in invites:
        if invite.get("invitee") == invitee:
            return invite.get("inviter")
    return None


def register_invite(invites, inviter, invitee, now):
    """Validate and build a new invite record. Does not mutate invites."""
    if not inviter or not invitee:
        raise InviteError("inviter and invitee required")
    if inviter == invitee:
        raise InviteError("Cannot invite yourself")
    if find_inviter(invites, invitee) is not None:
        raise InviteError("This wallet address has already been invited")

    # Would close a loop: invitee already sits above inviter in the chain
    seen = set()
    current = inviter
    while current and current not in seen:
        if current == invitee:
            raise InviteError("Invite would create a referral loop")
        seen.add(current)
        current = find_inviter(invites, current)

    return {
        "inviter": inviter,
        "invitee": invitee,
        "created_at": now.astimezone(timezone.utc).isoformat(),
    }


def resolve_inviter_chain(invites, participant):
    """(direct_inviter, indirect_inviter), either may be None."""
    direct = find_inviter(invites, participant)
    if direct is None:
        return None, None
    return direct, find_inviter(invites, direct)


def invite_tree(invites, inviter, max_depth=INVITE_TREE_DEPTH):
    """Nested invitee list rooted at inviter, max_depth levels deep."""
    def _children(address, depth):
        if depth > max_depth:
            return []
        return [
            {"invitee": inv["invitee"], "children": _children(inv["invitee"], depth + 1)}
            for inv in invites
            if inv.get("inviter") == address
        ]

    return _children(inviter, 1)


# === Distribution ===

def distribute_reward(task_id, participant, reward, direct_inviter, indirect_inviter, now):
    """
    Build the reward distribution record for an approved task submission.
    Amounts are stored as decimal strings.
    """
    reward = to_decimal(reward)
    user_reward = reward * USER_SHARE
    platform_fee = reward * PLATFORM_FEE_SHARE
    direct_reward = reward * DIRECT_INVITER_SHARE if direct_inviter else Decimal("0")
    indirect_reward = reward * INDIRECT_INVITER_SHARE if (direct_inviter and indirect_inviter) else Decimal("0")
    unclaimed = reward - user_reward - platform_fee - direct_reward - indirect_reward

    record = {
        "task_id": task_id,
        "participant_address": participant,
        "user_reward": str(user_reward),
        "platform_fee": str(platform_fee),
        "direct_inviter_address": direct_inviter or None,
        "direct_inviter_reward": str(direct_reward),
        "indirect_inviter_address": indirect_inviter if direct_inviter else None,
        "indirect_inviter_reward": str(indirect_reward),
        "unclaimed_reward": str(unclaimed),
        "distributed_at": now.astimezone(timezone.utc).isoformat(),
    }

    logger.info("reward distributed | task=%s participant=%.42s reward=%s unclaimed=%s",
                task_id, participant, reward, unclaimed)
    return record
