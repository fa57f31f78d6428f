"""
Reward Aggregator
Reduces reward distribution records to per-address totals.

A record attributes amounts to up to three roles:
    participant_address       -> user_reward
    direct_inviter_address    -> direct_inviter_reward
    indirect_inviter_address  -> indirect_inviter_reward

Each role is matched on its own, so one address filling two roles on the
same record is credited twice.
"""

from decimal import Decimal, ROUND_HALF_UP

DISPLAY_PLACES = Decimal("0.01")
ZERO = Decimal("0")

# (address field, amount field, total name)
ROLE_FIELDS = [
    ("participant_address", "user_reward", "task_completion_rewards"),
    ("direct_inviter_address", "direct_inviter_reward", "direct_inviter_rewards"),
    ("indirect_inviter_address", "indirect_inviter_reward", "indirect_inviter_rewards"),
]


def to_decimal(amount):
    """Stored amounts may be numbers or numeric strings; floats go through str()."""
    if amount is None or amount == "":
        return ZERO
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def format_amount(amount, places=DISPLAY_PLACES):
    return str(to_decimal(amount).quantize(places, rounding=ROUND_HALF_UP))


def aggregate_decimal(address, records):
    """Unformatted Decimal totals for address."""
    totals = {name: ZERO for _, _, name in ROLE_FIELDS}

    for record in records:
        for address_field, amount_field, name in ROLE_FIELDS:
            if address and record.get(address_field) == address:
                totals[name] += to_decimal(record.get(amount_field))

    totals["total_bounty"] = sum((totals[name] for _, _, name in ROLE_FIELDS), ZERO)
    return totals


def aggregate(address, records):
    """Totals for address, formatted with two decimals for display."""
    totals = aggregate_decimal(address, records)
    return {name: format_amount(value) for name, value in totals.items()}


def records_for(address, records):
    """Records referencing address in any role."""
    return [
        r for r in records
        if any(r.get(field) == address for field, _, _ in ROLE_FIELDS)
    ]
