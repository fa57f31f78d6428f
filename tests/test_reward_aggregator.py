import itertools
from decimal import Decimal

from reward_aggregator import aggregate, aggregate_decimal, format_amount, records_for

ALICE = "AliceWallet"
BOB = "BobWallet"
CAROL = "CarolWallet"


def record(task_id, participant, user_reward, direct=None, direct_reward=0, indirect=None, indirect_reward=0):
    return {
        "task_id": task_id,
        "participant_address": participant,
        "user_reward": user_reward,
        "direct_inviter_address": direct,
        "direct_inviter_reward": direct_reward,
        "indirect_inviter_address": indirect,
        "indirect_inviter_reward": indirect_reward,
    }


RECORDS = [
    record("t1", ALICE, "94.00", direct=BOB, direct_reward="5.00", indirect=CAROL, indirect_reward="1.00"),
    record("t2", BOB, 47, direct=CAROL, direct_reward=2.5),
    record("t3", CAROL, "9.40"),
    record("t4", ALICE, 0.1, direct=BOB, direct_reward=0.2, indirect=CAROL, indirect_reward=0.3),
]


def test_totals_by_category():
    assert aggregate(BOB, RECORDS) == {
        "task_completion_rewards": "47.00",
        "direct_inviter_rewards": "5.20",
        "indirect_inviter_rewards": "0.00",
        "total_bounty": "52.20",
    }
    assert aggregate(CAROL, RECORDS) == {
        "task_completion_rewards": "9.40",
        "direct_inviter_rewards": "2.50",
        "indirect_inviter_rewards": "1.30",
        "total_bounty": "13.20",
    }


def test_unknown_address_is_all_zero():
    assert aggregate("Nobody", RECORDS) == {
        "task_completion_rewards": "0.00",
        "direct_inviter_rewards": "0.00",
        "indirect_inviter_rewards": "0.00",
        "total_bounty": "0.00",
    }
    assert aggregate(ALICE, []) == aggregate("Nobody", RECORDS)


def test_order_independent():
    expected = aggregate(CAROL, RECORDS)
    for perm in itertools.permutations(RECORDS):
        assert aggregate(CAROL, list(perm)) == expected


def test_multi_role_record_counts_each_role():
    weird = [record("t9", ALICE, "10", direct=ALICE, direct_reward="3", indirect=BOB, indirect_reward="1")]
    totals = aggregate(ALICE, weird)
    assert totals["task_completion_rewards"] == "10.00"
    assert totals["direct_inviter_rewards"] == "3.00"
    assert totals["total_bounty"] == "13.00"


def test_no_float_drift_over_many_records():
    many = [record(f"t{i}", ALICE, 0.1) for i in range(1000)]
    totals = aggregate_decimal(ALICE, many)
    assert totals["task_completion_rewards"] == Decimal("100.0")
    assert aggregate(ALICE, many)["total_bounty"] == "100.00"


def test_missing_amounts_count_as_zero():
    totals = aggregate(ALICE, [{"participant_address": ALICE, "user_reward": None}])
    assert totals["total_bounty"] == "0.00"


def test_format_amount_rounds_half_up():
    assert format_amount("1.005") == "1.01"
    assert format_amount(2) == "2.00"


def test_records_for_filters_any_role():
    assert [r["task_id"] for r in records_for(BOB, RECORDS)] == ["t1", "t2", "t4"]
