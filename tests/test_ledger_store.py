import json

import ledger_store

WALLET = "0xdAC17F958D2ee523a2206206994597C13D831ec7"


def user_state(days, last):
    return {"address": WALLET, "consecutive_days": days, "last_check_in": last, "level": "Initiate"}


def test_first_write_requires_no_existing_document():
    assert ledger_store.update_user_state(WALLET, None, user_state(1, "2026-10-18T12:00:00+00:00"))
    assert ledger_store.find_user(WALLET)["consecutive_days"] == 1

    # a second "first check-in" loses
    assert not ledger_store.update_user_state(WALLET, None, user_state(1, "2026-10-18T12:05:00+00:00"))
    assert ledger_store.find_user(WALLET)["last_check_in"] == "2026-10-18T12:00:00+00:00"


def test_stale_expected_last_check_in_is_rejected():
    first = "2026-10-17T12:00:00+00:00"
    second = "2026-10-18T12:30:00+00:00"
    assert ledger_store.update_user_state(WALLET, None, user_state(1, first))
    assert ledger_store.update_user_state(WALLET, first, user_state(2, second))

    assert ledger_store.update_user_state(WALLET, first, user_state(2, "2026-10-18T12:31:00+00:00")) is False
    assert ledger_store.find_user(WALLET) == user_state(2, second)


def test_update_merges_extra_fields():
    ledger_store.update_user_state(WALLET, None, {**user_state(1, "2026-10-18T12:00:00+00:00"), "note": "kept"})
    ledger_store.update_user_state(WALLET, "2026-10-18T12:00:00+00:00", user_state(2, "2026-10-19T12:01:00+00:00"))
    assert ledger_store.find_user(WALLET)["note"] == "kept"


def test_unreadable_file_falls_back_to_default(isolated_data_dir):
    (isolated_data_dir / ledger_store.USERS_FILE).write_text("{not json")
    assert ledger_store.find_user(WALLET) is None


def test_claims_round_trip(isolated_data_dir):
    ledger_store.save_claims([{"claim_id": "claim_1", "user_address": WALLET}])
    assert ledger_store.load_claims() == [{"claim_id": "claim_1", "user_address": WALLET}]
    with open(isolated_data_dir / ledger_store.CLAIMS_FILE) as f:
        assert json.load(f)["claims"][0]["claim_id"] == "claim_1"
