from datetime import datetime, timedelta, timezone

import ledger_store

CREATOR = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
WORKER = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
INVITER = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
GRAND_INVITER = "0x6B175474E89094C44Da98b954EedeAC495271d0F"


def task_body(**overrides):
    body = {
        "title": "Retweet the launch post",
        "description": "Quote-tweet with your wallet address",
        "task_type": "social",
        "reward": "100",
        "participation_type": "Initiate",
        "creator_wallet": CREATOR,
        "task_count": 2,
        "start_date": "2026-01-01T00:00:00+00:00",
        "end_date": "2099-01-01T00:00:00+00:00",
    }
    body.update(overrides)
    return body


def create_task(client, **overrides):
    resp = client.post("/api/v1/tasks", json=task_body(**overrides))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["task_id"]


def test_create_and_get_task(client):
    task_id = create_task(client)
    resp = client.get(f"/api/v1/tasks/{task_id}")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["status"] == "published"
    assert data["reward"] == "100"
    assert data["participants"] == []

    listing = client.get("/api/v1/tasks?status=published").get_json()
    assert listing["total"] == 1
    assert listing["tasks"][0]["creator_wallet"] == "0xd8dA...6045"


def test_create_task_validation(client):
    assert client.post("/api/v1/tasks", json=task_body(title="")).status_code == 400
    assert client.post("/api/v1/tasks", json=task_body(task_type="nope")).status_code == 400
    assert client.post("/api/v1/tasks", json=task_body(creator_wallet="bad")).status_code == 400
    assert client.post("/api/v1/tasks", json=task_body(task_count=0)).status_code == 400
    assert client.post("/api/v1/tasks", json=task_body(end_date="2025-01-01T00:00:00+00:00")).status_code == 400
    # Prime tasks need at least 1000
    resp = client.post("/api/v1/tasks", json=task_body(participation_type="Prime", reward="999"))
    assert resp.status_code == 400


def test_get_missing_task(client):
    assert client.get("/api/v1/tasks/task_missing").status_code == 404


def test_full_flow_distributes_rewards_up_the_referral_chain(client):
    assert client.post("/api/v1/invites", json={"inviter": GRAND_INVITER, "invitee": INVITER}).status_code == 201
    assert client.post("/api/v1/invites", json={"inviter": INVITER, "invitee": WORKER}).status_code == 201

    task_id = create_task(client)

    resp = client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": WORKER})
    assert resp.status_code == 200
    resp = client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": WORKER})
    assert resp.status_code == 409

    resp = client.post(f"/api/v1/tasks/{task_id}/submit", json={"wallet": WORKER, "proof": "https://x.com/p/1"})
    assert resp.status_code == 200
    assert client.get(f"/api/v1/tasks/{task_id}").get_json()["status"] == "pending_approval"

    resp = client.post(f"/api/v1/tasks/{task_id}/review", json={
        "creator_wallet": CREATOR, "participant_address": WORKER, "action": "approve"})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["distribution"]["direct_inviter_address"] == INVITER
    assert data["distribution"]["indirect_inviter_address"] == GRAND_INVITER
    # one of two slots approved
    assert data["status"] == "published"

    worker = client.get(f"/api/v1/rewards/{WORKER}").get_json()
    assert worker["task_completion_rewards"] == "94.00"
    assert worker["total_bounty"] == "94.00"

    inviter = client.get(f"/api/v1/rewards/{INVITER}").get_json()
    assert inviter["direct_inviter_rewards"] == "5.00"
    assert inviter["total_bounty"] == "5.00"

    grand = client.get(f"/api/v1/rewards/{GRAND_INVITER}?include_records=true").get_json()
    assert grand["indirect_inviter_rewards"] == "1.00"
    assert len(grand["distributions"]) == 1

    stats = client.get("/api/v1/tasks/stats").get_json()
    assert stats["total_completed"] == 1
    assert stats["total_rewarded"] == "100"


def test_review_requires_creator_and_submission(client):
    task_id = create_task(client)
    client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": WORKER})

    resp = client.post(f"/api/v1/tasks/{task_id}/review", json={
        "creator_wallet": CREATOR, "participant_address": WORKER, "action": "approve"})
    assert resp.status_code == 409

    client.post(f"/api/v1/tasks/{task_id}/submit", json={"wallet": WORKER})
    resp = client.post(f"/api/v1/tasks/{task_id}/review", json={
        "creator_wallet": WORKER, "participant_address": WORKER, "action": "approve"})
    assert resp.status_code == 403


def test_reject_then_resubmit(client):
    task_id = create_task(client, task_count=1)
    client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": WORKER})
    client.post(f"/api/v1/tasks/{task_id}/submit", json={"wallet": WORKER})

    resp = client.post(f"/api/v1/tasks/{task_id}/review", json={
        "creator_wallet": CREATOR, "participant_address": WORKER, "action": "reject"})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "published"
    assert ledger_store.load_distributions() == []

    assert client.post(f"/api/v1/tasks/{task_id}/submit", json={"wallet": WORKER}).status_code == 200
    resp = client.post(f"/api/v1/tasks/{task_id}/review", json={
        "creator_wallet": CREATOR, "participant_address": WORKER, "action": "approve"})
    assert resp.get_json()["status"] == "completed"


def test_creator_self_approval_distributes_nothing(client):
    task_id = create_task(client)
    client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": CREATOR})
    client.post(f"/api/v1/tasks/{task_id}/submit", json={"wallet": CREATOR})
    resp = client.post(f"/api/v1/tasks/{task_id}/review", json={
        "creator_wallet": CREATOR, "participant_address": CREATOR, "action": "approve"})
    assert resp.status_code == 200
    assert resp.get_json()["distribution"] is None
    assert ledger_store.load_distributions() == []


def test_join_is_level_gated(client):
    task_id = create_task(client, participation_type="Operative", reward="150")
    resp = client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": WORKER})
    assert resp.status_code == 403
    assert resp.get_json()["required_level"] == "Operative"

    last = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    ledger_store.update_user_state(WORKER, None, {
        "address": WORKER, "consecutive_days": 30, "last_check_in": last, "level": "Operative"})
    resp = client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": WORKER})
    assert resp.status_code == 200


def test_join_rejects_full_task(client):
    task_id = create_task(client, task_count=1)
    assert client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": WORKER}).status_code == 200
    assert client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": INVITER}).status_code == 409


def test_user_profile(client):
    task_id = create_task(client)
    client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": WORKER})

    creator = client.get(f"/api/v1/users/{CREATOR}/profile").get_json()
    assert [t["task_id"] for t in creator["published_tasks"]] == [task_id]
    assert creator["rewards"]["total_bounty"] == "0.00"

    worker = client.get(f"/api/v1/users/{WORKER}/profile").get_json()
    assert worker["accepted_tasks"][0]["participant_status"] == "accepted"
    assert worker["level"] == "Initiate"


def test_self_approval_counts_completion_but_not_rewards(client):
    task_id = create_task(client)
    client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": CREATOR})
    client.post(f"/api/v1/tasks/{task_id}/submit", json={"wallet": CREATOR})
    client.post(f"/api/v1/tasks/{task_id}/review", json={
        "creator_wallet": CREATOR, "participant_address": CREATOR, "action": "approve"})

    stats = client.get("/api/v1/tasks/stats").get_json()
    assert stats["total_completed"] == 1
    assert stats["total_rewarded"] == "0"


def test_join_accepts_lowercase_wallet(client):
    task_id = create_task(client)
    assert client.post(f"/api/v1/tasks/{task_id}/join", json={"wallet": WORKER.lower()}).status_code == 200
    participants = client.get(f"/api/v1/tasks/{task_id}").get_json()["participants"]
    assert participants[0]["address"] == WORKER
