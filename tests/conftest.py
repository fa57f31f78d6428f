import pytest

import ledger_store
import notifications
import taskcube_web


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(ledger_store, "DATA_DIR", str(tmp_path))
    monkeypatch.setattr(notifications, "DISCORD_WEBHOOK_URL", "")
    return tmp_path


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(taskcube_web.limiter, "enabled", False)
    return taskcube_web.app.test_client()
