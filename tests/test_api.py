from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

from fakes import FakeLedger, MemoryContentStore, capsule_record, fake_cid

from timecapsule.api.app import create_app
from timecapsule.crypto.engine import EncryptionEngine
from timecapsule.crypto.hashing import hash_content
from timecapsule.sdk import CapsuleSdk
from timecapsule.storage.envelope import pack_envelope

NOW = 1_700_000_000_000
OWNER = "0xowner"


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setenv("TIMECAPSULE_MODE", "dev")
    monkeypatch.delenv("TIMECAPSULE_CORS_ORIGINS", raising=False)

    store = MemoryContentStore()
    engine = EncryptionEngine()

    # One ready capsule with real content behind it.
    payload = engine.encrypt(b"hello from the past", OWNER, "0xready", NOW - 1)
    blob = pack_envelope(payload, content_type="text/plain", original_size=19, timestamp_ms=NOW - 5000)
    cid = fake_cid(blob)
    store.blobs[cid] = blob

    ready = capsule_record(
        "0xready",
        owner=OWNER,
        cid=cid,
        content_hash=list(hash_content(blob)),
        condition={"condition_type": 1, "unlock_time_ms": NOW - 1},
    )
    locked = capsule_record("0xlocked", owner=OWNER, condition={"condition_type": 1, "unlock_time_ms": NOW + 60_000})
    ledger = FakeLedger(objects=[ready, locked], pages={OWNER: [[ready], [locked]]})

    sdk = CapsuleSdk(ledger=ledger, store=store, engine=engine, package_id="0xpkg", clock_ms=lambda: NOW)
    return TestClient(create_app(sdk=sdk))


def test_health(client: TestClient) -> None:
    r = client.get("/v1/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_owner_page_and_cursor(client: TestClient) -> None:
    r = client.get(f"/v1/capsules/owner/{OWNER}")
    assert r.status_code == 200
    j = r.json()
    assert [c["id"] for c in j["capsules"]] == ["0xready"]
    assert j["has_next_page"] is True
    assert j["next_cursor"] == "c1"

    r = client.get(f"/v1/capsules/owner/{OWNER}", params={"cursor": j["next_cursor"]})
    assert [c["id"] for c in r.json()["capsules"]] == ["0xlocked"]


def test_owner_all(client: TestClient) -> None:
    r = client.get(f"/v1/capsules/owner/{OWNER}/all")
    assert r.status_code == 200
    assert [c["id"] for c in r.json()["capsules"]] == ["0xready", "0xlocked"]


def test_batch_keeps_positions(client: TestClient) -> None:
    r = client.post("/v1/capsules/batch", json={"ids": ["0xlocked", "0xnope", "0xready"]})
    assert r.status_code == 200
    caps = r.json()["capsules"]
    assert caps[0]["id"] == "0xlocked"
    assert caps[1] is None
    assert caps[2]["id"] == "0xready"


def test_capsule_and_status(client: TestClient) -> None:
    r = client.get("/v1/capsules/0xlocked")
    assert r.status_code == 200
    assert r.json()["unlock_condition"] == {
        "type": "time",
        "unlock_time_ms": NOW + 60_000,
        "threshold": None,
        "approvals": None,
        "price": None,
        "paid": None,
    }

    r = client.get("/v1/capsules/0xlocked/status")
    assert r.status_code == 200
    j = r.json()
    assert j["can_unlock"] is False
    assert j["status_message"] == "Unlocks in 1 minute"
    assert j["time_remaining_ms"] == 60_000


def test_missing_capsule_is_404(client: TestClient) -> None:
    r = client.get("/v1/capsules/0xnope")
    assert r.status_code == 404
    j = r.json()
    assert j["ok"] is False
    assert j["error"]["code"] == "not_found"


def test_unlock_ready(client: TestClient) -> None:
    r = client.post("/v1/capsules/0xready/unlock", headers={"X-Caller-Identity": OWNER})
    assert r.status_code == 200
    j = r.json()
    assert base64.b64decode(j["content_b64"]) == b"hello from the past"
    assert j["content_type"] == "text/plain"


def test_unlock_errors(client: TestClient) -> None:
    r = client.post("/v1/capsules/0xready/unlock")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "missing_caller"

    r = client.post("/v1/capsules/0xready/unlock", headers={"X-Caller-Identity": "0xmallory"})
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "authorization"

    r = client.post("/v1/capsules/0xlocked/unlock", headers={"X-Caller-Identity": OWNER})
    assert r.status_code == 409
    assert r.json()["error"]["message"] == "Unlocks in 1 minute"
