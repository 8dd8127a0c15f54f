"""
Token lifetime tests: TTL enforcement on every operation, and the
expiry sweeper's expire-then-purge cycle. Time is driven by a fake clock.
"""

import time

import pytest
from fastapi.testclient import TestClient

from qrlogin.main import create_app
from qrlogin.services.confirmation import ConfirmationAuthority
from qrlogin.services.errors import Expired, NotFound
from qrlogin.services.polling import PollingGateway
from qrlogin.services.state_machine import TokenState
from qrlogin.services.sweeper import ExpirySweeper


def test_confirm_after_ttl_returns_expired(client, clock, auth_headers):
    token = client.post("/qr-login/init").json()["token"]
    clock.advance(121)

    resp = client.post(f"/qr-login/confirm/{token}", headers=auth_headers())
    assert resp.status_code == 410
    assert resp.json()["error"] == "expired"


def test_exchange_after_ttl_returns_expired(client, clock, auth_headers):
    token = client.post("/qr-login/init").json()["token"]
    client.post(f"/qr-login/confirm/{token}", headers=auth_headers())
    clock.advance(121)

    resp = client.post(f"/qr-login/exchange/{token}")
    assert resp.status_code == 410


def test_status_after_ttl_looks_like_unknown_token(client, clock):
    token = client.post("/qr-login/init").json()["token"]
    clock.advance(121)

    expired = client.get(f"/qr-login/status/{token}")
    unknown = client.get("/qr-login/status/never-issued")

    assert expired.status_code == unknown.status_code == 404
    assert expired.json() == unknown.json()


def test_status_does_not_mutate(store):
    gateway = PollingGateway(store)
    token_id, _ = store.create()
    before = store.get(token_id)

    for _ in range(5):
        assert gateway.status(token_id) is False

    assert store.get(token_id) is before


def test_sweeper_expires_then_purges(store, clock):
    sweeper = ExpirySweeper(store, grace_seconds=60)
    first, _ = store.create()
    second, _ = store.create()

    result = sweeper.sweep()
    assert (result.expired, result.purged) == (0, 0)

    clock.advance(121)
    result = sweeper.sweep()
    assert (result.expired, result.purged) == (2, 0)
    assert store.get(first).state == TokenState.EXPIRED
    with pytest.raises(NotFound):
        PollingGateway(store).status(first)

    clock.advance(61)
    result = sweeper.sweep()
    assert (result.expired, result.purged) == (0, 2)
    assert store.outstanding == 0
    with pytest.raises(NotFound):
        store.get(second)


def test_sweeper_leaves_live_tokens_alone(store, clock, db):
    sweeper = ExpirySweeper(store, grace_seconds=60)
    authority = ConfirmationAuthority(store, db)
    token_id, _ = store.create()
    authority.confirm(token_id, db.get_user("alice"))

    clock.advance(100)
    sweeper.sweep()
    assert store.get(token_id).state == TokenState.CONFIRMED
    assert authority.exchange(token_id).id == "alice"


def test_sweeper_purges_exchange_tombstones(store, clock, db):
    sweeper = ExpirySweeper(store, grace_seconds=60)
    authority = ConfirmationAuthority(store, db)
    token_id, _ = store.create()
    authority.confirm(token_id, db.get_user("alice"))
    authority.exchange(token_id)

    clock.advance(30)
    assert sweeper.sweep().purged == 0
    assert store.get(token_id).consumed

    clock.advance(31)
    assert sweeper.sweep().purged == 1
    with pytest.raises(NotFound):
        authority.exchange(token_id)


def test_confirmed_token_expiring_loses_binding(store, clock, db):
    sweeper = ExpirySweeper(store, grace_seconds=60)
    authority = ConfirmationAuthority(store, db)
    token_id, _ = store.create()
    authority.confirm(token_id, db.get_user("bob"))

    clock.advance(121)
    sweeper.sweep()

    token = store.get(token_id)
    assert token.state == TokenState.EXPIRED
    assert token.bound_user is None
    with pytest.raises(Expired):
        authority.exchange(token_id)


def test_background_sweeper_runs_in_lifespan(settings, db, clock):
    settings.SWEEPER_ENABLED = True
    settings.SWEEP_INTERVAL_SECONDS = 0.01
    app = create_app(settings=settings, db=db, clock=clock)

    with TestClient(app) as client:
        token = client.post("/qr-login/init").json()["token"]
        clock.advance(121)

        deadline = time.monotonic() + 5
        while app.state.store.get(token).state != TokenState.EXPIRED:
            assert time.monotonic() < deadline, "sweeper never expired the token"
            time.sleep(0.01)
