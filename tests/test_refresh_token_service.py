from datetime import timedelta

import pytest
from sqlmodel import Session

from app.db.session import engine
from app.models.base import ensure_utc, utc_now
from app.models.refresh_token import RefreshToken
from app.services import refresh_token_service as ledger
from app.services.token_service import fingerprint_refresh_token


def test_issue_persists_active_token(session, alice):
    record, value = ledger.issue(session, alice.id, 'Firefox on Linux')
    found = ledger.lookup(session, value)
    assert found.id == record.id
    assert found.is_active()
    assert found.client_context == 'Firefox on Linux'
    assert found.token_hash == fingerprint_refresh_token(value)
    lifetime = ensure_utc(found.expires_at) - ensure_utc(found.issued_at)
    assert lifetime == timedelta(days=7)


def test_lookup_unknown_value(session):
    with pytest.raises(ledger.RefreshTokenNotFound):
        ledger.lookup(session, 'missing')


def test_expiry_boundary_is_inclusive():
    now = utc_now()
    record = RefreshToken(token_hash='x', user_id='u', issued_at=now - timedelta(days=7), expires_at=now)
    assert record.is_expired(now)
    assert not record.is_active(now)
    assert not record.is_expired(now - timedelta(microseconds=1))


def test_rotate_links_and_revokes(session, alice):
    record, value = ledger.issue(session, alice.id)
    successor, new_value = ledger.rotate(session, record)

    old = ledger.lookup(session, value)
    assert old.revoked
    assert old.revoked_at is not None
    assert old.replaced_by_token_hash == fingerprint_refresh_token(new_value)
    assert successor.is_active()
    assert successor.user_id == alice.id


def test_rotate_requires_active_token(session, alice):
    record, _ = ledger.issue(session, alice.id, now=utc_now() - timedelta(days=8))
    with pytest.raises(ledger.RefreshTokenInactive):
        ledger.rotate(session, record)


def test_concurrent_rotation_only_one_wins(session, alice):
    _, value = ledger.issue(session, alice.id)
    with Session(engine) as first, Session(engine) as second:
        first_view = ledger.lookup(first, value)
        second_view = ledger.lookup(second, value)
        assert first_view.is_active() and second_view.is_active()

        ledger.rotate(first, first_view)
        with pytest.raises(ledger.RefreshTokenConflict):
            ledger.rotate(second, second_view)

    with Session(engine) as check:
        assert len(ledger.list_active_for_user(check, alice.id)) == 1


def test_revoke_is_idempotent(session, alice):
    record, value = ledger.issue(session, alice.id)
    ledger.revoke(session, record)
    ledger.revoke(session, record)
    found = ledger.lookup(session, value)
    assert found.revoked
    assert found.replaced_by_token_hash is None


def test_revoke_chain_revokes_every_descendant(session, alice):
    first, first_value = ledger.issue(session, alice.id)
    second, _ = ledger.rotate(session, first)
    third, third_value = ledger.rotate(session, second)

    revoked = ledger.revoke_chain(session, first)

    assert revoked == 1
    assert ledger.lookup(session, third_value).revoked
    assert ledger.lookup(session, first_value).revoked
    assert ledger.list_active_for_user(session, alice.id) == []


def test_revoke_chain_leaves_other_chains_alone(session, alice):
    laptop, _ = ledger.issue(session, alice.id, 'laptop')
    phone, phone_value = ledger.issue(session, alice.id, 'phone')
    ledger.rotate(session, laptop)

    ledger.revoke_chain(session, laptop)

    assert ledger.lookup(session, phone_value).is_active()


def test_list_and_revoke_all_for_user(session, alice):
    ledger.issue(session, alice.id, 'laptop')
    ledger.issue(session, alice.id, 'phone')
    ledger.issue(session, alice.id, 'old', now=utc_now() - timedelta(days=10))
    assert {record.client_context for record in ledger.list_active_for_user(session, alice.id)} == {'laptop', 'phone'}

    assert ledger.revoke_all_for_user(session, alice.id) == 3
    assert ledger.list_active_for_user(session, alice.id) == []


def test_purge_expired_only_removes_old_records(session, alice):
    ledger.issue(session, alice.id, now=utc_now() - timedelta(days=40))
    _, fresh_value = ledger.issue(session, alice.id)

    deleted = ledger.purge_expired(session, utc_now() - timedelta(days=30))

    assert deleted == 1
    assert ledger.lookup(session, fresh_value).is_active()


def test_client_context_is_truncated(session, alice):
    record, _ = ledger.issue(session, alice.id, 'x' * 1000)
    assert len(record.client_context) == ledger.CLIENT_CONTEXT_MAX_LEN
