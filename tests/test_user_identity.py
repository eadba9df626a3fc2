import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.db.models import User
from app.services.user_identity import (
    IdentityResolutionError,
    UserIdentityResolver,
    fallback_user_id,
)


def _rls_refusal(*args, **kwargs):
    raise OperationalError("INSERT INTO users", {}, Exception("new row violates row-level security policy"))


def test_resolve_twice_returns_same_id(resolver, db_session):
    first = resolver.resolve("auth-user-123")
    second = resolver.resolve("auth-user-123")
    assert first == second

    rows = db_session.execute(select(User).where(User.auth_id == "auth-user-123")).scalars().all()
    assert len(rows) == 1
    assert rows[0].id == first


def test_distinct_identities_get_distinct_ids(resolver):
    assert resolver.resolve("auth-a") != resolver.resolve("auth-b")


def test_identity_is_not_stored_as_email(resolver, db_session):
    uid = resolver.resolve("auth-user-123")
    user = db_session.get(User, uid)
    assert user.auth_id == "auth-user-123"
    assert user.email is None


@pytest.mark.parametrize(
    "external_id, expected",
    [
        ("550e8400-e29b-41d4-a716-446655440000", 0x55440000),
        ("auth-user-00000abc", 0xABC),
        ("prefix-abc-zzzz", 0xABC),
        ("auth-user-123", 1),       # "user-123": pas de préfixe hexa
        ("user-00000000", 1),       # zéro -> 1
        ("", 1),
        ("0x00abcd", 0xABCD),     # préfixe 0x
        ("user-0xZZ", 1),
        ("-0000abc", 1),          # signe non lu
    ],
)
def test_fallback_user_id(external_id, expected):
    assert fallback_user_id(external_id) == expected


def test_insert_refused_falls_back_to_pseudo_id(resolver, db_session, monkeypatch):
    monkeypatch.setattr(db_session, "commit", _rls_refusal)
    assert resolver.resolve("auth-user-00000abc") == 0xABC


def test_insert_refused_without_fallback_raises(db_session, monkeypatch):
    strict = UserIdentityResolver(db_session, allow_fallback=False)
    monkeypatch.setattr(db_session, "commit", _rls_refusal)
    with pytest.raises(IdentityResolutionError):
        strict.resolve("auth-user-123")


def test_lookup_error_still_creates_user(resolver, db_session, monkeypatch):
    real_execute = db_session.execute
    calls = {"n": 0}

    def flaky(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("SELECT", {}, Exception("connection reset"))
        return real_execute(*args, **kwargs)

    monkeypatch.setattr(db_session, "execute", flaky)
    uid = resolver.resolve("auth-flaky")
    monkeypatch.setattr(db_session, "execute", real_execute)

    assert resolver.resolve("auth-flaky") == uid


def test_concurrent_insert_reuses_existing_row(resolver, db_session, session_factory, monkeypatch):
    # une autre requête a créé la ligne entre le lookup et l'insert
    other = session_factory()
    existing = User(auth_id="auth-race")
    other.add(existing)
    other.commit()
    other.close()

    real_lookup = resolver._lookup
    calls = {"n": 0}

    def stale_lookup(external_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_lookup(external_id)

    monkeypatch.setattr(resolver, "_lookup", stale_lookup)
    assert resolver.resolve("auth-race") == existing.id
