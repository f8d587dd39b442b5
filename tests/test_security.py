from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy.exc import OperationalError

import utils.security as security
from models import storage
from models.revoked_token import RevokedToken
from utils.security import (
    generate_access_token,
    generate_refresh_token,
    generate_tokens,
    hash_password,
    hash_token,
    is_token_revoked,
    prune_revoked_tokens,
    revoke_token,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)

PAYLOAD = {"id": "7b0c6a1e-3f59-4a43-9a9e-1f5d2f7c9e10", "email": "a@b.com", "role": "admin", "level": 2}


def _aware(dt):
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _sign(app, claims, secret_key="JWT_SECRET"):
    return jwt.encode(claims, app.config[secret_key], algorithm="HS256")


def _claims(**overrides):
    now = datetime.now(timezone.utc)
    claims = {**PAYLOAD, "sub": PAYLOAD["id"], "iat": int(now.timestamp()),
              "exp": int((now + timedelta(minutes=5)).timestamp())}
    claims.update(overrides)
    return {k: v for k, v in claims.items() if v is not None}


def test_password_hash_roundtrip():
    hashed = hash_password("Sup3r!secret")
    assert hashed != "Sup3r!secret"
    assert verify_password("Sup3r!secret", hashed) is True
    assert verify_password("wrong", hashed) is False
    assert verify_password("anything", "not-an-argon2-hash") is False


def test_refresh_secret_is_derived_and_distinct(app):
    assert app.config["JWT_REFRESH_SECRET"] == app.config["JWT_SECRET"] + "_refresh"


def test_access_token_verifies_to_payload(app):
    with app.app_context():
        token = generate_access_token(PAYLOAD)
        assert verify_access_token(token) == PAYLOAD


def test_refresh_token_verifies_to_payload(app):
    with app.app_context():
        token = generate_refresh_token(PAYLOAD)
        assert verify_refresh_token(token) == PAYLOAD


def test_lifetimes(app):
    with app.app_context():
        access, refresh = generate_tokens(PAYLOAD)
    a = jwt.decode(access, options={"verify_signature": False})
    r = jwt.decode(refresh, options={"verify_signature": False})
    assert a["type"] == "access" and r["type"] == "refresh"
    assert a["exp"] - a["iat"] == 15 * 60
    assert r["exp"] - r["iat"] == 7 * 24 * 3600
    assert a["jti"] != r["jti"]


def test_tokens_are_not_interchangeable(app):
    with app.app_context():
        access, refresh = generate_tokens(PAYLOAD)
        assert verify_refresh_token(access) is None
        assert verify_access_token(refresh) is None


def test_refresh_tagged_token_signed_with_access_secret_is_rejected(app):
    forged = _sign(app, _claims(type="refresh"))
    with app.app_context():
        assert verify_refresh_token(forged) is None
        assert verify_access_token(forged) is None


def test_expired_token_is_rejected(app):
    past = datetime.now(timezone.utc) - timedelta(minutes=1)
    token = _sign(app, _claims(type="access", exp=int(past.timestamp())))
    with app.app_context():
        assert verify_access_token(token) is None


def test_tampered_and_garbage_tokens_are_rejected(app):
    with app.app_context():
        header, _, signature = generate_access_token(PAYLOAD).split(".")
        escalated = generate_access_token({**PAYLOAD, "level": 99}).split(".")[1]
        assert verify_access_token(f"{header}.{escalated}.{signature}") is None
        assert verify_access_token("not.a.jwt") is None
        assert verify_access_token("") is None


def test_legacy_token_accepted_as_access_only(app):
    legacy = _sign(app, _claims())
    with app.app_context():
        assert verify_access_token(legacy) == PAYLOAD
        assert verify_refresh_token(legacy) is None


def test_legacy_token_rejected_when_disabled(app):
    app.config["ACCEPT_LEGACY_TOKENS"] = False
    legacy = _sign(app, _claims())
    with app.app_context():
        assert verify_access_token(legacy) is None


def test_hash_token():
    digest = hash_token("abc")
    assert len(digest) == 64
    assert digest == hash_token("abc")
    assert digest != hash_token("abd")


def test_revoked_token_fails_verification(app):
    with app.app_context():
        access, refresh = generate_tokens(PAYLOAD)
        assert revoke_token(access) is True
        assert revoke_token(refresh) is True
        assert is_token_revoked(access)
        assert verify_access_token(access) is None
        assert verify_refresh_token(refresh) is None


def test_revoke_is_idempotent_and_stores_hash_only(app):
    with app.app_context():
        token = generate_access_token(PAYLOAD)
        revoke_token(token)
        revoke_token(token)
        rows = storage.get_session().query(RevokedToken).all()
        assert len(rows) == 1
        assert rows[0].token_hash == hash_token(token)
        assert token not in rows[0].token_hash


def test_revocation_keeps_token_expiry(app):
    with app.app_context():
        token = generate_access_token(PAYLOAD)
        exp = jwt.decode(token, options={"verify_signature": False})["exp"]
        revoke_token(token)
        row = storage.get_session().query(RevokedToken).one()
        assert int(_aware(row.expires_at).timestamp()) == exp


def test_undecodable_token_gets_fallback_expiry(app):
    with app.app_context():
        revoke_token("garbage")
        row = storage.get_session().query(RevokedToken).one()
        delta = _aware(row.expires_at) - datetime.now(timezone.utc)
        assert timedelta(days=6, hours=23) < delta <= timedelta(days=7)


@pytest.mark.parametrize("value", [123, None, "", ["token"]])
def test_revoke_rejects_non_string_tokens(app, value):
    with app.app_context():
        assert revoke_token(value) is False
        assert verify_refresh_token(value) is None
        assert storage.get_session().query(RevokedToken).count() == 0


def test_prune_removes_only_expired_rows(app):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    expired = _sign(app, _claims(type="access", exp=int(past.timestamp())))
    with app.app_context():
        live = generate_access_token(PAYLOAD)
        revoke_token(expired)
        revoke_token(live)
        assert prune_revoked_tokens() == 1
        assert is_token_revoked(live)
        assert not is_token_revoked(expired)


def test_revocation_lookup_failure_is_unauthenticated(app, monkeypatch, caplog):
    def broken(token):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    with app.app_context():
        token = generate_access_token(PAYLOAD)
        monkeypatch.setattr(security, "is_token_revoked", broken)
        assert verify_access_token(token) is None
    assert "revocation_lookup_failed" in caplog.text


def test_revoke_failure_is_logged_not_raised(app, monkeypatch, caplog):
    def broken_save():
        raise OperationalError("INSERT", {}, Exception("disk full"))

    with app.app_context():
        monkeypatch.setattr(storage, "save", broken_save)
        assert revoke_token("some-token") is False
    assert "token_revoke_failed" in caplog.text


@pytest.mark.parametrize("kind", ["access", "refresh"])
def test_payload_from_admin_row(app, admin, kind):
    with app.app_context():
        issue = generate_access_token if kind == "access" else generate_refresh_token
        verify = verify_access_token if kind == "access" else verify_refresh_token
        assert verify(issue(admin)) == admin
