from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Response

from authflow.services.sessions import SESSION_COOKIE_NAME, SessionIssuer

def test_issued_credential_validates_to_its_user(sessions):
    credential = sessions.issue(42)

    assert sessions.validate(credential.token) == 42
    assert credential.max_age == 7 * 24 * 3600


def test_credential_never_validates_to_another_user(sessions):
    first = sessions.issue(1)
    second = sessions.issue(2)

    assert sessions.validate(first.token) == 1
    assert sessions.validate(second.token) == 2


def test_tampered_credential_is_rejected(sessions):
    token = sessions.issue(1).token
    header, payload, signature = token.split(".")
    forged_payload = jwt.encode({"sub": "2", "exp": 4102444800}, "other", algorithm="HS256").split(".")[1]
    flipped = ("A" if signature[0] != "A" else "B") + signature[1:]

    assert sessions.validate(f"{header}.{forged_payload}.{signature}") is None
    assert sessions.validate(f"{header}.{payload}.{flipped}") is None


def test_credential_signed_with_another_secret_is_rejected(sessions):
    other = SessionIssuer("another-secret")

    assert sessions.validate(other.issue(1).token) is None


def test_expired_credential_is_rejected(session_secret):
    past = datetime.now(timezone.utc) - timedelta(days=8)
    issuer = SessionIssuer(session_secret, clock=lambda: past)

    assert issuer.validate(issuer.issue(1).token) is None


def test_missing_or_malformed_credentials_fail_closed(sessions, session_secret):
    assert sessions.validate(None) is None
    assert sessions.validate("") is None
    assert sessions.validate("garbage") is None
    no_subject = jwt.encode({"exp": 4102444800}, session_secret, algorithm="HS256")
    assert sessions.validate(no_subject) is None
    bad_subject = jwt.encode({"sub": "abc", "exp": 4102444800}, session_secret, algorithm="HS256")
    assert sessions.validate(bad_subject) is None


def test_cookie_is_http_only_and_same_site_strict(sessions):
    response = Response()

    sessions.attach(response, sessions.issue(1))

    header = response.headers["set-cookie"]
    assert header.startswith(f"{SESSION_COOKIE_NAME}=")
    assert "httponly" in header.lower()
    assert "samesite=strict" in header.lower()
    assert "; secure" not in header.lower()


def test_production_cookie_is_secure_and_revocation_matches_attributes(session_secret):
    issuer = SessionIssuer(session_secret, secure_cookies=True)
    response = Response()

    issuer.revoke(response)

    header = response.headers["set-cookie"].lower()
    assert header.startswith(f"{SESSION_COOKIE_NAME}=")
    assert "max-age=0" in header
    assert "httponly" in header
    assert "samesite=strict" in header
    assert "; secure" in header
