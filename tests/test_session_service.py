import base64
import json
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from unrustle.core.exceptions import (
    InvalidSessionError,
    SessionExpiredError,
    SessionMalformedError,
    SessionSignatureError,
)
from unrustle.services import SessionService

SECRET = "unit-test-secret"
USER_ID = "6f1c1f1e-8d0a-4c55-9a53-0b5c7f0e2a11"


@pytest.fixture()
def sessions() -> SessionService:
    return SessionService(SECRET, expire_days=30)


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def test_empty_secret_rejected():
    with pytest.raises(ValueError):
        SessionService("")


def test_max_age_matches_expiry(sessions):
    assert sessions.max_age == 30 * 24 * 60 * 60


def test_issue_then_verify_round_trip(sessions):
    token = sessions.issue(USER_ID)
    claims = sessions.verify(token)

    assert claims.user_id == USER_ID
    assert claims.issued_at is not None
    lifetime = claims.expires_at - claims.issued_at
    assert lifetime == timedelta(days=30)


def test_token_valid_until_expiry(sessions):
    issued = datetime.now(UTC).replace(microsecond=0)
    token = sessions.issue(USER_ID, now=issued)

    claims = sessions.verify(token, now=issued + timedelta(days=29, hours=23))
    assert claims.user_id == USER_ID

    with pytest.raises(SessionExpiredError):
        sessions.verify(token, now=issued + timedelta(days=30))


def test_expired_token_classified_as_expired(sessions):
    issued = datetime.now(UTC) - timedelta(days=31)
    token = sessions.issue(USER_ID, now=issued)

    with pytest.raises(SessionExpiredError):
        sessions.verify(token)


def test_wrong_secret_classified_as_signature(sessions):
    token = SessionService("someone-else").issue(USER_ID)

    with pytest.raises(SessionSignatureError):
        sessions.verify(token)


def test_tampered_payload_rejected(sessions):
    token = sessions.issue(USER_ID)
    header, payload, signature = token.split(".")
    claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
    claims["sub"] = "00000000-0000-0000-0000-000000000000"
    forged = ".".join([header, _b64(claims), signature])

    with pytest.raises(SessionSignatureError):
        sessions.verify(forged)


def test_unsigned_token_rejected(sessions):
    exp = int((datetime.now(UTC) + timedelta(days=1)).timestamp())
    forged = ".".join([_b64({"alg": "none", "typ": "JWT"}), _b64({"sub": USER_ID, "exp": exp}), ""])

    with pytest.raises(InvalidSessionError):
        sessions.verify(forged)


@pytest.mark.parametrize("token", ["", "garbage", "a.b", "not.a.jwt.token"])
def test_malformed_tokens(sessions, token):
    with pytest.raises(SessionMalformedError):
        sessions.verify(token)


def test_missing_subject_is_malformed(sessions):
    exp = datetime.now(UTC) + timedelta(days=1)
    token = jwt.encode({"exp": exp}, SECRET, algorithm="HS256")

    with pytest.raises(SessionMalformedError):
        sessions.verify(token)


def test_missing_expiry_is_malformed(sessions):
    token = jwt.encode({"sub": USER_ID}, SECRET, algorithm="HS256")

    with pytest.raises(SessionMalformedError):
        sessions.verify(token)
