"""Session token issuing and verification"""

import logging
from datetime import UTC, datetime, timedelta

import jwt

from unrustle.core.exceptions import (
    SessionExpiredError,
    SessionMalformedError,
    SessionSignatureError,
    SessionSigningError,
)
from unrustle.models import SessionClaims

logger = logging.getLogger(__name__)


class SessionService:
    """Handle session token creation and validation"""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_days: int = 30):
        if not secret_key:
            raise ValueError("Session secret key cannot be empty")

        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_days = expire_days

    @property
    def max_age(self) -> int:
        """Token lifetime in seconds"""
        return int(timedelta(days=self.expire_days).total_seconds())

    def issue(self, user_id: str, now: datetime | None = None) -> str:
        """Create a signed session token for an internal user id"""
        issued_at = now or datetime.now(UTC)
        payload = {
            "sub": user_id,
            "exp": issued_at + timedelta(days=self.expire_days),
            "iat": issued_at,
        }

        try:
            token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as e:
            logger.error(f"Failed signing session token for user {user_id}: {e}")
            raise SessionSigningError("failed signing session token") from e

        logger.debug(f"Session token created for user: {user_id}")
        return token

    def verify(self, token: str, now: datetime | None = None) -> SessionClaims:
        """Verify a session token and return its claims.

        Raises SessionExpiredError, SessionSignatureError or
        SessionMalformedError (all InvalidSessionError).
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise SessionExpiredError("session token expired") from e
        except jwt.MissingRequiredClaimError as e:
            raise SessionMalformedError(str(e)) from e
        except jwt.InvalidTokenError as e:
            if token.count(".") != 2:
                raise SessionMalformedError("session token is not a signed token") from e
            raise SessionSignatureError(f"session token rejected: {e}") from e

        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise SessionMalformedError("session token missing sub")

        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), UTC)
        except (TypeError, ValueError, OverflowError) as e:
            raise SessionMalformedError("session token has invalid exp") from e

        # exp is re-checked independently of the library
        if (now or datetime.now(UTC)) >= expires_at:
            raise SessionExpiredError("session token expired")

        issued_at = None
        if isinstance(payload.get("iat"), int | float):
            issued_at = datetime.fromtimestamp(payload["iat"], UTC)

        return SessionClaims(user_id=user_id, expires_at=expires_at, issued_at=issued_at)

