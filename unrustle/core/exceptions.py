"""Login gateway exceptions."""


class ConfigurationError(Exception):
    """Raised when the service cannot start with the given settings."""


# ==================== Provider ====================


class ProviderError(Exception):
    """Raised when OAuth provider communication fails.

    ``code`` is a short machine-readable reason safe to log, e.g. ``timeout``.
    """

    def __init__(self, message: str, code: str = "provider_error"):
        super().__init__(message)
        self.code = code


class TokenExchangeError(ProviderError):
    """Raised when exchanging an authorization code fails."""


class ProfileFetchError(ProviderError):
    """Raised when fetching the user profile fails."""


# ==================== Login flow ====================


class LoginError(Exception):
    """Raised when a callback cannot complete a login."""


class StateNotFoundError(LoginError):
    """State token was never registered, already consumed, or expired."""


class ProviderDeniedError(LoginError):
    """Provider redirected back with an ``error`` parameter."""

    def __init__(self, error: str):
        super().__init__(f"Provider returned error: {error}")
        self.error = error


class MissingCodeError(LoginError):
    """Callback carried no authorization code."""


class UnknownProviderError(LoginError):
    """No provider is registered under the requested route segment."""


class StateRegistryFullError(LoginError):
    """Too many unexpired logins are pending to accept another one."""


# ==================== Sessions ====================


class SessionSigningError(Exception):
    """Raised when a session token cannot be signed."""


class InvalidSessionError(Exception):
    """Session token failed verification."""


class SessionExpiredError(InvalidSessionError):
    """Session token is past its expiration."""


class SessionSignatureError(InvalidSessionError):
    """Session token signature does not match."""


class SessionMalformedError(InvalidSessionError):
    """Session token cannot be decoded or lacks required claims."""


# ==================== Storage ====================


class UserStoreError(Exception):
    """Raised when the user store cannot complete an operation."""
