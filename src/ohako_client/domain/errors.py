"""Error taxonomy for the Ohako client."""


class OhakoError(Exception):
    """Base class for client errors."""


class NotAuthenticatedError(OhakoError):
    """Raised when an operation needs a session and none exists."""


class StaleMutationError(OhakoError):
    """Raised when a rollback is suppressed because a newer write exists."""


class GatewayError(OhakoError):
    """Base class for failures reported by the remote gateway."""


class NetworkError(GatewayError):
    """Transport failure, timeout, or unexpected response from the backend."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidCredentialsError(GatewayError):
    """The backend rejected a username/password pair."""


class UsernameTakenError(GatewayError):
    """Registration failed because the username already exists."""


class NotFoundError(GatewayError):
    """The requested resource does not exist."""
