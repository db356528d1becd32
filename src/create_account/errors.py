"""Error types raised by the registration and password reset workflows."""


class CreateAccountError(Exception):
    """Base class for every failure reported by create-account."""
    pass


class InputValidationError(CreateAccountError):
    """Raised for bad operator input (username syntax, password mismatch)."""
    pass


class ConfigError(CreateAccountError):
    """Raised when the homeserver config cannot be used."""
    pass


class TransportError(CreateAccountError):
    """Raised when an HTTP call fails before the server could answer."""
    pass


class ProtocolError(CreateAccountError):
    """Raised when the homeserver rejects a registration request."""

    def __init__(self, message: str, status_code: int, errcode: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.errcode = errcode


class AccountNotFoundError(CreateAccountError):
    """Raised when a password reset targets an account that does not exist."""

    def __init__(self, username: str):
        super().__init__(f"Username could not be found: {username}")
        self.username = username


class StoreError(CreateAccountError):
    """Raised when the account store fails."""
    pass
