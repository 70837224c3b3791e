"""Core exceptions for the relay."""


class RelayError(Exception):
    """Base exception for relay errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(RelayError):
    """Raised when there's an issue with the configuration."""
    pass


class InvalidRequestError(RelayError):
    """Raised when an incoming request is invalid."""

    def __init__(self, message: str, code: str = "invalid_request") -> None:
        super().__init__(message)
        self.code = code


class MissingInputError(InvalidRequestError):
    """Raised when a required request field was not supplied."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="missing_input")


class PayloadTooLargeError(InvalidRequestError):
    """Raised when the declared request body exceeds the configured ceiling."""

    def __init__(self, message: str, limit: int) -> None:
        super().__init__(message, code="payload_too_large")
        self.limit = limit


class StreamDecodeError(RelayError):
    """Raised when upstream bytes cannot be decoded as UTF-8 text."""
    pass


class ClientDisconnectedError(RelayError):
    """Raised inside a relay when the downstream client has gone away."""
    pass
