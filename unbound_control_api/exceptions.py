"""
Unbound Control API exceptions.

This module defines the error taxonomy shared by the transports, the control
client, the zone file engine and the HTTP layer.
"""


class ControlAPIError(Exception):
    """Base exception for all control API errors."""
    pass


class TransportError(ControlAPIError):
    """Raised when connecting, reading or writing to the daemon fails or times out."""
    pass


class ProtocolError(ControlAPIError):
    """Raised when the daemon replies with an error or an unusable response."""
    pass


class DecodeError(ControlAPIError):
    """Raised for a single malformed status or stats line."""
    pass


class ConfigError(ControlAPIError):
    """Raised when configuration is invalid."""
    pass


class RecordNotFoundError(ControlAPIError):
    """Raised when no record matches a (name, type) pair."""
    pass


class ZoneFileError(ControlAPIError):
    """Raised when a zone file cannot be located, read or written."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class PartialFailureError(ControlAPIError):
    """Raised when a zone file was written but the daemon reload failed.

    The file on disk already holds the new content; only the reload needs
    to be retried.
    """

    def __init__(self, message: str, path: str, cause: Exception):
        super().__init__(message)
        self.path = path
        self.cause = cause
