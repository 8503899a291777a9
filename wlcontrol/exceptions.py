"""Exceptions raised by the wlcontrol backend."""

from __future__ import annotations


class WlControlError(Exception):
    """Base exception for wlcontrol errors."""


class RemoteServiceError(WlControlError):
    """Exception raised when iwd or BlueZ rejects or fails a call."""

    def __init__(self, error_name: str = "", message: str = "Remote call failed") -> None:
        """Initialize RemoteServiceError.

        Args:
            error_name: The D-Bus error name reported by the service.
            message: The error text reported by the service.
        """
        super().__init__(message)
        self.error_name = error_name
        self.message = message


class ServiceUnavailable(WlControlError):
    """Exception raised when a service is not running on the bus."""

    def __init__(self, message: str = "Service is not available") -> None:
        """Initialize ServiceUnavailable."""
        super().__init__(message)


class CommandConflict(WlControlError):
    """Exception raised when a command is not valid in the current state."""

    def __init__(self, message: str = "Command not allowed right now") -> None:
        """Initialize CommandConflict."""
        super().__init__(message)


class CredentialDeclined(WlControlError):
    """Exception raised when the user closes a password prompt without answering."""

    def __init__(self, message: str = "Connection cancelled") -> None:
        """Initialize CredentialDeclined."""
        super().__init__(message)


class InvalidCommand(WlControlError):
    """Exception raised when a command payload fails validation."""

    def __init__(self, message: str = "Invalid command") -> None:
        """Initialize InvalidCommand."""
        super().__init__(message)
