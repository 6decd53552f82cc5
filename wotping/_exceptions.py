"""Exceptions raised by wotping."""

from __future__ import annotations


class WotPingError(Exception):
    """Base class for wotping errors."""


class RawSocketPermissionError(PermissionError):
    """Raised when raw socket creation fails due to missing privileges."""


class ResolveError(WotPingError, RuntimeError):
    """Raised when a hostname cannot be resolved to IPv4 addresses."""

    def __init__(self, host: str, reason: str) -> None:
        super().__init__(f"Resolve error {host}: {reason}")
        self.host = host
        self.reason = reason


class ServerFileError(WotPingError):
    """Raised when a server-list file cannot be read or does not match the schema."""


class ConfigurationError(WotPingError):
    """Raised when no usable server was provided by any source."""
