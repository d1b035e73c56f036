"""
Error Types

Exceptions raised by the endpoint catalog and console client. Each carries
a ``suggestion`` the tool layer passes back to the caller.
"""

from typing import Optional


class ConsoleError(Exception):
    """Base class for all midas-mcp errors."""

    suggestion: Optional[str] = None

    def __init__(self, message: str, suggestion: Optional[str] = None):
        super().__init__(message)
        if suggestion is not None:
            self.suggestion = suggestion


class NotConnectedError(ConsoleError):
    suggestion = "Call connect first"

    def __init__(self, message: str = "Not connected to any console"):
        super().__init__(message)


class InvalidEndpointError(ConsoleError):
    suggestion = "Use search_endpoints or list_endpoints to find a valid group/endpoint pair"

    def __init__(self, group: str, endpoint: str):
        super().__init__(f"Invalid endpoint: {group}/{endpoint}")
        self.group = group
        self.endpoint = endpoint


class ReadOnlyEndpointError(ConsoleError):
    suggestion = "Use get_value to read this endpoint"

    def __init__(self, endpoint: str):
        super().__init__(f"Endpoint {endpoint} is read-only (meter) and cannot be set")
        self.endpoint = endpoint


class TypeMismatchError(ConsoleError):
    """Value kind does not match the endpoint's argument type."""

    def __init__(self, expected: str, value, message: Optional[str] = None):
        super().__init__(
            message or f"Expected a number for {expected} argument, got {type(value).__name__}",
            suggestion=f"Pass a finite numeric value for {expected} endpoints",
        )
        self.expected = expected
        self.value = value


class TransportError(ConsoleError):
    """Socket open/send/close failure."""

    suggestion = "Check the console IP address, ports and network connection"


class DataLoadError(ConsoleError):
    """Endpoint database missing or malformed. Fatal at startup."""
