"""
Errors raised or emitted by the Gemini client.
"""
from typing import Any, Optional


class GeminiError(Exception):
    """Base class for every error raised by this package."""


class InvalidStateError(GeminiError):
    """A connect or disconnect was attempted while another transition is in flight."""

    def __init__(self, name: str, state: Any, operation: str = "connect"):
        self.name = name
        self.state = state
        self.operation = operation
        super().__init__(f"Could not {operation} '{name}'. State: {state}")


class MissingCredentialsError(GeminiError, ValueError):
    """A private operation was requested without both key and secret."""


class NotConnectedError(GeminiError):
    """A message was sent on a channel that has no open socket."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Socket '{name}' was not initialized")


class TransportError(GeminiError):
    """
    Wraps a failure of the underlying socket.

    The original exception is kept on ``error`` and as ``__cause__``.
    """

    def __init__(self, name: str, error: BaseException):
        self.name = name
        self.error = error
        super().__init__(f"Transport failure on '{name}': {error}")


class MalformedFrameError(GeminiError, ValueError):
    """A frame received on a socket could not be parsed as JSON."""

    def __init__(self, name: str, frame: Any):
        self.name = name
        self.frame = frame
        super().__init__(f"Malformed frame on '{name}'")


class GeminiAPIError(GeminiError):
    """The REST API answered with an error payload."""

    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        self.status_code = status_code
        self.reason = reason
        super().__init__(message)
