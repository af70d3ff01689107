"""Error taxonomy for the weather chat client.

Every failure that can end a turn maps to one ``ErrorKind``. The stream
session surfaces all of them except ``CANCELLED`` to the user through
``user_message``.
"""
from enum import Enum
from typing import Optional

OFFLINE_MESSAGE = "You are offline. Check your connection and try again."
NETWORK_FAILURE_MESSAGE = "Network error. Please try again."


class ErrorKind(Enum):
    """Enumeration of error categories."""
    CANCELLED = "cancelled"
    OFFLINE = "offline"
    NETWORK_FAILURE = "network_failure"
    HTTP_ERROR = "http_error"
    PROTOCOL_ANOMALY = "protocol_anomaly"
    INVALID_INPUT = "invalid_input"


class WeatherChatError(Exception):
    """Base exception for all weather chat errors."""
    kind: ErrorKind = ErrorKind.NETWORK_FAILURE

    @property
    def user_message(self) -> str:
        return str(self)


class StreamCancelled(WeatherChatError):
    """The stream was superseded or cancelled. Never shown to the user."""
    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Request cancelled"):
        super().__init__(message)


class OfflineError(WeatherChatError):
    kind = ErrorKind.OFFLINE

    def __init__(self, message: str = OFFLINE_MESSAGE):
        super().__init__(message)


class NetworkFailure(WeatherChatError):
    """Transport-level failure with no HTTP response to show."""
    kind = ErrorKind.NETWORK_FAILURE

    def __init__(self, message: str = NETWORK_FAILURE_MESSAGE):
        super().__init__(message)


class HttpStatusError(WeatherChatError):
    """The agent endpoint answered with a non-success status."""
    kind = ErrorKind.HTTP_ERROR

    def __init__(self, status: int, reason: Optional[str] = None, body: str = ""):
        self.status = status
        self.reason = reason or ""
        self.body = body
        message = f"HTTP {status}"
        if self.reason:
            message += f" {self.reason}"
        if body:
            message += f" - {body}"
        super().__init__(message)


class StreamProtocolError(WeatherChatError):
    """The response could not be read as a stream at all."""
    kind = ErrorKind.PROTOCOL_ANOMALY


class InvalidQuestionError(WeatherChatError):
    """The user's text was rejected before any request was made."""
    kind = ErrorKind.INVALID_INPUT
