"""Domain exceptions for the kilonova client library."""

from enum import Enum

_EXCERPT_LENGTH = 200


def body_excerpt(body: bytes | None, limit: int = _EXCERPT_LENGTH) -> str:
    """Return a printable prefix of a response body for diagnostics.

    Args:
        body: The raw response body, or ``None``.
        limit: Maximum number of bytes to keep.

    Returns:
        The first *limit* bytes decoded as UTF-8 (invalid sequences
        replaced), with ``"..."`` appended when the body was cut.
    """
    if not body:
        return ""
    text = body[:limit].decode("utf-8", errors="replace")
    return text + "..." if len(body) > limit else text


class ErrorKind(str, Enum):
    """Tag identifying which member of the client error family was raised."""

    network = "network"
    timeout = "timeout"
    http = "http"
    application = "application"
    malformed = "malformed"
    unauthenticated = "unauthenticated"
    invalid_argument = "invalid_argument"


class KilonovaError(Exception):
    """Base class for all kilonova library exceptions."""


class ClientError(KilonovaError):
    """Base class for every failure the request pipeline can report.

    Each subclass sets :attr:`kind` so callers can branch on the tag
    instead of on the concrete class.
    """

    kind: ErrorKind


class NetworkError(ClientError):
    """Raised when no response could be obtained (DNS, refused, reset)."""

    kind = ErrorKind.network


class RequestTimeoutError(ClientError):
    """Raised when the server did not answer within the configured timeout."""

    kind = ErrorKind.timeout


class HTTPStatusError(ClientError):
    """Raised for a 4xx/5xx response whose body carried no application error.

    Attributes:
        status_code: The HTTP status code returned by the server.
        body: The raw response body.
    """

    kind = ErrorKind.http

    def __init__(self, status_code: int, body: bytes = b""):
        self.status_code = status_code
        self.body = body
        excerpt = self.body_excerpt
        message = f"HTTP {status_code}"
        if excerpt:
            message = f"{message}: {excerpt}"
        super().__init__(message)

    @property
    def body_excerpt(self) -> str:
        return body_excerpt(self.body)


class ApplicationError(ClientError):
    """Raised when the server answered with a non-success envelope.

    This is the expected "operation rejected" path (wrong password,
    contest already started, ...), independent of the HTTP status code.

    Attributes:
        message: The message carried in the envelope payload.
        status_code: The HTTP status code the envelope arrived with.
    """

    kind = ErrorKind.application

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class MalformedResponseError(ClientError):
    """Raised when a response body cannot be decoded as an envelope.

    Attributes:
        reason: Short description of what was wrong.
        body_excerpt: Prefix of the offending body.
    """

    kind = ErrorKind.malformed

    def __init__(self, reason: str, body: bytes = b""):
        self.reason = reason
        self.body_excerpt = body_excerpt(body)
        super().__init__(
            f"Malformed response ({reason}): {self.body_excerpt!r}"
        )


class AuthenticationRequiredError(ClientError):
    """Raised when an authenticated endpoint is called without a token.

    The request is rejected before anything is sent.  The caller (CLI or
    application) is responsible for guiding the user through login.
    """

    kind = ErrorKind.unauthenticated


class InvalidArgumentError(ClientError):
    """Raised when a path argument or payload is rejected before sending."""

    kind = ErrorKind.invalid_argument
