"""HTTP transport: one round trip per call, no retries."""

import logging
import time
from dataclasses import dataclass

import requests

from kilonova.config import DEFAULT_TIMEOUT
from kilonova.core.exceptions import NetworkError, RequestTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawResponse:
    """Status and body of a completed HTTP exchange.

    Attributes:
        status_code: The HTTP status code.
        body: The full response body.
        content_type: The ``Content-Type`` header, or ``""``.
    """

    status_code: int
    body: bytes
    content_type: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400


class Transport:
    """Sends prepared requests over a shared :class:`requests.Session`.

    A 4xx/5xx status is *not* an error at this layer: the body may carry a
    structured application error, so the response is returned as-is and
    classified by the dispatcher.

    Args:
        timeout: Per-request timeout in seconds, applied to both the
            connect and the read phase.
        session: An existing session to reuse; a new one is created when
            ``None``.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, request: requests.PreparedRequest) -> RawResponse:
        """Perform the HTTP round trip.

        The response is read fully and released before returning, on every
        exit path.

        Args:
            request: The prepared request to send.

        Returns:
            A :class:`RawResponse` for any status code the server answered
            with.

        Raises:
            RequestTimeoutError: If the server did not answer in time.
            NetworkError: If no response could be obtained.
        """
        started = time.monotonic()
        try:
            with self.session.send(request, timeout=self.timeout) as response:
                raw = RawResponse(
                    status_code=response.status_code,
                    body=response.content,
                    content_type=response.headers.get("Content-Type", ""),
                )
        except requests.Timeout as e:
            # ConnectTimeout is also a ConnectionError; check Timeout first.
            raise RequestTimeoutError(
                f"{request.method} {request.url} timed out after "
                f"{self.timeout:g}s"
            ) from e
        except requests.RequestException as e:
            raise NetworkError(
                f"{request.method} {request.url} failed: {e}"
            ) from e

        logger.debug(
            "%s %s -> %d (%d bytes, %.0f ms)",
            request.method,
            request.url,
            raw.status_code,
            len(raw.body),
            (time.monotonic() - started) * 1000,
        )
        return raw

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
