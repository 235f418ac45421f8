"""Single entry point for every call to the Kilonova API."""

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from kilonova.api import decoder
from kilonova.api.endpoints import Encoding, Endpoint
from kilonova.api.request_builder import Payload, RequestBuilder
from kilonova.api.transport import RawResponse, Transport
from kilonova.auth.interfaces import TokenStore
from kilonova.config import Settings
from kilonova.core.exceptions import (
    ApplicationError,
    HTTPStatusError,
    MalformedResponseError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Dispatcher:
    """Builds, sends and decodes requests described by an :class:`Endpoint`.

    The response body is always decoded before the HTTP status is judged:
    an error envelope becomes an
    :class:`~kilonova.core.exceptions.ApplicationError` whether it arrived
    with HTTP 200 or HTTP 400, and an HTTP error without one becomes an
    :class:`~kilonova.core.exceptions.HTTPStatusError`.

    Args:
        builder: Builds requests and attaches the session token.
        transport: Performs the HTTP round trip.
    """

    def __init__(self, builder: RequestBuilder, transport: Transport):
        self.builder = builder
        self.transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, token_store: TokenStore
    ) -> "Dispatcher":
        """Wire a dispatcher from resolved settings and a token store."""
        return cls(
            RequestBuilder(
                settings.base_url, token_store, user_agent=settings.user_agent
            ),
            Transport(timeout=settings.timeout),
        )

    @property
    def token_store(self) -> TokenStore:
        return self.builder.token_store

    def call(
        self,
        endpoint: Endpoint[T],
        args: Mapping[str, Any] | None = None,
        payload: Payload = None,
    ) -> T:
        """Perform one remote operation and return its typed result.

        Args:
            endpoint: The descriptor of the remote operation.
            args: Values for the path placeholders.
            payload: Body fields, query parameters, or raw body bytes.

        Returns:
            The payload mapped through ``endpoint.shape``, or the raw body
            for download endpoints.

        Raises:
            ClientError: One of its subclasses, classified as described on
                the class.  Argument and authentication errors are raised
                before anything is sent.
        """
        request = self.builder.build(endpoint, args, payload)
        logger.debug("Calling %s %s", request.method, request.url)
        raw = self.transport.send(request)

        if endpoint.encoding is Encoding.download:
            if raw.ok:
                return decoder.passthrough(raw.body)  # type: ignore[return-value]
            self._raise_for_error_body(raw)

        try:
            envelope = decoder.parse_envelope(raw.body)
        except MalformedResponseError:
            if not raw.ok:
                raise HTTPStatusError(raw.status_code, raw.body) from None
            raise

        if envelope.ok and not raw.ok:
            raise HTTPStatusError(raw.status_code, raw.body)
        return decoder.unwrap(
            envelope, endpoint.shape, raw.body, status_code=raw.status_code
        )

    @staticmethod
    def _raise_for_error_body(raw: RawResponse) -> None:
        """Raise the most specific error for a failed download."""
        try:
            envelope = decoder.parse_envelope(raw.body)
        except MalformedResponseError:
            raise HTTPStatusError(raw.status_code, raw.body) from None
        if not envelope.ok:
            raise ApplicationError(
                envelope.error_message(), status_code=raw.status_code
            )
        raise HTTPStatusError(raw.status_code, raw.body)

    def close(self) -> None:
        self.transport.close()
