"""Envelope decoding.

Every JSON response from the Kilonova API has the form::

    {"status": "success" | "error", "data": <payload>}

where the payload type depends on the endpoint.  The payload is only
interpreted after the status has been checked.
"""

import json
from decimal import Decimal
from typing import Any, Callable, TypeVar

from kilonova.core.exceptions import ApplicationError, MalformedResponseError
from kilonova.core.models import Envelope

T = TypeVar("T")


def parse_envelope(body: bytes) -> Envelope:
    """Parse a response body into an :class:`Envelope`.

    JSON floats are read as :class:`~decimal.Decimal` and integers as
    Python ``int``, so no digits are lost.

    Args:
        body: The raw response body.

    Returns:
        The parsed envelope, whatever its status.

    Raises:
        MalformedResponseError: If the body is not JSON, not an object, or
            has no string ``status`` field.
    """
    try:
        document = json.loads(body.decode("utf-8"), parse_float=Decimal)
    except UnicodeDecodeError:
        raise MalformedResponseError("body is not UTF-8", body) from None
    except ValueError as e:
        raise MalformedResponseError(f"invalid JSON: {e}", body) from None

    if not isinstance(document, dict):
        raise MalformedResponseError("top level is not an object", body)
    status = document.get("status")
    if not isinstance(status, str):
        raise MalformedResponseError("missing status field", body)
    return Envelope(status=status, data=document.get("data"))


def unwrap(
    envelope: Envelope,
    shape: Callable[[Any], T],
    body: bytes = b"",
    status_code: int | None = None,
) -> T:
    """Check the envelope status, then map its payload through *shape*.

    Args:
        envelope: A parsed envelope.
        shape: Function building the typed result from the payload.
        body: The raw body, kept for diagnostics only.
        status_code: The HTTP status the envelope arrived with.

    Returns:
        The typed result.

    Raises:
        ApplicationError: If the envelope status is not ``"success"``.
        MalformedResponseError: If the payload does not fit *shape*.
    """
    if not envelope.ok:
        raise ApplicationError(envelope.error_message(), status_code=status_code)
    try:
        return shape(envelope.data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedResponseError(
            f"unexpected payload: {e.__class__.__name__}: {e}", body
        ) from None


def decode(body: bytes, shape: Callable[[Any], T]) -> T:
    """Decode a JSON envelope body straight into a typed result."""
    return unwrap(parse_envelope(body), shape, body)


def passthrough(body: bytes) -> bytes:
    """Return a binary body untouched."""
    return body
