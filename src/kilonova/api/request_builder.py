"""Turns an endpoint descriptor plus arguments into a ready-to-send request."""

import json
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlsplit

import requests

from kilonova.api.endpoints import AuthPolicy, Encoding, Endpoint
from kilonova.auth.interfaces import Credential, TokenStore
from kilonova.config import USER_AGENT
from kilonova.core.exceptions import (
    AuthenticationRequiredError,
    InvalidArgumentError,
)
from kilonova.core.models import Number, json_default

# Kilonova object IDs are positive 64-bit integers.
_ID_PATTERN = re.compile(r"^[0-9]{1,19}$")
_MAX_ID = 2**63 - 1

Payload = Mapping[str, Any] | bytes | None


def validate_id(name: str, value: Any) -> str:
    """Validate one path argument and return its URL-safe text.

    Raises:
        InvalidArgumentError: If *value* is not a non-negative integer ID.
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be a numeric ID, got {value!r}")
    text = str(value).strip() if isinstance(value, (int, str, Number)) else None
    if text is None or not _ID_PATTERN.match(text) or int(text) > _MAX_ID:
        raise InvalidArgumentError(f"{name} must be a numeric ID, got {value!r}")
    return quote(str(int(text)), safe="")


def _form_value(value: Any) -> str | list[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [_form_value(v) for v in value]  # type: ignore[misc]
    return str(value)


def _form_fields(payload: Mapping[str, Any]) -> dict[str, str | list[str]]:
    return {
        key: _form_value(value)
        for key, value in payload.items()
        if value is not None
    }


class RequestBuilder:
    """Builds :class:`requests.PreparedRequest` objects for endpoints.

    The session token is read from the injected
    :class:`~kilonova.auth.interfaces.TokenStore` on every build, so a
    login or logout earlier in the same process is picked up immediately.

    Args:
        base_url: Server root, e.g. ``"https://kilonova.ro"``.
        token_store: Source of the session token.
        user_agent: Value of the ``User-Agent`` header.
    """

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore,
        user_agent: str = USER_AGENT,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store
        self.user_agent = user_agent

    def build(
        self,
        endpoint: Endpoint,
        args: Mapping[str, Any] | None = None,
        payload: Payload = None,
    ) -> requests.PreparedRequest:
        """Build the request for one call.

        Args:
            endpoint: The descriptor of the remote operation.
            args: Values for the placeholders in ``endpoint.path``.
            payload: Body fields (JSON and form encodings), query
                parameters (no-body encodings), or raw body bytes.

        Returns:
            A prepared request, not yet sent.

        Raises:
            InvalidArgumentError: If the base URL is not an absolute
                http(s) URL, a path argument is missing, unexpected or not a
                numeric ID, or the payload does not suit the encoding.
            AuthenticationRequiredError: If the endpoint requires a session
                token and none is stored.
        """
        self._check_base_url()
        url = self.base_url + self.render_path(endpoint, args or {})
        headers = {
            "User-Agent": self.user_agent,
            "Accept": (
                "*/*" if endpoint.encoding is Encoding.download
                else "application/json"
            ),
        }

        credential = self._credential_for(endpoint)
        if credential is not None:
            headers["Authorization"] = credential.token

        data: Any = None
        params: dict[str, str | list[str]] | None = None
        if endpoint.encoding is Encoding.json:
            headers["Content-Type"] = "application/json"
            if isinstance(payload, bytes):
                data = payload
            else:
                data = json.dumps(
                    dict(payload or {}), default=json_default
                ).encode("utf-8")
        elif endpoint.encoding is Encoding.form:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            if isinstance(payload, bytes):
                data = payload
            elif payload:
                data = _form_fields(payload)
        else:
            if isinstance(payload, bytes):
                raise InvalidArgumentError(
                    f"{endpoint.path} takes no request body"
                )
            if payload:
                params = _form_fields(payload)

        try:
            return requests.Request(
                endpoint.method, url, headers=headers, data=data, params=params
            ).prepare()
        except requests.RequestException as e:
            raise InvalidArgumentError(f"invalid URL {url!r}: {e}") from e

    @staticmethod
    def render_path(endpoint: Endpoint, args: Mapping[str, Any]) -> str:
        """Substitute validated path arguments into ``endpoint.path``.

        Raises:
            InvalidArgumentError: On missing, unexpected, or non-numeric
                arguments.
        """
        expected = endpoint.path_params
        unexpected = sorted(set(args) - set(expected))
        if unexpected:
            raise InvalidArgumentError(
                f"unexpected path argument(s) for {endpoint.path}: "
                f"{', '.join(unexpected)}"
            )
        values: dict[str, str] = {}
        for name in expected:
            if name not in args:
                raise InvalidArgumentError(
                    f"missing path argument {name!r} for {endpoint.path}"
                )
            values[name] = validate_id(name, args[name])
        return endpoint.path.format(**values)

    def _check_base_url(self) -> None:
        try:
            parts = urlsplit(self.base_url)
        except ValueError:
            parts = None
        if (
            parts is None
            or parts.scheme not in ("http", "https")
            or not parts.netloc
        ):
            raise InvalidArgumentError(
                "base URL must start with http:// or https://, "
                f"got {self.base_url!r}"
            )

    def _credential_for(self, endpoint: Endpoint) -> Credential | None:
        if endpoint.auth is AuthPolicy.anonymous:
            return None
        credential = self.token_store.read()
        if credential is None and endpoint.auth is AuthPolicy.required:
            raise AuthenticationRequiredError(
                "You are not logged in. Run 'kilonova auth login' first."
            )
        return credential
