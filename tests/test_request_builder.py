"""Unit tests for RequestBuilder."""

import json
from urllib.parse import parse_qs, urlsplit

import pytest

from kilonova.api import endpoints
from kilonova.api.endpoints import AuthPolicy, Encoding, Endpoint
from kilonova.api.request_builder import RequestBuilder, validate_id
from kilonova.auth.interfaces import Credential
from kilonova.auth.token_store import MemoryTokenStore
from kilonova.core.exceptions import (
    AuthenticationRequiredError,
    ErrorKind,
    InvalidArgumentError,
)
from kilonova.core.models import Number

BASE = "https://kilonova.test"


@pytest.fixture()
def store():
    return MemoryTokenStore(Credential("tok123"))


@pytest.fixture()
def builder(store):
    return RequestBuilder(BASE + "/", store)


# ---------------------------------------------------------------------------
# URL and headers
# ---------------------------------------------------------------------------


def test_path_arguments_are_substituted(builder):
    request = builder.build(endpoints.CONTEST_REGISTER, {"contest_id": 17})
    assert request.method == "POST"
    assert request.url == BASE + "/api/contest/17/register"


def test_string_id_is_accepted(builder):
    request = builder.build(endpoints.CONTEST_INFO, {"contest_id": "0042"})
    assert request.url == BASE + "/api/contest/42"


def test_token_sent_raw_in_authorization_header(builder):
    request = builder.build(endpoints.CONTEST_REGISTER, {"contest_id": 1})
    assert request.headers["Authorization"] == "tok123"


def test_user_agent_and_accept(builder):
    request = builder.build(endpoints.CONTEST_INFO, {"contest_id": 1})
    assert request.headers["User-Agent"].startswith("kilonova-cli/")
    assert request.headers["Accept"] == "application/json"


def test_download_accepts_anything(builder):
    request = builder.build(
        endpoints.CONTEST_LEADERBOARD_CSV, {"contest_id": 3}
    )
    assert request.url == BASE + "/assets/contest/3/leaderboard.csv"
    assert request.headers["Accept"] == "*/*"
    assert request.body is None


# ---------------------------------------------------------------------------
# Authentication policy
# ---------------------------------------------------------------------------


def test_required_without_token_raises():
    builder = RequestBuilder(BASE, MemoryTokenStore())
    with pytest.raises(AuthenticationRequiredError) as exc_info:
        builder.build(endpoints.CONTEST_REGISTER, {"contest_id": 1})
    assert exc_info.value.kind is ErrorKind.unauthenticated


def test_optional_without_token_sends_no_header():
    builder = RequestBuilder(BASE, MemoryTokenStore())
    request = builder.build(endpoints.CONTEST_INFO, {"contest_id": 1})
    assert "Authorization" not in request.headers


def test_anonymous_never_sends_token(builder):
    request = builder.build(
        endpoints.LOGIN, payload={"username": "a", "password": "b"}
    )
    assert "Authorization" not in request.headers


def test_token_read_on_every_build(store, builder):
    store.write(Credential("newer"))
    request = builder.build(endpoints.CONTEST_REGISTER, {"contest_id": 1})
    assert request.headers["Authorization"] == "newer"


# ---------------------------------------------------------------------------
# Encodings
# ---------------------------------------------------------------------------


def test_form_encoding(builder):
    request = builder.build(
        endpoints.CONTEST_UPDATE,
        {"contest_id": 5},
        {"visible": True, "max_subs": 3, "end_time": None},
    )
    assert request.headers["Content-Type"] == (
        "application/x-www-form-urlencoded"
    )
    assert parse_qs(request.body) == {"visible": ["true"], "max_subs": ["3"]}


def test_json_encoding(builder):
    request = builder.build(
        endpoints.CONTEST_UPDATE_PROBLEMS,
        {"contest_id": 5},
        {"list": [3, 1, 2]},
    )
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.body) == {"list": [3, 1, 2]}


def test_json_encoding_keeps_big_numbers_exact(builder):
    request = builder.build(
        endpoints.SET_BIO, payload={"n": Number("12345678901234567890")}
    )
    assert json.loads(request.body) == {"n": 12345678901234567890}


def test_json_empty_payload_is_empty_object(builder):
    request = builder.build(endpoints.SET_BIO)
    assert json.loads(request.body) == {}


def test_raw_bytes_body(builder):
    request = builder.build(endpoints.SET_BIO, payload=b'{"bio":"x"}')
    assert request.body == b'{"bio":"x"}'


def test_none_encoding_puts_payload_in_query(builder):
    endpoint = Endpoint("/api/things", encoding=Encoding.none)
    request = builder.build(endpoint, payload={"page": 2})
    assert parse_qs(urlsplit(request.url).query) == {"page": ["2"]}
    assert request.body is None


def test_none_encoding_rejects_bytes(builder):
    with pytest.raises(InvalidArgumentError):
        builder.build(
            endpoints.CONTEST_INFO, {"contest_id": 1}, b"unexpected"
        )


# ---------------------------------------------------------------------------
# Path validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "bad", ["abc", "../1", "1/2", "", "-1", "1.5", 2**63, True, None, 1.0]
)
def test_invalid_ids_are_rejected(builder, bad):
    with pytest.raises(InvalidArgumentError):
        builder.build(endpoints.CONTEST_INFO, {"contest_id": bad})


def test_missing_path_argument(builder):
    with pytest.raises(InvalidArgumentError, match="missing"):
        builder.build(endpoints.CONTEST_INFO)


def test_unexpected_path_argument(builder):
    with pytest.raises(InvalidArgumentError, match="unexpected"):
        builder.build(endpoints.CONTEST_INFO, {"contest_id": 1, "extra": 2})


def test_base_url_without_scheme_is_rejected():
    builder = RequestBuilder("kilonova.ro", MemoryTokenStore())
    with pytest.raises(InvalidArgumentError, match="http:// or https://"):
        builder.build(endpoints.CONTEST_INFO, {"contest_id": 1})


def test_validate_id_normalises():
    assert validate_id("contest ID", " 007 ") == "7"
    assert validate_id("contest ID", Number(12)) == "12"


def test_endpoint_path_params():
    endpoint = Endpoint(
        "/api/{a}/x/{b}", auth=AuthPolicy.anonymous
    )
    assert endpoint.path_params == ("a", "b")
