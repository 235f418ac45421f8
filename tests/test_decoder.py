"""Unit tests for envelope decoding and payload shapes."""

import json
from decimal import Decimal

import pytest

from kilonova.api import decoder, shapes
from kilonova.core.exceptions import ApplicationError, MalformedResponseError
from kilonova.core.models import Number


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


def test_success_envelope():
    envelope = decoder.parse_envelope(b'{"status":"success","data":"ok"}')
    assert envelope.ok
    assert envelope.data == "ok"


def test_truncated_body_is_malformed():
    with pytest.raises(MalformedResponseError) as exc_info:
        decoder.parse_envelope(b'{"status":"succ')
    assert exc_info.value.reason.startswith("invalid JSON")
    assert exc_info.value.body_excerpt == '{"status":"succ'


@pytest.mark.parametrize(
    "body, reason",
    [
        (b"\xff\xfe", "body is not UTF-8"),
        (b"[1, 2]", "top level is not an object"),
        (b'{"data": 1}', "missing status field"),
        (b'{"status": 1}', "missing status field"),
    ],
)
def test_malformed_envelopes(body, reason):
    with pytest.raises(MalformedResponseError) as exc_info:
        decoder.parse_envelope(body)
    assert exc_info.value.reason == reason


def test_large_integers_are_exact():
    envelope = decoder.parse_envelope(
        b'{"status":"success","data":1234567890123456789}'
    )
    assert envelope.data == 1234567890123456789
    assert isinstance(envelope.data, int)


def test_large_integer_string_survives_reencoding():
    envelope = decoder.parse_envelope(
        b'{"status":"success","data":"1234567890123456789"}'
    )
    number = Number(envelope.data)
    assert str(number) == "1234567890123456789"
    assert json.dumps(number.to_json()) == "1234567890123456789"


def test_floats_become_decimals():
    envelope = decoder.parse_envelope(b'{"status":"success","data":0.1}')
    assert envelope.data == Decimal("0.1")


def test_long_body_excerpt_is_cut():
    with pytest.raises(MalformedResponseError) as exc_info:
        decoder.parse_envelope(b"x" * 1000)
    assert exc_info.value.body_excerpt == "x" * 200 + "..."


# ---------------------------------------------------------------------------
# Unwrap
# ---------------------------------------------------------------------------


def test_error_envelope_raises_application_error():
    with pytest.raises(ApplicationError) as exc_info:
        decoder.decode(b'{"status":"error","data":"bad password"}', shapes.as_text)
    assert exc_info.value.message == "bad password"


def test_shape_failure_is_malformed():
    with pytest.raises(MalformedResponseError, match="unexpected payload"):
        decoder.decode(
            b'{"status":"success","data":"nope"}', shapes.parse_contest_info
        )


def test_passthrough_returns_bytes_unchanged():
    body = bytes(range(256))
    assert decoder.passthrough(body) is body


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


def test_as_text():
    assert shapes.as_text("hi") == "hi"
    assert shapes.as_text(None) == ""
    assert shapes.as_text(12) == "12"
    with pytest.raises(TypeError):
        shapes.as_text({"a": 1})


@pytest.mark.parametrize("bad", ["", "a b", "tab\there", None])
def test_as_token_rejects_unusable_tokens(bad):
    with pytest.raises(ValueError):
        shapes.as_token(bad)


def test_as_id():
    assert shapes.as_id(42) == 42
    assert shapes.as_id("42") == 42
    with pytest.raises(ValueError):
        shapes.as_id("4.2")


def test_parse_contest_info():
    contest = shapes.parse_contest_info(
        {
            "id": 7,
            "name": "Round 1",
            "start_time": "2024-01-01T10:00:00Z",
            "end_time": "2024-01-01T13:00:00Z",
            "max_subs": 50,
            "visible": True,
            "public_leaderboard": False,
            "register_during_contest": True,
            "type": "official",
            "per_user_time": 3600,
            "submission_cooldown": Decimal("1.5"),
        }
    )
    assert contest.id == 7
    assert contest.contest_type == "official"
    assert contest.visible is True
    assert contest.per_user_time == 3600
    assert str(contest.submission_cooldown) == "1.5"
    assert contest.question_cooldown is None


def test_parse_problems_null_is_empty():
    assert shapes.parse_problems(None) == []


def test_parse_questions():
    (q,) = shapes.parse_questions(
        [
            {
                "id": 1,
                "author_id": 9,
                "text": "Is n < 10?",
                "asked_at": "2024-01-01T10:00:00Z",
                "response": None,
            }
        ]
    )
    assert q.author_id == 9
    assert not q.answered


def test_parse_leaderboard_orders_problems_numerically():
    board = shapes.parse_leaderboard(
        {
            "problem_names": {"10": "Ten", "2": "Two", "1": "One"},
            "entries": [
                {
                    "user": {"id": 3, "name": "alice"},
                    "scores": {"1": 100, "2": Decimal("37.5"), "10": None},
                    "total": Decimal("137.5"),
                }
            ],
        }
    )
    assert board.problem_ids == ["1", "2", "10"]
    entry = board.entries[0]
    assert entry.user_name == "alice"
    assert entry.scores == {"1": Number(100), "2": Number("37.5")}
    assert str(entry.total) == "137.5"


def test_parse_leaderboard_uses_problem_order():
    board = shapes.parse_leaderboard(
        {
            "problem_names": {"1": "One", "2": "Two", "3": "Three"},
            "problem_order": [3, 1],
            "entries": [],
        }
    )
    assert board.problem_ids == ["3", "1", "2"]
