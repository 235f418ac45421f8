"""Target shapes: functions mapping an envelope payload to a typed result.

Every function takes the already-unwrapped ``data`` field of a success
envelope.  A payload that does not fit raises ``KeyError``, ``TypeError``
or ``ValueError``; the decoder turns those into
:class:`~kilonova.core.exceptions.MalformedResponseError`.
"""

from decimal import Decimal
from typing import Any

from kilonova.core.models import (
    Announcement,
    ContestInfo,
    ContestProblem,
    Leaderboard,
    LeaderboardEntry,
    Number,
    Question,
)


def _object(data: Any) -> dict:
    if not isinstance(data, dict):
        raise TypeError(f"expected an object, got {type(data).__name__}")
    return data


def _objects(data: Any) -> list[dict]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise TypeError(f"expected a list, got {type(data).__name__}")
    return [_object(item) for item in data]


def _int(value: Any) -> int:
    return Number(value).as_int()


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


# ----------------------
# Scalars
# ----------------------


def as_any(data: Any) -> Any:
    """Return the payload unchanged."""
    return data


def as_text(data: Any) -> str:
    """Return a message payload as a string.

    Numbers are rendered exactly; ``null`` becomes an empty string.
    """
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    if isinstance(data, (int, Decimal)) and not isinstance(data, bool):
        return str(data)
    raise TypeError(f"expected a string, got {type(data).__name__}")


def as_token(data: Any) -> str:
    """Return a login payload as a non-empty session token."""
    token = as_text(data)
    if not token or " " in token or not (token.isascii() and token.isprintable()):
        raise ValueError("not a usable session token")
    return token


def as_id(data: Any) -> int:
    """Return a payload holding a newly created object's ID."""
    return _int(data)


# ----------------------
# Contests
# ----------------------


def parse_contest_info(data: Any) -> ContestInfo:
    raw = _object(data)
    return ContestInfo(
        id=_int(raw["id"]),
        name=str(raw.get("name", "")),
        start_time=str(raw.get("start_time", "")),
        end_time=str(raw.get("end_time", "")),
        max_subs=_int(raw.get("max_subs", 0)),
        visible=bool(raw.get("visible", False)),
        public_leaderboard=bool(raw.get("public_leaderboard", False)),
        register_during_contest=bool(
            raw.get("register_during_contest", False)
        ),
        public_join=bool(raw.get("public_join", False)),
        contest_type=_optional_str(raw.get("type")),
        leaderboard_style=_optional_str(raw.get("leaderboard_style")),
        leaderboard_advanced_filter=bool(
            raw.get("leaderboard_advanced_filter", False)
        ),
        change_leaderboard_freeze=bool(
            raw.get("change_leaderboard_freeze", False)
        ),
        icpc_submission_penalty=Number.optional(
            raw.get("icpc_submission_penalty")
        ),
        per_user_time=Number.optional(raw.get("per_user_time")),
        question_cooldown=Number.optional(raw.get("question_cooldown")),
        submission_cooldown=Number.optional(raw.get("submission_cooldown")),
    )


def parse_problems(data: Any) -> list[ContestProblem]:
    return [
        ContestProblem(
            id=_int(raw["id"]),
            name=str(raw.get("name", "")),
            max_score=Number.optional(raw.get("max_score")),
        )
        for raw in _objects(data)
    ]


def parse_announcements(data: Any) -> list[Announcement]:
    return [
        Announcement(
            id=_int(raw["id"]),
            text=str(raw.get("text", "")),
            created_at=str(raw.get("created_at", "")),
        )
        for raw in _objects(data)
    ]


def parse_questions(data: Any) -> list[Question]:
    return [
        Question(
            id=_int(raw["id"]),
            author_id=_int(raw.get("author_id", 0)),
            text=str(raw.get("text", "")),
            asked_at=str(raw.get("asked_at", "")),
            response=_optional_str(raw.get("response")),
            responded_at=_optional_str(raw.get("responded_at")),
        )
        for raw in _objects(data)
    ]


# ----------------------
# Leaderboard
# ----------------------


def _problem_sort_key(problem_id: str) -> tuple[int, int | str]:
    # Numeric IDs first, in numeric order; anything else after, by text.
    if problem_id.isdigit():
        return (0, int(problem_id))
    return (1, problem_id)


def parse_leaderboard(data: Any) -> Leaderboard:
    """Map the leaderboard payload, fixing the problem column order.

    The server sends problem names as a JSON object, whose key order is not
    meaningful.  When a ``problem_order`` list is present it is used;
    otherwise problems are ordered by numeric ID.
    """
    raw = _object(data)
    names = {
        str(pid): str(name)
        for pid, name in _object(raw.get("problem_names") or {}).items()
    }
    order = raw.get("problem_order")
    if isinstance(order, list) and order:
        ids = [str(pid) for pid in order if str(pid) in names]
        ids += [pid for pid in names if pid not in ids]
    else:
        ids = sorted(names, key=_problem_sort_key)

    entries: list[LeaderboardEntry] = []
    for entry in _objects(raw.get("entries")):
        user = _object(entry.get("user") or {})
        scores = {
            str(pid): Number(score)
            for pid, score in _object(entry.get("scores") or {}).items()
            if score is not None
        }
        entries.append(
            LeaderboardEntry(
                user_id=_int(user.get("id", 0)),
                user_name=str(user.get("name", "")),
                scores=scores,
                total=Number.optional(entry.get("total")),
            )
        )

    return Leaderboard(
        problem_names={pid: names[pid] for pid in ids},
        entries=entries,
    )
