"""Data model dataclasses returned by the request pipeline."""

import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


# ----------------------
# Number
# ----------------------


class Number:
    """A JSON number kept as its literal text.

    Kilonova reports timestamps, cooldowns and scores as JSON numbers (and
    occasionally as numeric strings) of unspecified width.  Wrapping them
    keeps every digit; conversion to ``int`` happens only where the value
    is used, through :meth:`as_int` with an explicit range.
    """

    __slots__ = ("_text",)

    def __init__(self, value: "int | str | Decimal | Number"):
        if isinstance(value, Number):
            text = value._text
        elif isinstance(value, bool):
            raise TypeError("booleans are not numbers")
        elif isinstance(value, int):
            text = str(value)
        elif isinstance(value, (Decimal, float)):
            text = str(value) if isinstance(value, Decimal) else repr(value)
        elif isinstance(value, str):
            text = value.strip()
        else:
            raise TypeError(f"cannot build a Number from {type(value).__name__}")
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"not a number: {value!r}") from None
        if not parsed.is_finite():
            raise ValueError(f"not a finite number: {value!r}")
        self._text = text

    @classmethod
    def optional(cls, value: Any) -> "Number | None":
        """Return ``None`` for absent values (``null`` or ``""``)."""
        if value is None or value == "":
            return None
        return cls(value)

    def as_decimal(self) -> Decimal:
        return Decimal(self._text)

    def as_int(
        self, minimum: int | None = None, maximum: int | None = None
    ) -> int:
        """Convert to ``int`` after checking the value is integral and in range.

        Args:
            minimum: Smallest accepted value, or ``None`` for no bound.
            maximum: Largest accepted value, or ``None`` for no bound.

        Returns:
            The value as a Python ``int``.

        Raises:
            ValueError: If the value has a fractional part or falls outside
                ``[minimum, maximum]``.
        """
        value = self.as_decimal()
        if value != value.to_integral_value():
            raise ValueError(f"{self._text} is not an integer")
        result = int(value)
        if minimum is not None and result < minimum:
            raise ValueError(f"{self._text} is below {minimum}")
        if maximum is not None and result > maximum:
            raise ValueError(f"{self._text} is above {maximum}")
        return result

    def to_json(self) -> int | str:
        """Return an exact JSON-friendly value: ``int`` when integral."""
        value = self.as_decimal()
        if value == value.to_integral_value() and "e" not in self._text.lower():
            return int(value)
        return self._text

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Number({self._text!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Number):
            return self.as_decimal() == other.as_decimal()
        if isinstance(other, (int, Decimal)) and not isinstance(other, bool):
            return self.as_decimal() == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.as_decimal())


def json_default(value: Any) -> Any:
    """``default=`` hook for :func:`json.dumps` that keeps numbers exact.

    Raises:
        TypeError: For any value other than :class:`Number` or
            :class:`~decimal.Decimal`.
    """
    if isinstance(value, Number):
        return value.to_json()
    if isinstance(value, Decimal):
        return Number(value).to_json()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


# ----------------------
# Envelope
# ----------------------


@dataclass(frozen=True)
class Envelope:
    """The ``{"status": ..., "data": ...}`` shape shared by every endpoint."""

    status: str
    data: Any

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    def error_message(self) -> str:
        """Return the payload of a failed envelope as a message string."""
        if isinstance(self.data, str):
            return self.data
        if self.data is None:
            return f"request failed with status {self.status!r}"
        return json.dumps(self.data, default=str)


# ----------------------
# Contest
# ----------------------


@dataclass
class ContestInfo:
    """Settings and schedule of a contest."""

    id: int
    name: str
    start_time: str
    """Start time as sent by the server (RFC 3339)."""

    end_time: str
    max_subs: int
    """Maximum submissions per problem; ``0`` or negative means unlimited."""

    visible: bool
    public_leaderboard: bool
    register_during_contest: bool
    public_join: bool = False
    contest_type: str | None = None
    leaderboard_style: str | None = None
    leaderboard_advanced_filter: bool = False
    change_leaderboard_freeze: bool = False

    icpc_submission_penalty: Number | None = None
    """Penalty minutes per wrong ICPC submission."""

    per_user_time: Number | None = None
    """Seconds each contestant gets in a USACO-style contest, or ``None``."""

    question_cooldown: Number | None = None
    submission_cooldown: Number | None = None


@dataclass
class ContestProblem:
    """A problem attached to a contest."""

    id: int
    name: str
    max_score: Number | None = None


@dataclass
class Announcement:
    """A contest announcement."""

    id: int
    text: str
    created_at: str


@dataclass
class Question:
    """A contestant question and its (optional) answer."""

    id: int
    author_id: int
    text: str
    asked_at: str
    response: str | None = None
    responded_at: str | None = None

    @property
    def answered(self) -> bool:
        return self.response is not None


# ----------------------
# Leaderboard
# ----------------------


@dataclass
class LeaderboardEntry:
    """One contestant's row on the leaderboard."""

    user_id: int
    user_name: str
    scores: dict[str, Number] = field(default_factory=dict)
    """Score per problem ID (string keys, as sent by the server)."""

    total: Number | None = None


@dataclass
class Leaderboard:
    """Contest standings."""

    problem_names: dict[str, str]
    """Problem ID to display name, in column order."""

    entries: list[LeaderboardEntry]

    @property
    def problem_ids(self) -> list[str]:
        return list(self.problem_names)
