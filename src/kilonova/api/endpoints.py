"""Endpoint descriptors for the Kilonova web API.

Each descriptor pairs a URL template with its HTTP method, body encoding,
authentication policy and the shape its payload decodes into.  Path
placeholders (``{contest_id}``) are filled in by the request builder after
validation.
"""

from dataclasses import dataclass
from enum import Enum
from string import Formatter
from typing import Any, Callable, Generic, TypeVar

from kilonova.api import shapes
from kilonova.core.models import (
    Announcement,
    ContestInfo,
    ContestProblem,
    Leaderboard,
    Question,
)

T = TypeVar("T")


class Encoding(str, Enum):
    """How the request body is built and how the response is read."""

    json = "json"
    """Payload sent as a JSON object."""

    form = "form"
    """Payload sent as ``application/x-www-form-urlencoded``."""

    none = "none"
    """No body; the payload, if any, goes to the query string."""

    download = "download"
    """No body; the response is raw bytes, not an envelope."""


class AuthPolicy(str, Enum):
    """Whether the session token must, may, or must not be sent."""

    required = "required"
    optional = "optional"
    anonymous = "anonymous"


@dataclass(frozen=True)
class Endpoint(Generic[T]):
    """Static definition of one remote operation.

    Attributes:
        path: URL template relative to the server root, e.g.
            ``"/api/contest/{contest_id}/register"``.
        method: HTTP method.
        encoding: Body encoding, see :class:`Encoding`.
        auth: Token policy, see :class:`AuthPolicy`.
        shape: Maps the success payload to the typed result.
    """

    path: str
    method: str = "GET"
    encoding: Encoding = Encoding.none
    auth: AuthPolicy = AuthPolicy.optional
    shape: Callable[[Any], T] = shapes.as_any

    @property
    def path_params(self) -> tuple[str, ...]:
        """Names of the placeholders in :attr:`path`, in order."""
        return tuple(
            name
            for _, name, _, _ in Formatter().parse(self.path)
            if name is not None
        )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

LOGIN: Endpoint[str] = Endpoint(
    "/api/auth/login", "POST", Encoding.form, AuthPolicy.anonymous,
    shapes.as_token,
)
LOGOUT: Endpoint[str] = Endpoint(
    "/api/auth/logout", "POST", Encoding.form, AuthPolicy.required,
    shapes.as_text,
)
FORGOT_PASSWORD: Endpoint[str] = Endpoint(
    "/api/auth/forgotPassword", "POST", Encoding.form, AuthPolicy.anonymous,
    shapes.as_text,
)

# ---------------------------------------------------------------------------
# User settings
# ---------------------------------------------------------------------------

SET_BIO: Endpoint[str] = Endpoint(
    "/api/user/self/setBio", "POST", Encoding.json, AuthPolicy.required,
    shapes.as_text,
)
CHANGE_NAME: Endpoint[str] = Endpoint(
    "/api/user/self/changeName", "POST", Encoding.json, AuthPolicy.required,
    shapes.as_text,
)
CHANGE_PASSWORD: Endpoint[str] = Endpoint(
    "/api/user/self/changePassword", "POST", Encoding.json,
    AuthPolicy.required, shapes.as_text,
)
CHANGE_EMAIL: Endpoint[str] = Endpoint(
    "/api/user/self/changeEmail", "POST", Encoding.form, AuthPolicy.required,
    shapes.as_text,
)
RESEND_EMAIL: Endpoint[str] = Endpoint(
    "/api/user/resendEmail", "POST", Encoding.form, AuthPolicy.required,
    shapes.as_text,
)

# ---------------------------------------------------------------------------
# Contests
# ---------------------------------------------------------------------------

CONTEST_CREATE: Endpoint[int] = Endpoint(
    "/api/contest/create", "POST", Encoding.form, AuthPolicy.required,
    shapes.as_id,
)
CONTEST_INFO: Endpoint[ContestInfo] = Endpoint(
    "/api/contest/{contest_id}", "GET", Encoding.none, AuthPolicy.optional,
    shapes.parse_contest_info,
)
CONTEST_UPDATE: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/update", "POST", Encoding.form,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_DELETE: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/delete", "POST", Encoding.form,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_REGISTER: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/register", "POST", Encoding.form,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_START: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/startRegistration", "POST", Encoding.form,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_PROBLEMS: Endpoint[list[ContestProblem]] = Endpoint(
    "/api/contest/{contest_id}/problems", "GET", Encoding.none,
    AuthPolicy.optional, shapes.parse_problems,
)
CONTEST_UPDATE_PROBLEMS: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/update/problems", "POST", Encoding.json,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_ANNOUNCEMENTS: Endpoint[list[Announcement]] = Endpoint(
    "/api/contest/{contest_id}/announcements", "GET", Encoding.none,
    AuthPolicy.optional, shapes.parse_announcements,
)
CONTEST_CREATE_ANNOUNCEMENT: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/createAnnouncement", "POST", Encoding.form,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_UPDATE_ANNOUNCEMENT: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/updateAnnouncement", "POST", Encoding.form,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_DELETE_ANNOUNCEMENT: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/deleteAnnouncement", "POST", Encoding.form,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_ALL_QUESTIONS: Endpoint[list[Question]] = Endpoint(
    "/api/contest/{contest_id}/allQuestions", "GET", Encoding.none,
    AuthPolicy.required, shapes.parse_questions,
)
CONTEST_MY_QUESTIONS: Endpoint[list[Question]] = Endpoint(
    "/api/contest/{contest_id}/questions", "GET", Encoding.none,
    AuthPolicy.required, shapes.parse_questions,
)
CONTEST_ASK_QUESTION: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/askQuestion", "POST", Encoding.form,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_ANSWER_QUESTION: Endpoint[str] = Endpoint(
    "/api/contest/{contest_id}/answerQuestion", "POST", Encoding.form,
    AuthPolicy.required, shapes.as_text,
)
CONTEST_LEADERBOARD: Endpoint[Leaderboard] = Endpoint(
    "/api/contest/{contest_id}/leaderboard", "GET", Encoding.none,
    AuthPolicy.optional, shapes.parse_leaderboard,
)
CONTEST_LEADERBOARD_CSV: Endpoint[bytes] = Endpoint(
    "/assets/contest/{contest_id}/leaderboard.csv", "GET", Encoding.download,
    AuthPolicy.optional,
)
