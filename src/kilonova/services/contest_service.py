"""Service layer that wraps the dispatcher for contest operations."""

from collections.abc import Iterable
from datetime import datetime

from kilonova.api import endpoints
from kilonova.api.dispatcher import Dispatcher
from kilonova.api.request_builder import validate_id
from kilonova.core.exceptions import InvalidArgumentError
from kilonova.core.models import (
    Announcement,
    ContestInfo,
    ContestProblem,
    Leaderboard,
    Question,
)

CONTEST_TYPES = ("official", "virtual")


def _timestamp(value: datetime | str) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class ContestService:
    """Contest management on top of the request pipeline.

    Every method performs exactly one call through the injected
    :class:`~kilonova.api.dispatcher.Dispatcher` and lets any
    :class:`~kilonova.core.exceptions.ClientError` propagate.
    """

    def __init__(self, dispatcher: Dispatcher):
        """Initialise the service.

        Args:
            dispatcher: The pipeline every request goes through.
        """
        self.dispatcher = dispatcher

    # -------------------------
    # Lifecycle
    # -------------------------

    def create(self, name: str, contest_type: str = "virtual") -> int:
        """Create a contest owned by the logged-in user.

        Args:
            name: Display name of the contest.
            contest_type: ``"official"`` or ``"virtual"``.

        Returns:
            The new contest's ID.

        Raises:
            InvalidArgumentError: If *name* is blank or *contest_type* is
                unknown.
        """
        if not name.strip():
            raise InvalidArgumentError("contest name must not be empty")
        if contest_type not in CONTEST_TYPES:
            raise InvalidArgumentError(
                f"contest type must be one of {', '.join(CONTEST_TYPES)}"
            )
        return self.dispatcher.call(
            endpoints.CONTEST_CREATE,
            payload={"name": name, "type": contest_type},
        )

    def delete(self, contest_id: int | str) -> str:
        return self.dispatcher.call(
            endpoints.CONTEST_DELETE, {"contest_id": contest_id}
        )

    def register(self, contest_id: int | str) -> str:
        return self.dispatcher.call(
            endpoints.CONTEST_REGISTER, {"contest_id": contest_id}
        )

    def start(self, contest_id: int | str) -> str:
        """Start the personal timer in a per-user-time contest."""
        return self.dispatcher.call(
            endpoints.CONTEST_START, {"contest_id": contest_id}
        )

    # -------------------------
    # Settings
    # -------------------------

    def info(self, contest_id: int | str) -> ContestInfo:
        return self.dispatcher.call(
            endpoints.CONTEST_INFO, {"contest_id": contest_id}
        )

    def update(
        self,
        contest_id: int | str,
        *,
        start_time: datetime | str | None = None,
        end_time: datetime | str | None = None,
        max_subs: int | None = None,
        visible: bool | None = None,
        register_during_contest: bool | None = None,
        public_leaderboard: bool | None = None,
    ) -> str:
        """Change one or more contest settings.

        Only the settings passed explicitly are sent; the server keeps the
        others unchanged.

        Returns:
            The server's confirmation message.

        Raises:
            InvalidArgumentError: If no setting was given.
        """
        fields = {
            "start_time": (
                _timestamp(start_time) if start_time is not None else None
            ),
            "end_time": _timestamp(end_time) if end_time is not None else None,
            "max_subs": max_subs,
            "visible": visible,
            "register_during_contest": register_during_contest,
            "public_leaderboard": public_leaderboard,
        }
        payload = {k: v for k, v in fields.items() if v is not None}
        if not payload:
            raise InvalidArgumentError("nothing to update")
        return self.dispatcher.call(
            endpoints.CONTEST_UPDATE, {"contest_id": contest_id}, payload
        )

    # -------------------------
    # Problems
    # -------------------------

    def problems(self, contest_id: int | str) -> list[ContestProblem]:
        return self.dispatcher.call(
            endpoints.CONTEST_PROBLEMS, {"contest_id": contest_id}
        )

    def update_problems(
        self, contest_id: int | str, problem_ids: Iterable[int | str]
    ) -> str:
        """Replace the contest's problem list.

        Args:
            contest_id: The contest to modify.
            problem_ids: Problem IDs in display order.

        Raises:
            InvalidArgumentError: If any problem ID is not numeric.  Nothing
                is sent in that case.
        """
        ids = [int(validate_id("problem ID", pid)) for pid in problem_ids]
        return self.dispatcher.call(
            endpoints.CONTEST_UPDATE_PROBLEMS,
            {"contest_id": contest_id},
            {"list": ids},
        )

    # -------------------------
    # Announcements
    # -------------------------

    def announcements(self, contest_id: int | str) -> list[Announcement]:
        return self.dispatcher.call(
            endpoints.CONTEST_ANNOUNCEMENTS, {"contest_id": contest_id}
        )

    def create_announcement(self, contest_id: int | str, text: str) -> str:
        return self.dispatcher.call(
            endpoints.CONTEST_CREATE_ANNOUNCEMENT,
            {"contest_id": contest_id},
            {"text": text},
        )

    def update_announcement(
        self, contest_id: int | str, announcement_id: int | str, text: str
    ) -> str:
        return self.dispatcher.call(
            endpoints.CONTEST_UPDATE_ANNOUNCEMENT,
            {"contest_id": contest_id},
            {"id": validate_id("announcement ID", announcement_id), "text": text},
        )

    def delete_announcement(
        self, contest_id: int | str, announcement_id: int | str
    ) -> str:
        return self.dispatcher.call(
            endpoints.CONTEST_DELETE_ANNOUNCEMENT,
            {"contest_id": contest_id},
            {"id": validate_id("announcement ID", announcement_id)},
        )

    # -------------------------
    # Questions
    # -------------------------

    def all_questions(self, contest_id: int | str) -> list[Question]:
        """Return every contestant's questions (organisers only)."""
        return self.dispatcher.call(
            endpoints.CONTEST_ALL_QUESTIONS, {"contest_id": contest_id}
        )

    def my_questions(self, contest_id: int | str) -> list[Question]:
        """Return the questions asked by the logged-in user."""
        return self.dispatcher.call(
            endpoints.CONTEST_MY_QUESTIONS, {"contest_id": contest_id}
        )

    def ask_question(self, contest_id: int | str, text: str) -> str:
        if not text.strip():
            raise InvalidArgumentError("question text must not be empty")
        return self.dispatcher.call(
            endpoints.CONTEST_ASK_QUESTION,
            {"contest_id": contest_id},
            {"text": text},
        )

    def answer_question(
        self, contest_id: int | str, question_id: int | str, text: str
    ) -> str:
        return self.dispatcher.call(
            endpoints.CONTEST_ANSWER_QUESTION,
            {"contest_id": contest_id},
            {"questionID": validate_id("question ID", question_id), "text": text},
        )

    # -------------------------
    # Leaderboard
    # -------------------------

    def leaderboard(self, contest_id: int | str) -> Leaderboard:
        return self.dispatcher.call(
            endpoints.CONTEST_LEADERBOARD, {"contest_id": contest_id}
        )

    def download_leaderboard(self, contest_id: int | str) -> bytes:
        """Return the leaderboard as CSV bytes, exactly as served."""
        return self.dispatcher.call(
            endpoints.CONTEST_LEADERBOARD_CSV, {"contest_id": contest_id}
        )
