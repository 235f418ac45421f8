"""Unit tests for ContestService and AccountService.

The dispatcher is mocked; these tests check which endpoint each operation
calls and with what arguments.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from kilonova.api import endpoints
from kilonova.auth.interfaces import Credential
from kilonova.auth.token_store import MemoryTokenStore
from kilonova.core.exceptions import ApplicationError, InvalidArgumentError
from kilonova.services.account_service import AccountService
from kilonova.services.contest_service import ContestService


@pytest.fixture()
def dispatcher():
    d = MagicMock()
    d.call.return_value = "ok"
    return d


@pytest.fixture()
def contests(dispatcher):
    return ContestService(dispatcher)


# ---------------------------------------------------------------------------
# ContestService
# ---------------------------------------------------------------------------


class TestContestService:
    def test_create(self, contests, dispatcher):
        dispatcher.call.return_value = 12
        assert contests.create("Round 1", "official") == 12
        dispatcher.call.assert_called_once_with(
            endpoints.CONTEST_CREATE,
            payload={"name": "Round 1", "type": "official"},
        )

    def test_create_rejects_unknown_type(self, contests, dispatcher):
        with pytest.raises(InvalidArgumentError):
            contests.create("Round 1", "secret")
        dispatcher.call.assert_not_called()

    def test_create_rejects_blank_name(self, contests):
        with pytest.raises(InvalidArgumentError):
            contests.create("   ")

    @pytest.mark.parametrize(
        "method, endpoint",
        [
            ("delete", endpoints.CONTEST_DELETE),
            ("register", endpoints.CONTEST_REGISTER),
            ("start", endpoints.CONTEST_START),
            ("info", endpoints.CONTEST_INFO),
            ("problems", endpoints.CONTEST_PROBLEMS),
            ("announcements", endpoints.CONTEST_ANNOUNCEMENTS),
            ("all_questions", endpoints.CONTEST_ALL_QUESTIONS),
            ("my_questions", endpoints.CONTEST_MY_QUESTIONS),
            ("leaderboard", endpoints.CONTEST_LEADERBOARD),
            ("download_leaderboard", endpoints.CONTEST_LEADERBOARD_CSV),
        ],
    )
    def test_single_id_operations(self, contests, dispatcher, method, endpoint):
        getattr(contests, method)(5)
        dispatcher.call.assert_called_once_with(endpoint, {"contest_id": 5})

    def test_update_sends_only_given_fields(self, contests, dispatcher):
        start = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        contests.update(5, start_time=start, visible=False)
        dispatcher.call.assert_called_once_with(
            endpoints.CONTEST_UPDATE,
            {"contest_id": 5},
            {"start_time": "2024-01-01T10:00:00+00:00", "visible": False},
        )

    def test_update_with_nothing_is_rejected(self, contests, dispatcher):
        with pytest.raises(InvalidArgumentError, match="nothing to update"):
            contests.update(5)
        dispatcher.call.assert_not_called()

    def test_update_problems(self, contests, dispatcher):
        contests.update_problems(5, ["3", 1, "2"])
        dispatcher.call.assert_called_once_with(
            endpoints.CONTEST_UPDATE_PROBLEMS,
            {"contest_id": 5},
            {"list": [3, 1, 2]},
        )

    def test_update_problems_rejects_bad_id(self, contests, dispatcher):
        with pytest.raises(InvalidArgumentError):
            contests.update_problems(5, ["3", "x"])
        dispatcher.call.assert_not_called()

    def test_announcement_operations(self, contests, dispatcher):
        contests.create_announcement(5, "Hello")
        contests.update_announcement(5, 9, "Hi")
        contests.delete_announcement(5, "9")
        assert dispatcher.call.call_args_list[0].args == (
            endpoints.CONTEST_CREATE_ANNOUNCEMENT,
            {"contest_id": 5},
            {"text": "Hello"},
        )
        assert dispatcher.call.call_args_list[1].args[2] == {
            "id": "9",
            "text": "Hi",
        }
        assert dispatcher.call.call_args_list[2].args[2] == {"id": "9"}

    def test_ask_question_rejects_blank(self, contests, dispatcher):
        with pytest.raises(InvalidArgumentError):
            contests.ask_question(5, "  ")
        dispatcher.call.assert_not_called()

    def test_answer_question(self, contests, dispatcher):
        contests.answer_question(5, 7, "Yes")
        dispatcher.call.assert_called_once_with(
            endpoints.CONTEST_ANSWER_QUESTION,
            {"contest_id": 5},
            {"questionID": "7", "text": "Yes"},
        )

    def test_errors_propagate(self, contests, dispatcher):
        dispatcher.call.side_effect = ApplicationError("Contest not found")
        with pytest.raises(ApplicationError):
            contests.info(5)


# ---------------------------------------------------------------------------
# AccountService
# ---------------------------------------------------------------------------


def _account(dispatcher, token=None):
    store = MemoryTokenStore(Credential(token) if token else None)
    dispatcher.token_store = store
    return AccountService(dispatcher), store


class TestAccountService:
    def test_login_stores_token(self, dispatcher):
        dispatcher.call.return_value = "session-token"
        service, store = _account(dispatcher)
        service.login("alice", "pw")
        dispatcher.call.assert_called_once_with(
            endpoints.LOGIN, payload={"username": "alice", "password": "pw"}
        )
        assert store.read() == Credential("session-token")
        assert service.is_logged_in()

    def test_failed_login_stores_nothing(self, dispatcher):
        dispatcher.call.side_effect = ApplicationError("bad password")
        service, store = _account(dispatcher)
        with pytest.raises(ApplicationError):
            service.login("alice", "wrong")
        assert store.read() is None

    def test_login_requires_credentials(self, dispatcher):
        service, _ = _account(dispatcher)
        with pytest.raises(InvalidArgumentError):
            service.login("", "pw")

    def test_logout_clears_token(self, dispatcher):
        service, store = _account(dispatcher, "tok")
        service.logout()
        dispatcher.call.assert_called_once_with(endpoints.LOGOUT)
        assert store.read() is None

    def test_logout_clears_token_even_on_failure(self, dispatcher):
        dispatcher.call.side_effect = ApplicationError("expired")
        service, store = _account(dispatcher, "tok")
        with pytest.raises(ApplicationError):
            service.logout()
        assert store.read() is None

    def test_change_password_ends_session(self, dispatcher):
        service, store = _account(dispatcher, "tok")
        service.change_password("old", "new")
        dispatcher.call.assert_called_once_with(
            endpoints.CHANGE_PASSWORD,
            payload={"old_password": "old", "password": "new"},
        )
        assert store.read() is None

    def test_change_name(self, dispatcher):
        service, _ = _account(dispatcher, "tok")
        service.change_name("bob", "pw")
        dispatcher.call.assert_called_once_with(
            endpoints.CHANGE_NAME, payload={"newName": "bob", "password": "pw"}
        )

    def test_set_bio(self, dispatcher):
        service, _ = _account(dispatcher, "tok")
        assert service.set_bio("hello") == "ok"
        dispatcher.call.assert_called_once_with(
            endpoints.SET_BIO, payload={"bio": "hello"}
        )

    def test_reset_password_refused_while_logged_in(self, dispatcher):
        service, _ = _account(dispatcher, "tok")
        with pytest.raises(InvalidArgumentError, match="logged out"):
            service.reset_password("a@example.com")
        dispatcher.call.assert_not_called()

    def test_reset_password(self, dispatcher):
        service, _ = _account(dispatcher)
        service.reset_password("a@example.com")
        dispatcher.call.assert_called_once_with(
            endpoints.FORGOT_PASSWORD, payload={"email": "a@example.com"}
        )
