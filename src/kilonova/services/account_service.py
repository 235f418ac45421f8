"""Service layer for the session and the logged-in user's settings."""

import logging

from kilonova.api import endpoints
from kilonova.api.dispatcher import Dispatcher
from kilonova.auth.interfaces import Credential
from kilonova.core.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


class AccountService:
    """Login, logout and account settings.

    The session token lives in the dispatcher's token store: :meth:`login`
    writes it, :meth:`logout` and a successful :meth:`change_password`
    remove it.
    """

    def __init__(self, dispatcher: Dispatcher):
        """Initialise the service.

        Args:
            dispatcher: The pipeline every request goes through.
        """
        self.dispatcher = dispatcher

    @property
    def token_store(self):
        return self.dispatcher.token_store

    def is_logged_in(self) -> bool:
        return self.token_store.is_authenticated()

    # -------------------------
    # Session
    # -------------------------

    def login(self, username: str, password: str) -> None:
        """Exchange a username and password for a session token and store it.

        Raises:
            ApplicationError: If the server rejects the credentials.
        """
        if not username or not password:
            raise InvalidArgumentError("username and password are required")
        token = self.dispatcher.call(
            endpoints.LOGIN,
            payload={"username": username, "password": password},
        )
        self.token_store.write(Credential(token))
        logger.debug("Stored new session token")

    def logout(self) -> str:
        """End the session on the server and forget the local token.

        The local token is removed even when the server call fails, so a
        revoked or expired token never lingers.

        Returns:
            The server's confirmation message.
        """
        try:
            return self.dispatcher.call(endpoints.LOGOUT)
        finally:
            self.token_store.clear()

    # -------------------------
    # Settings
    # -------------------------

    def set_bio(self, bio: str) -> str:
        return self.dispatcher.call(endpoints.SET_BIO, payload={"bio": bio})

    def change_name(self, new_name: str, password: str) -> str:
        if not new_name.strip():
            raise InvalidArgumentError("new name must not be empty")
        return self.dispatcher.call(
            endpoints.CHANGE_NAME,
            payload={"newName": new_name, "password": password},
        )

    def change_password(self, old_password: str, new_password: str) -> str:
        """Change the password; the server ends the session on success.

        Returns:
            The server's confirmation message.
        """
        if not new_password:
            raise InvalidArgumentError("new password must not be empty")
        message = self.dispatcher.call(
            endpoints.CHANGE_PASSWORD,
            payload={"old_password": old_password, "password": new_password},
        )
        self.token_store.clear()
        return message

    def change_email(self, email: str, password: str) -> str:
        return self.dispatcher.call(
            endpoints.CHANGE_EMAIL,
            payload={"email": email, "password": password},
        )

    def reset_password(self, email: str) -> str:
        """Request a password-reset email.

        Raises:
            InvalidArgumentError: If a session is active; resetting is only
                meaningful while logged out.
        """
        if self.is_logged_in():
            raise InvalidArgumentError(
                "You must be logged out to reset your password."
            )
        return self.dispatcher.call(
            endpoints.FORGOT_PASSWORD, payload={"email": email}
        )

    def resend_email(self) -> str:
        """Resend the account verification email."""
        return self.dispatcher.call(endpoints.RESEND_EMAIL)
