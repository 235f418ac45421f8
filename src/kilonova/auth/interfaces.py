"""Abstract interfaces for the authentication layer.

The request pipeline only ever sees a :class:`TokenStore`.  Where the token
lives (a file, memory, a keyring) is the store's business, so test doubles
can be injected without touching the pipeline.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Credential:
    """An opaque Kilonova session token.

    Attributes:
        token: The token string sent in the ``Authorization`` header.
    """

    token: str

    def __repr__(self) -> str:
        return "Credential(token='***')"


class TokenStore(ABC):
    """Abstract base class for session token storage.

    Exactly one credential is active at a time.  Implementations are not
    synchronised across processes; the last writer wins.

    Example usage::

        store = FileTokenStore(path)            # concrete implementation
        dispatcher = Dispatcher.from_settings(settings, store)
        service = ContestService(dispatcher)    # pipeline injected into service

    ``from_settings`` hands the store to the
    :class:`~kilonova.api.request_builder.RequestBuilder`; a dispatcher can
    also be assembled directly as ``Dispatcher(builder, transport)``.
    """

    @abstractmethod
    def read(self) -> Credential | None:
        """Return the stored credential, or ``None`` when logged out.

        This method must not raise; an unreadable or corrupt slot is
        reported as ``None``.
        """

    @abstractmethod
    def write(self, credential: Credential) -> None:
        """Persist *credential*, replacing any previous one."""

    @abstractmethod
    def clear(self) -> bool:
        """Forget the stored credential.

        Returns:
            ``True`` if a credential was removed, ``False`` if none existed.
        """

    def is_authenticated(self) -> bool:
        """Return ``True`` if a credential is currently stored."""
        return self.read() is not None
