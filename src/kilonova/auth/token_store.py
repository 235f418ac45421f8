"""Token store implementations.

* :class:`FileTokenStore` keeps the token as plain text in a single file
  (``~/.config/kilonova/token`` by default) with permissions restricted to
  the owner (0o600).  Written by ``auth login``, removed by ``auth logout``.
* :class:`MemoryTokenStore` keeps it in memory, for tests and embedding.
"""

import logging
import re
from pathlib import Path

from kilonova.auth.interfaces import Credential, TokenStore

logger = logging.getLogger(__name__)

# Kilonova tokens are opaque but printable and free of whitespace; anything
# else in the file means it was truncated or edited by hand.
_TOKEN_PATTERN = re.compile(r"^[\x21-\x7e]{1,4096}$")


def _valid_token(token: str) -> bool:
    return bool(_TOKEN_PATTERN.match(token))


class FileTokenStore(TokenStore):
    """Stores the session token in a single file.

    Args:
        path: Location of the token file.  The parent directory is created
            on the first write.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Credential | None:
        """Load the token from disk.

        Returns:
            The stored :class:`Credential`, or ``None`` if the file is
            missing, unreadable, or does not hold a well-formed token.
        """
        try:
            token = self._path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Token file %s is unreadable: %s", self._path, e)
            return None
        if not _valid_token(token):
            logger.debug("Token file %s is corrupt; ignoring it", self._path)
            return None
        return Credential(token)

    def write(self, credential: Credential) -> None:
        """Persist the token to disk.

        Creates the config directory if it does not already exist and
        restricts file permissions to the owner only.

        Raises:
            ValueError: If the token contains whitespace or control
                characters and could not be read back.
        """
        if not _valid_token(credential.token):
            raise ValueError("refusing to store a malformed token")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(credential.token, encoding="utf-8")
        self._path.chmod(0o600)

    def clear(self) -> bool:
        if self._path.exists():
            self._path.unlink()
            return True
        return False


class MemoryTokenStore(TokenStore):
    """Keeps the session token in memory for the lifetime of the object."""

    def __init__(self, credential: Credential | None = None):
        self._credential = credential

    def read(self) -> Credential | None:
        return self._credential

    def write(self, credential: Credential) -> None:
        self._credential = credential

    def clear(self) -> bool:
        removed = self._credential is not None
        self._credential = None
        return removed
