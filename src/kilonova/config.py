"""Runtime settings resolved from environment variables.

Every setting has a built-in default and can be overridden through an
environment variable:

* ``KILONOVA_BASE_URL``: server root (default ``https://kilonova.ro``).
* ``KILONOVA_TIMEOUT``: per-request timeout in seconds (default ``30``).
* ``KILONOVA_TOKEN_FILE``: where the session token is kept (default
  ``$XDG_CONFIG_HOME/kilonova/token``, falling back to
  ``~/.config/kilonova/token``).
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://kilonova.ro"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = "kilonova-cli/0.1"

_ENV_BASE_URL = "KILONOVA_BASE_URL"
_ENV_TIMEOUT = "KILONOVA_TIMEOUT"
_ENV_TOKEN_FILE = "KILONOVA_TOKEN_FILE"


def config_dir() -> Path:
    """Return the per-user configuration directory."""
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "kilonova"
    return Path.home() / ".config" / "kilonova"


def _default_token_file() -> Path:
    override = os.getenv(_ENV_TOKEN_FILE)
    if override:
        return Path(override).expanduser()
    return config_dir() / "token"


def _timeout_from_env() -> float:
    raw = os.getenv(_ENV_TIMEOUT)
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        value = 0.0
    if value <= 0:
        logger.warning(
            "Ignoring invalid %s=%r; using %ss", _ENV_TIMEOUT, raw, DEFAULT_TIMEOUT
        )
        return DEFAULT_TIMEOUT
    return value


@dataclass(frozen=True)
class Settings:
    """Resolved client settings.

    Attributes:
        base_url: Server root without a trailing slash.
        timeout: Per-request timeout in seconds.
        token_file: Path of the persisted session token.
        user_agent: Value of the ``User-Agent`` header.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    token_file: Path = field(default_factory=_default_token_file)
    user_agent: str = USER_AGENT

    @classmethod
    def from_env(
        cls,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> "Settings":
        """Build settings from the environment.

        Explicit arguments (typically CLI options) win over environment
        variables, which win over the defaults.

        Args:
            base_url: Server root override.
            timeout: Timeout override in seconds.

        Returns:
            A :class:`Settings` instance.
        """
        url = base_url or os.getenv(_ENV_BASE_URL) or DEFAULT_BASE_URL
        return cls(
            base_url=url.rstrip("/"),
            timeout=timeout if timeout and timeout > 0 else _timeout_from_env(),
            token_file=_default_token_file(),
        )
