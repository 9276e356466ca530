"""Runtime settings read from the environment."""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:6365"
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    token: str = ""
    timeout: float = DEFAULT_TIMEOUT
    share: bool = False

    @property
    def shared(self) -> bool:
        """Read-only mode is forced when there is no token to authenticate with."""
        return self.share or not self.token


def _parse_timeout(raw: str | None) -> float:
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid PANELMON_TIMEOUT=%r, using %.0fs", raw, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    if value <= 0:
        logger.warning("Non-positive PANELMON_TIMEOUT=%r, using %.0fs", raw, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    return value


def load_settings(environ=None) -> Settings:
    """Build Settings from PANELMON_* environment variables.

    Environment Variables:
        PANELMON_BASE_URL: Panel root URL (default http://127.0.0.1:6365)
        PANELMON_TOKEN: Session token for authenticated endpoints
        PANELMON_TIMEOUT: Request timeout in seconds (default 10)
        PANELMON_SHARE: 1/true/yes to use the read-only share endpoints
    """
    env = os.environ if environ is None else environ
    return Settings(
        base_url=env.get("PANELMON_BASE_URL", "").strip() or DEFAULT_BASE_URL,
        token=env.get("PANELMON_TOKEN", "").strip(),
        timeout=_parse_timeout(env.get("PANELMON_TIMEOUT")),
        share=env.get("PANELMON_SHARE", "").strip().lower() in ("1", "true", "yes"),
    )
