"""Application configuration — environment variables and derived constants.

Loads ``BOT_TOKEN``, ``BOT_API_URL``, ``POLL_TIMEOUT`` and ``BOT_DEBUG`` from
the environment via ``python-dotenv``.  All values are resolved at import time
so other modules can ``from config import …`` without repeated lookups.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from tgcore.logger import BotLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

# ── Logger (used for startup diagnostics at the bottom of this module) ───────
logger = BotLogger.get_logger()

DEFAULT_API_BASE_URL = "https://api.telegram.org"
DEFAULT_POLL_TIMEOUT = 10.0

_TRUTHY = frozenset({"1", "true", "yes", "on"})


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_bool(raw: str | None) -> bool:
    """Interpret ``1/true/yes/on`` (any case) as ``True``; anything else is ``False``."""
    return (raw or "").strip().lower() in _TRUTHY


def _parse_poll_timeout(raw: str | None) -> float:
    """Parse the long-poll timeout in seconds.

    Empty, non-numeric and negative values fall back to
    :data:`DEFAULT_POLL_TIMEOUT`.
    """
    if not raw or not raw.strip():
        return DEFAULT_POLL_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid POLL_TIMEOUT, using default", extra={"raw_value": raw})
        return DEFAULT_POLL_TIMEOUT
    if value < 0:
        logger.warning("Negative POLL_TIMEOUT, using default", extra={"raw_value": raw})
        return DEFAULT_POLL_TIMEOUT
    return value


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN")
API_BASE_URL: str = (os.environ.get("BOT_API_URL") or DEFAULT_API_BASE_URL).rstrip("/")
POLL_TIMEOUT: float = _parse_poll_timeout(os.environ.get("POLL_TIMEOUT"))
DEBUG: bool = _parse_bool(os.environ.get("BOT_DEBUG"))


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded, BOT_TOKEN is set", extra={"api_base_url": API_BASE_URL})
else:
    logger.warning("Config loaded, BOT_TOKEN is NOT set")

logger.info("Polling configured", extra={"poll_timeout": POLL_TIMEOUT, "debug": DEBUG})
