"""Shared infrastructure — project-wide logging.

This package is transport-agnostic. It must NEVER import from ``tgbot/`` or ``tgsdk/``.
"""

from tgcore.logger import BotLogger

__all__ = [
    "BotLogger",
]
