"""Polling runtime — update loop, kind-based dispatch and session lifecycle.

This package may import from ``tgcore/`` and ``tgsdk/`` only.
"""

from tgbot.poller import UpdatePoller
from tgbot.registry import UPDATE_KINDS, HandlerEntry, HandlerRegistry
from tgbot.session import Session, SessionState

__all__ = [
    # Lifecycle
    "Session",
    "SessionState",
    # Update loop
    "UpdatePoller",
    # Dispatch
    "HandlerRegistry",
    "HandlerEntry",
    "UPDATE_KINDS",
]
