"""Long-polling update loop and offset-based delivery acknowledgment.

Each iteration calls ``getUpdates`` with the current offset and blocks
server-side for up to the poll timeout.  Every returned envelope moves the
offset past its ``update_id`` *before* it is dispatched, so the next poll
acknowledges it even if its handler failed.  There is a single worker: one
outstanding poll at a time, handlers run synchronously on the loop thread.
"""

from __future__ import annotations

import threading
from typing import Any, List, Mapping, Optional, Protocol

from tgcore.logger import BotLogger
from tgbot.registry import HandlerEntry, HandlerRegistry
from tgsdk.exceptions import ProtocolError

logger = BotLogger.get_logger()


class UpdateSource(Protocol):
    """The slice of :class:`tgsdk.client.BotClient` the poller depends on."""
    def get_updates(  # noqa: E704
        self,
        offset: int,
        timeout: float,
        limit: Optional[int] = None,
        allowed_updates: Optional[List[str]] = None,
    ) -> List[dict]: ...


def update_id_of(envelope: Mapping[str, Any]) -> int:
    """Return the delivery identifier of *envelope*.

    Raises:
        ProtocolError: If ``update_id`` is missing or not an integer.
    """
    update_id = envelope.get("update_id")
    if isinstance(update_id, bool) or not isinstance(update_id, int):
        raise ProtocolError(f"update envelope has no integer update_id: {update_id!r}")
    return update_id


class UpdatePoller:
    """Blocking ``getUpdates`` loop feeding a :class:`HandlerRegistry`.

    The offset is owned by the loop thread.  :meth:`stop` only sets a
    :class:`threading.Event`, which the loop checks between polls; an
    in-flight poll is never interrupted.
    """

    def __init__(
        self,
        client: UpdateSource,
        registry: HandlerRegistry,
        timeout: float = 10.0,
        *,
        limit: Optional[int] = None,
        allowed_updates: Optional[List[str]] = None,
        isolate_handler_errors: bool = False,
        debug: bool = False,
    ) -> None:
        """Create a poller.

        Args:
            client: Source of update batches (normally a ``BotClient``).
            registry: Handlers to dispatch envelopes to.
            timeout: Long-poll timeout in seconds.
            limit: Maximum batch size requested from the API.
            allowed_updates: Kinds the API should deliver; ``None`` keeps the
                API default.
            isolate_handler_errors: Log handler exceptions and keep polling
                instead of terminating the loop.  Decode errors stay fatal.
            debug: Echo every dispatched or unhandled envelope to the log.
        """
        self._client = client
        self._registry = registry
        self.timeout = timeout
        self.limit = limit
        self.allowed_updates = allowed_updates
        self.isolate_handler_errors = isolate_handler_errors
        self.debug = debug
        self._offset = 0
        self._stop_event = threading.Event()

    @property
    def offset(self) -> int:
        """Next ``update_id`` the loop expects; never decreases."""
        return self._offset

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the loop to exit at its next polling boundary.  Idempotent."""
        if not self._stop_event.is_set():
            logger.info("Stop requested", extra={"offset": self._offset})
        self._stop_event.set()

    # ------------------------------------------------------------------
    #  Loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Poll until :meth:`stop` is observed; any failure propagates."""
        logger.info("Polling for updates", extra={"offset": self._offset, "poll_timeout": self.timeout})
        while not self._stop_event.is_set():
            self.poll_once()
        logger.info("Polling stopped", extra={"offset": self._offset})

    def poll_once(self) -> int:
        """Fetch one batch and process it in order.  Returns the batch size."""
        updates = self._client.get_updates(
            self._offset,
            self.timeout,
            limit=self.limit,
            allowed_updates=self.allowed_updates,
        )
        if updates and self.debug:
            logger.info("Received updates", extra={"count": len(updates), "offset": self._offset})
        for envelope in updates:
            self._advance(update_id_of(envelope))
            self._process(envelope)
        return len(updates)

    def _advance(self, update_id: int) -> None:
        self._offset = max(self._offset, update_id + 1)

    def _process(self, envelope: Mapping[str, Any]) -> None:
        self._registry.dispatch(
            envelope,
            self._log_handler_error if self.isolate_handler_errors else None,
            debug=self.debug,
        )

    @staticmethod
    def _log_handler_error(entry: HandlerEntry[Any], envelope: Mapping[str, Any], exc: Exception) -> None:
        logger.error(
            "Handler failed",
            extra={"update_id": envelope.get("update_id"), "kind": entry.kind},
            exc_info=exc,
        )
