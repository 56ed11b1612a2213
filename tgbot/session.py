"""Session — token, identity, handler registry and polling lifecycle in one object.

Lifecycle::

    NOT_STARTED --start()--> RUNNING --stop() observed--> STOPPED

``start()`` fetches the bot identity with ``getMe`` exactly once and then
blocks in the update loop.  ``stop()``, ``send()``, ``call()`` and ``user``
may be used from other threads while the loop runs.
"""

from __future__ import annotations

import enum
import threading
from typing import Any, Callable, List, Optional

from tgcore.logger import BotLogger
from tgbot.poller import UpdatePoller
from tgbot.registry import HandlerRegistry
from tgsdk.client import BotClient
from tgsdk.models import OutboundRequest, User

logger = BotLogger.get_logger()


class SessionState(str, enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class Session:
    """A polling bot bound to one token.

    Usage::

        session = Session(token, timeout=30)

        @session.handle("message")
        def on_message(message: Message) -> None:
            session.send(SendMessage(chat_id=message.chat.id, text=message.text or ""))

        session.start()  # blocks until session.stop() is observed
    """

    DEFAULT_TIMEOUT: float = 10.0

    def __init__(
        self,
        token: str,
        timeout: Optional[float] = None,
        debug: bool = False,
        *,
        base_url: str = BotClient.DEFAULT_BASE_URL,
        client: Optional[BotClient] = None,
        registry: Optional[HandlerRegistry] = None,
        allowed_updates: Optional[List[str]] = None,
        isolate_handler_errors: bool = False,
    ) -> None:
        """Create a session.

        Args:
            token: Bot token.
            timeout: Long-poll timeout in seconds; ``None`` or ``0`` means
                :attr:`DEFAULT_TIMEOUT`.
            debug: Echo raw responses and dispatched envelopes to the log.  Only
                this session's client and poller are affected.
            base_url: API host root.
            client: Pre-built client (mainly for tests); *base_url* is then ignored.
            registry: Pre-populated handler registry.
            allowed_updates: Passed to ``getUpdates`` unchanged.
            isolate_handler_errors: Keep polling when a handler raises.
        """
        self.token = token
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.debug = debug
        self._client = client if client is not None else BotClient(token, base_url=base_url, debug=debug)
        self._registry = registry if registry is not None else HandlerRegistry()
        self._poller = UpdatePoller(
            self._client,
            self._registry,
            self.timeout,
            allowed_updates=allowed_updates,
            isolate_handler_errors=isolate_handler_errors,
            debug=debug,
        )
        self._user: Optional[User] = None
        self._state = SessionState.NOT_STARTED
        self._state_lock = threading.Lock()
        self._start_lock = threading.Lock()

    # ------------------------------------------------------------------
    #  Read-only state
    # ------------------------------------------------------------------

    @property
    def user(self) -> Optional[User]:
        """The authenticated bot account; ``None`` until :meth:`start` has fetched it."""
        return self._user

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            return self._state

    @property
    def offset(self) -> int:
        return self._poller.offset

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            self._state = state

    # ------------------------------------------------------------------
    #  Registration and outbound calls
    # ------------------------------------------------------------------

    def handle(
        self,
        kind: str,
        handler: Optional[Callable[[Any], Any]] = None,
        *,
        model: Any = None,
    ) -> Any:
        """Register *handler* for update *kind*; decorator form when *handler* is omitted.

        Raises:
            ConfigurationError: See :meth:`HandlerRegistry.register`.
        """
        return self._registry.register(kind, handler, model=model)

    def call(self, method: str, payload: Any = None, result_type: Any = None) -> Any:
        """Invoke an arbitrary remote operation through the shared client."""
        return self._client.call(method, payload, result_type)

    def send(self, request: OutboundRequest) -> Any:
        """Send a typed outbound request (``SendMessage``, ``SendPhoto``, …)."""
        return self._client.send(request)

    # ------------------------------------------------------------------
    #  Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Authenticate, then poll until :meth:`stop` is observed.

        Returns ``None`` once stopped.  Any failure while authenticating,
        polling or dispatching, including ``KeyboardInterrupt``, ends the loop and is raised here; the session
        then returns to ``NOT_STARTED`` with its offset and identity intact,
        so calling :meth:`start` again resumes where it left off.

        Raises:
            RuntimeError: If the session is running or already stopped.
        """
        if not self._start_lock.acquire(blocking=False):
            raise RuntimeError("Session is already starting or running")
        try:
            if self.state is not SessionState.NOT_STARTED:
                raise RuntimeError(f"Session cannot start from state {self.state.value}")

            if self._user is None:
                self._user = self._client.get_me()
                logger.info(
                    "Authenticated",
                    extra={"bot_id": self._user.id, "username": self._user.username},
                )

            self._set_state(SessionState.RUNNING)
            try:
                self._poller.run()
            except BaseException:
                self._set_state(SessionState.NOT_STARTED)
                logger.exception("Update loop terminated", extra={"offset": self._poller.offset})
                raise
            self._set_state(SessionState.STOPPED)
        finally:
            self._start_lock.release()

    def stop(self) -> None:
        """Request the loop to exit at its next polling boundary.

        Idempotent and safe from any thread; may be called before
        :meth:`start`, in which case ``start`` authenticates and returns
        without polling.
        """
        self._poller.stop()

    def close(self) -> None:
        """Stop polling and release the HTTP connection pool."""
        self.stop()
        self._client.close()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
