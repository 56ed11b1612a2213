"""Update-kind registry — single source of truth for kind → handler mapping.

An update envelope carries exactly one payload field besides ``update_id``
(``message``, ``callback_query``, …).  The registry maps each such *kind* to
one typed handler and, for an inbound envelope, picks the first registered
kind that is present, decodes its fragment into the handler's payload model
and calls the handler with it.

Design:
- ``UPDATE_KINDS`` is the closed set of known kinds and their payload models.
  Other kinds can be registered by passing an explicit ``model``.
- ``UpdateHandler`` is a :class:`Protocol` for the single handler shape
  ``handler(payload) -> None``; failures are raised, not returned.
- Registration problems raise :class:`ConfigurationError` immediately,
  never at dispatch time.
"""

from __future__ import annotations

import dataclasses
import inspect
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    runtime_checkable,
)

from pydantic import TypeAdapter, ValidationError

from tgcore.logger import BotLogger
from tgsdk.codec import pretty_json
from tgsdk.exceptions import ConfigurationError, ProtocolError
from tgsdk.models import CallbackQuery, Message

logger = BotLogger.get_logger()

# ── Type variables ───────────────────────────────────────────────────────────

T = TypeVar("T")  # decoded payload type
T_contra = TypeVar("T_contra", contravariant=True)

# ── Known update kinds ───────────────────────────────────────────────────────

UPDATE_KINDS: Dict[str, Any] = {
    "message": Message,
    "edited_message": Message,
    "channel_post": Message,
    "edited_channel_post": Message,
    "callback_query": CallbackQuery,
}

# ── Handler protocol ─────────────────────────────────────────────────────────


@runtime_checkable
class UpdateHandler(Protocol[T_contra]):
    """Handler receiving one decoded payload."""
    def __call__(self, payload: T_contra) -> None: ...  # noqa: E704


# ── Registry entry ───────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True, slots=True)
class HandlerEntry(Generic[T]):
    """A registered handler and the shape its payload decodes into."""
    kind: str                     # e.g. "message"
    model: Any                    # pydantic model class or TypeAdapter-compatible type
    handler: UpdateHandler[T]
    adapter: TypeAdapter[T] = dataclasses.field(repr=False, compare=False)

    def decode(self, fragment: Any) -> T:
        """Validate the raw *fragment* into :attr:`model`.

        Raises:
            ProtocolError: If the fragment does not match the model.
        """
        try:
            return self.adapter.validate_python(fragment)
        except ValidationError as exc:
            raise ProtocolError(f"cannot decode {self.kind!r} payload: {exc}") from exc


# Receives the failing entry, the raw envelope and the exception.
HandlerErrorCallback = Callable[[HandlerEntry[Any], Mapping[str, Any], Exception], None]


def _check_handler_shape(kind: str, handler: Any) -> None:
    """Reject handlers that cannot be called as ``handler(payload)``."""
    if not callable(handler):
        raise ConfigurationError(f"handler for event kind {kind!r} is not callable")
    if inspect.iscoroutinefunction(handler):
        raise ConfigurationError(
            f"handler for event kind {kind!r} must be a plain function, not a coroutine"
        )
    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError):
        return  # builtins without introspectable signatures
    try:
        signature.bind(object())
    except TypeError as exc:
        raise ConfigurationError(
            f"handler for event kind {kind!r} must accept exactly one payload argument"
        ) from exc


# ── Registry ─────────────────────────────────────────────────────────────────


class HandlerRegistry:
    """Mapping from update kind to a single typed handler.

    Usage::

        registry = HandlerRegistry()

        @registry.register("message")
        def on_message(message: Message) -> None: ...

        registry.dispatch({"update_id": 1, "message": {...}})
    """

    def __init__(self, kinds: Optional[Mapping[str, Any]] = None) -> None:
        self._known_kinds: Dict[str, Any] = dict(UPDATE_KINDS if kinds is None else kinds)
        self._entries: Dict[str, HandlerEntry[Any]] = {}

    # ── registration ─────────────────────────────────────────────────────

    def register(
        self,
        kind: str,
        handler: Optional[Callable[[Any], Any]] = None,
        *,
        model: Any = None,
    ) -> Any:
        """Register *handler* for *kind*; without *handler*, act as a decorator.

        *model* overrides the payload shape and is required for kinds outside
        the known set.

        Raises:
            ConfigurationError: Duplicate kind, unknown kind without *model*,
                or a handler that cannot take a single payload argument.
        """
        if handler is None:
            def decorator(func: Callable[[Any], Any]) -> Callable[[Any], Any]:
                self.register(kind, func, model=model)
                return func
            return decorator

        if kind in self._entries:
            raise ConfigurationError(f"handler for event kind {kind!r} has already been registered")
        if model is None:
            model = self._known_kinds.get(kind)
            if model is None:
                raise ConfigurationError(
                    f"unknown event kind {kind!r}; pass model= to register it"
                )
        _check_handler_shape(kind, handler)

        self._entries[kind] = HandlerEntry(
            kind=kind,
            model=model,
            handler=handler,
            adapter=TypeAdapter(model),
        )
        logger.debug("Handler registered", extra={"kind": kind, "handler": getattr(handler, "__qualname__", repr(handler))})
        return handler

    # ── lookup helpers ───────────────────────────────────────────────────

    def get(self, kind: str) -> Optional[HandlerEntry[Any]]:
        """Return the entry for *kind*, or ``None``."""
        return self._entries.get(kind)

    def kinds(self) -> list[str]:
        """Return the registered kinds in registration order."""
        return list(self._entries)

    def __contains__(self, kind: object) -> bool:
        return kind in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # ── dispatch ─────────────────────────────────────────────────────────

    def resolve(self, envelope: Mapping[str, Any]) -> Optional[Tuple[HandlerEntry[Any], Any]]:
        """Pick the handler for *envelope* and decode its payload.

        The first registered kind whose fragment is present (and not ``null``)
        wins.  Returns ``None`` when no registered kind is present.

        Raises:
            ProtocolError: If the chosen fragment cannot be decoded.
        """
        for kind, entry in self._entries.items():
            fragment = envelope.get(kind)
            if fragment is None:
                continue
            return entry, entry.decode(fragment)
        return None

    def dispatch(
        self,
        envelope: Mapping[str, Any],
        on_handler_error: Optional[HandlerErrorCallback] = None,
        *,
        debug: bool = False,
    ) -> bool:
        """Invoke the matching handler for *envelope*.

        Args:
            envelope: Raw update envelope.
            on_handler_error: Called as ``on_handler_error(entry, envelope, exc)``
                when the handler raises; the exception is then considered
                handled.  Without it handler exceptions propagate unchanged.
                Decode failures always propagate as :class:`ProtocolError`.
            debug: Echo the pretty-printed envelope of every dispatched and
                unhandled update to the log.

        Returns:
            ``True`` if a handler was found and called, ``False`` otherwise.
        """
        update_id = envelope.get("update_id")
        resolved = self.resolve(envelope)
        if resolved is None:
            if debug:
                logger.info(
                    "Unhandled update",
                    extra={"update_id": update_id, "kinds": sorted(k for k in envelope if k != "update_id")},
                )
            return False
        entry, payload = resolved
        if debug:
            logger.info(
                "Dispatching update",
                extra={"update_id": update_id, "kind": entry.kind, "envelope": pretty_json(envelope)},
            )
        if on_handler_error is None:
            entry.handler(payload)
            return True
        try:
            entry.handler(payload)
        except Exception as exc:
            on_handler_error(entry, envelope, exc)
        return True
