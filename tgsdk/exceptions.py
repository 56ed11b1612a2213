"""Exception hierarchy for the tgpoll Bot API SDK.

Every failure surfaced by the SDK and the polling runtime derives from
:class:`BotError`, so callers of :meth:`tgbot.session.Session.start` can
catch a single base class.
"""

from typing import Optional


class BotError(Exception):
    """Base class for all tgpoll errors."""


class TransportError(BotError):
    """The remote host could not be reached or the response could not be read.

    The originating :mod:`requests` exception is chained as ``__cause__``.
    """

    def __init__(self, method: str, message: str) -> None:
        self.method = method
        super().__init__(f"{method}: {message}")


class ProtocolError(BotError):
    """A response (or an inbound update fragment) was not the expected JSON."""


class APIError(BotError):
    """The Bot API answered ``ok: false``.

    Attributes:
        method: Remote operation name, e.g. ``"sendMessage"``.
        error_code: Numeric error code reported by the API.
        description: Human-readable description reported by the API.
        request_echo: Pretty-printed JSON of the outgoing request.
        status_code: HTTP status code of the response, when available.
        retry_after: Seconds the API asked the client to wait, if reported.
        migrate_to_chat_id: New chat id for migrated groups, if reported.
    """

    def __init__(
        self,
        method: str,
        error_code: int,
        description: str,
        request_echo: str = "",
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None,
        migrate_to_chat_id: Optional[int] = None,
    ) -> None:
        """Initialise from the decoded error envelope."""
        self.method = method
        self.error_code = error_code
        self.description = description
        self.request_echo = request_echo
        self.status_code = status_code
        self.retry_after = retry_after
        self.migrate_to_chat_id = migrate_to_chat_id
        super().__init__(f"{description} ({error_code}) ({method}: {request_echo.rstrip()})")


class ConfigurationError(BotError):
    """A handler registration is duplicated or malformed."""
