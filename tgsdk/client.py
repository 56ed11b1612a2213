"""BotClient -- one authenticated round trip per remote Bot API operation.

Every call is a ``POST <base_url>/bot<token>/<method>`` whose body is built by
:mod:`tgsdk.codec`.  HTTP calls use the ``requests`` library; the response
envelope is decoded with pydantic and mapped onto the
:mod:`tgsdk.exceptions` taxonomy:

* ``requests`` failures          → :class:`TransportError`
* undecodable envelope / result  → :class:`ProtocolError`
* ``ok: false``                  → :class:`APIError`
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

import requests

from tgcore.logger import BotLogger
from tgsdk.codec import decode_envelope, decode_result, encode_body, pretty_body, pretty_json
from tgsdk.exceptions import APIError, TransportError
from tgsdk.models import OutboundRequest, User

logger = BotLogger.get_logger()


class BotClient:
    """Client-side call invoker for the Bot API.

    The underlying :class:`requests.Session` is shared by every call, so the
    polling loop and handlers sending replies reuse the same connection pool.
    Calls are otherwise stateless and safe to issue from any thread.
    """

    DEFAULT_BASE_URL: str = "https://api.telegram.org"
    _DEFAULT_TIMEOUT: float = 10
    # Extra seconds on top of the long-poll timeout before the HTTP read gives up.
    _LONG_POLL_GRACE: float = 5

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = _DEFAULT_TIMEOUT,
        debug: bool = False,
        http: Optional[requests.Session] = None,
    ) -> None:
        """Create a new client for *token*.

        Args:
            token: Bot token, embedded in every request path.
            base_url: API host root, e.g. ``https://api.telegram.org``.
            timeout: Default HTTP timeout in seconds for non-polling calls.
            debug: Echo every response body to the log.
            http: Pre-configured session; a fresh one is created if omitted.
        """
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self.debug = debug
        self._http = http if http is not None else requests.Session()

    # ------------------------------------------------------------------
    #  Core round trip
    # ------------------------------------------------------------------

    def method_url(self, method: str) -> str:
        """Return the endpoint URL for the remote operation *method*."""
        return f"{self._base_url}/bot{self._token}/{method}"

    def call(
        self,
        method: str,
        payload: Any = None,
        result_type: Any = None,
        *,
        timeout: Optional[float] = None,
    ) -> Any:
        """Invoke *method* with *payload* and decode ``result`` into *result_type*.

        Returns the raw ``result`` fragment when *result_type* is ``None``.

        Raises:
            TransportError: The request could not be sent or the body not read.
            ProtocolError: The envelope or the result fragment is not valid.
            APIError: The API answered ``ok: false``.
        """
        encoded = encode_body(payload)
        try:
            response = self._http.post(
                self.method_url(method),
                data=encoded.body,
                headers={"Content-Type": encoded.content_type},
                timeout=timeout if timeout is not None else self._timeout,
            )
            raw = response.content
        except requests.RequestException as exc:
            logger.error("Bot API request failed", extra={"api_endpoint": method, "error": str(exc)})
            raise TransportError(method, str(exc)) from exc

        if self.debug:
            logger.info("Bot API response", extra={"api_endpoint": method, "body": pretty_body(raw)})

        envelope = decode_envelope(raw)
        if not envelope.ok:
            parameters = envelope.parameters
            logger.warning(
                "Bot API returned an error",
                extra={
                    "api_endpoint": method,
                    "error_code": envelope.error_code,
                    "description": envelope.description,
                },
            )
            raise APIError(
                method,
                envelope.error_code or 0,
                envelope.description or "",
                pretty_json(payload),
                status_code=response.status_code,
                retry_after=parameters.retry_after if parameters else None,
                migrate_to_chat_id=parameters.migrate_to_chat_id if parameters else None,
            )
        return decode_result(envelope.result, result_type)

    # ------------------------------------------------------------------
    #  Operations used by the runtime
    # ------------------------------------------------------------------

    def get_me(self) -> User:
        """Return the account the token authenticates as."""
        return self.call("getMe", None, User)

    def get_updates(
        self,
        offset: int,
        timeout: float,
        limit: Optional[int] = None,
        allowed_updates: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Long-poll for update envelopes with ``update_id >= offset``.

        The server holds the request open for up to *timeout* seconds, so the
        HTTP read timeout is extended by a grace period.  The API takes whole
        seconds, so a fractional *timeout* is rounded up.
        """
        payload: Dict[str, Any] = {"offset": offset, "timeout": math.ceil(timeout)}
        if limit is not None:
            payload["limit"] = limit
        if allowed_updates is not None:
            payload["allowed_updates"] = allowed_updates
        return self.call(
            "getUpdates",
            payload,
            List[Dict[str, Any]],
            timeout=timeout + self._LONG_POLL_GRACE,
        )

    def send(self, request: OutboundRequest) -> Any:
        """Invoke ``request.api_method`` and decode into ``request.result_type``."""
        return self.call(request.api_method, request, request.result_type)

    # ------------------------------------------------------------------
    #  Resource management
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self._http.close()

    def __enter__(self) -> "BotClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
