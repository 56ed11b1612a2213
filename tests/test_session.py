"""Tests for the Session lifecycle, end to end through a stubbed HTTP layer."""

import json
import logging
import sys
import os
import threading
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fakes import FakeClient, message_update, then
from tgcore.logger import BotLogger
from tgbot.session import Session, SessionState
from tgsdk.client import BotClient
from tgsdk.exceptions import APIError, ConfigurationError, TransportError
from tgsdk.models import Message, SendMessage, User


def _response(body: dict, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = json.dumps(body).encode()
    return resp


def _session(client: FakeClient, **kwargs) -> Session:
    return Session("123:ABC", client=client, **kwargs)


# ── Construction ─────────────────────────────────────────────────────────────


class TestSessionInit:
    def test_defaults(self) -> None:
        session = _session(FakeClient())
        assert session.timeout == 10.0
        assert session.debug is False
        assert session.state is SessionState.NOT_STARTED
        assert session.user is None
        assert session.offset == 0

    def test_zero_timeout_means_default(self) -> None:
        assert _session(FakeClient(), timeout=0).timeout == Session.DEFAULT_TIMEOUT

    def test_custom_timeout_reaches_poll(self) -> None:
        client = FakeClient()
        session = _session(client, timeout=30)
        client.batches = [then(session.stop, [])]
        session.start()
        assert client.polls[0]["timeout"] == 30

    def test_debug_echo_is_scoped_to_the_session(self, caplog) -> None:
        logger = BotLogger.get_logger()
        level = logger.level
        handler_levels = [h.level for h in logger.handlers]

        quiet_client = FakeClient()
        quiet = _session(quiet_client)
        quiet.handle("message", lambda m: None)
        quiet_client.batches = [[message_update(1)], then(quiet.stop, [])]

        loud_client = FakeClient()
        loud = _session(loud_client, debug=True)
        loud.handle("message", lambda m: None)
        loud_client.batches = [[message_update(9)], then(loud.stop, [])]

        assert loud.debug is True
        assert logger.level == level
        assert [h.level for h in logger.handlers] == handler_levels

        with caplog.at_level(logging.INFO, logger="tgpoll"):
            quiet.start()
            loud.start()

        dispatched = [r for r in caplog.records if r.getMessage() == "Dispatching update"]
        assert [r.update_id for r in dispatched] == [9]
        assert '"update_id": 9' in dispatched[0].envelope

    def test_handle_registers_on_registry(self) -> None:
        session = _session(FakeClient())

        @session.handle("message")
        def on_message(message: Message) -> None:
            pass

        assert session.registry.get("message").handler is on_message

    def test_duplicate_handle_raises(self) -> None:
        session = _session(FakeClient())
        session.handle("message", lambda m: None)
        with pytest.raises(ConfigurationError):
            session.handle("message", lambda m: None)


# ── Start / stop ─────────────────────────────────────────────────────────────


class TestLifecycle:
    def test_identity_is_fetched_before_polling(self) -> None:
        http = MagicMock()
        seen_user = []

        def post(url, **kwargs):
            if url.endswith("/getMe"):
                return _response({"ok": True, "result": {"id": 7, "first_name": "Bot", "is_bot": True}})
            seen_user.append(session.user)
            session.stop()
            return _response({"ok": True, "result": []})

        http.post.side_effect = post
        session = Session("123:ABC", client=BotClient("123:ABC", http=http))

        session.start()

        assert seen_user == [User(id=7, first_name="Bot", is_bot=True)]
        assert session.user.id == 7
        assert session.state is SessionState.STOPPED

    def test_get_me_failure_aborts_startup(self) -> None:
        client = FakeClient()
        client.get_me_error = APIError("getMe", 401, "Unauthorized")
        session = _session(client)

        with pytest.raises(APIError):
            session.start()

        assert client.polls == []
        assert session.state is SessionState.NOT_STARTED
        assert session.user is None

    def test_stop_between_polls_returns_cleanly(self) -> None:
        client = FakeClient()
        session = _session(client)
        client.batches = [[message_update(1)], then(session.stop, [message_update(2)])]

        assert session.start() is None
        assert session.state is SessionState.STOPPED
        assert len(client.polls) == 2
        assert session.offset == 3

    def test_stop_from_another_thread_waits_for_in_flight_poll(self) -> None:
        in_flight = threading.Event()
        release = threading.Event()
        client = FakeClient()

        def blocking_poll(_offset):
            in_flight.set()
            assert release.wait(5)
            return [message_update(1)]

        client.batches = [blocking_poll]
        session = _session(client)
        errors = []

        def run() -> None:
            try:
                session.start()
            except Exception as exc:  # pragma: no cover - surfaced below
                errors.append(exc)

        worker = threading.Thread(target=run)
        worker.start()
        assert in_flight.wait(5)

        session.stop()
        assert worker.is_alive()
        release.set()
        worker.join(5)

        assert not worker.is_alive()
        assert errors == []
        assert session.state is SessionState.STOPPED
        assert session.offset == 2

    def test_stop_before_start(self) -> None:
        client = FakeClient()
        session = _session(client)
        session.stop()
        session.stop()

        session.start()

        assert client.get_me_calls == 1
        assert client.polls == []
        assert session.state is SessionState.STOPPED

    def test_start_after_stopped_raises(self) -> None:
        client = FakeClient()
        session = _session(client)
        client.batches = [then(session.stop, [])]
        session.start()
        with pytest.raises(RuntimeError):
            session.start()

    def test_concurrent_start_raises(self) -> None:
        in_flight = threading.Event()
        release = threading.Event()
        client = FakeClient()
        session = _session(client)

        def blocking_poll(_offset):
            in_flight.set()
            release.wait(5)
            session.stop()
            return []

        client.batches = [blocking_poll]
        worker = threading.Thread(target=session.start)
        worker.start()
        assert in_flight.wait(5)
        try:
            assert session.state is SessionState.RUNNING
            with pytest.raises(RuntimeError):
                session.start()
        finally:
            release.set()
            worker.join(5)

    def test_loop_failure_surfaces_and_allows_resume(self) -> None:
        client = FakeClient([[message_update(4)], TransportError("getUpdates", "offline")])
        session = _session(client)

        with pytest.raises(TransportError):
            session.start()
        assert session.state is SessionState.NOT_STARTED
        assert session.offset == 5

        client.batches = [then(session.stop, [])]
        session.start()

        assert client.get_me_calls == 1
        assert client.polls[-1]["offset"] == 5
        assert session.state is SessionState.STOPPED

    def test_interrupt_resets_state_and_allows_resume(self) -> None:
        client = FakeClient([[message_update(1)], KeyboardInterrupt()])
        session = _session(client)

        with pytest.raises(KeyboardInterrupt):
            session.start()
        assert session.state is SessionState.NOT_STARTED
        assert session.offset == 2

        client.batches = [then(session.stop, [])]
        session.start()

        assert client.get_me_calls == 1
        assert client.polls[-1]["offset"] == 2
        assert session.state is SessionState.STOPPED

    def test_handler_failure_stops_loop(self) -> None:
        client = FakeClient([[message_update(1), message_update(2)]])
        session = _session(client)

        def on_message(message):
            raise ValueError("bad input")

        session.handle("message", on_message)
        with pytest.raises(ValueError):
            session.start()
        assert session.offset == 2

    def test_isolated_handler_failures_keep_polling(self) -> None:
        client = FakeClient()
        session = _session(client, isolate_handler_errors=True)
        client.batches = [[message_update(1)], then(session.stop, [])]

        def on_message(message):
            raise ValueError("bad input")

        session.handle("message", on_message)
        session.start()
        assert session.offset == 2
        assert session.state is SessionState.STOPPED

    def test_handlers_can_reply_on_the_loop_thread(self) -> None:
        client = FakeClient()
        session = _session(client)
        client.batches = [[message_update(1, "ping")], then(session.stop, [])]

        @session.handle("message")
        def on_message(message: Message) -> None:
            session.send(SendMessage(chat_id=message.chat.id, text=message.text))

        session.start()
        assert client.sent == [SendMessage(chat_id=1000, text="ping")]

    def test_close_stops_and_closes_client(self) -> None:
        client = FakeClient()
        with _session(client) as session:
            pass
        assert client.closed
        assert session._poller.stopped


# ── Outbound calls ───────────────────────────────────────────────────────────


class TestOutbound:
    def test_send_api_error(self) -> None:
        http = MagicMock()
        http.post.return_value = _response({"ok": False, "error_code": 400, "description": "bad request"}, 400)
        session = Session("123:ABC", client=BotClient("123:ABC", http=http))

        with pytest.raises(APIError) as exc_info:
            session.send(SendMessage(chat_id=1, text="x"))

        assert exc_info.value.error_code == 400
        assert exc_info.value.description == "bad request"
        assert exc_info.value.method == "sendMessage"

    def test_call_passes_through(self) -> None:
        client = FakeClient()
        session = _session(client)
        assert session.call("deleteMessage", {"chat_id": 1, "message_id": 2}) is True
        assert client.sent == [("deleteMessage", {"chat_id": 1, "message_id": 2})]
