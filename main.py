"""Echo bot entry point.

Replies to every text message with the same text and acknowledges inline
button presses.  Configuration comes from :mod:`config`; SIGINT/SIGTERM
request a graceful stop at the next polling boundary.
"""

import signal

from config import API_BASE_URL, BOT_TOKEN, DEBUG, POLL_TIMEOUT
from tgcore.logger import BotLogger
from tgbot.session import Session
from tgsdk.models import AnswerCallbackQuery, CallbackQuery, Message, SendMessage

logger = BotLogger.get_logger()


def build_session(token: str) -> Session:
    """Create a session with the echo handlers registered."""
    session = Session(token, POLL_TIMEOUT, DEBUG, base_url=API_BASE_URL)

    @session.handle("message")
    def on_message(message: Message) -> None:
        if not message.text:
            logger.debug("Ignoring non-text message", extra={"chat_id": message.chat.id})
            return
        session.send(
            SendMessage(
                chat_id=message.chat.id,
                text=message.text,
                reply_to_message_id=message.message_id,
            )
        )
        logger.info("Echoed message", extra={"chat_id": message.chat.id})

    @session.handle("callback_query")
    def on_callback_query(query: CallbackQuery) -> None:
        session.send(AnswerCallbackQuery(callback_query_id=query.id, text=query.data))

    return session


def main() -> None:
    if not BOT_TOKEN:
        raise EnvironmentError("BOT_TOKEN environment variable is not set or is empty.")

    session = build_session(BOT_TOKEN)

    def _request_stop(signum: int, _frame: object) -> None:
        logger.info("Signal received, stopping after the current poll", extra={"signal": signum})
        session.stop()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    with session:
        session.start()
        logger.info("Bot stopped", extra={"bot_id": session.user.id if session.user else None})


if __name__ == "__main__":
    main()
