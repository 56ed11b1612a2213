"""Bot API SDK — transport codec, call invoker, pydantic models and exceptions.

Usage::

    from tgsdk import BotClient, APIError
    from tgsdk.models import SendMessage

    with BotClient(token) as client:
        me = client.get_me()
        client.send(SendMessage(chat_id=42, text="hello"))
"""

from tgsdk.client import BotClient
from tgsdk.exceptions import (
    APIError,
    BotError,
    ConfigurationError,
    ProtocolError,
    TransportError,
)

__all__ = [
    "BotClient",
    "BotError",
    "APIError",
    "ConfigurationError",
    "ProtocolError",
    "TransportError",
]
