"""Pydantic data models for the subset of the Bot API the runtime touches.

Inbound shapes (``User``, ``Chat``, ``Message``, ``CallbackQuery``) are
decoded from update fragments and call results.  Outbound shapes derive from
:class:`OutboundRequest`, which carries the remote operation name and the
explicit ``to_fields`` serialization contract used by :mod:`tgsdk.codec`.
"""

from __future__ import annotations

import io
from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class ResponseParameters(BaseModel):
    """Describes why a request was unsuccessful."""

    migrate_to_chat_id: Optional[int] = None
    retry_after: Optional[int] = None

    model_config = {"populate_by_name": True}


class ResponseEnvelope(BaseModel):
    """Top-level object of every Bot API response.

    ``result`` is present only when ``ok`` is true; ``error_code`` and
    ``description`` only when it is false.
    """

    ok: bool = False
    result: Any = None
    error_code: Optional[int] = None
    description: Optional[str] = None
    parameters: Optional[ResponseParameters] = None

    model_config = {"populate_by_name": True}


class User(BaseModel):
    """This object represents a Telegram user or bot."""

    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None

    model_config = {"populate_by_name": True}


class Chat(BaseModel):
    """This object represents a chat."""

    id: int
    type: str
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    model_config = {"populate_by_name": True}


class PhotoSize(BaseModel):
    """One size of a photo or a file / sticker thumbnail."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Document(BaseModel):
    """A general file (as opposed to photos, voice messages and audio files)."""

    file_id: str
    file_unique_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Message(BaseModel):
    """This object represents a message."""

    message_id: int
    date: int
    chat: Chat
    from_field: Optional[User] = Field(None, alias="from")
    text: Optional[str] = None
    caption: Optional[str] = None
    reply_to_message: Optional[Message] = None
    photo: Optional[List[PhotoSize]] = None
    document: Optional[Document] = None

    model_config = {"populate_by_name": True}


class CallbackQuery(BaseModel):
    """An incoming callback query from an inline keyboard button."""

    id: str
    from_field: User = Field(..., alias="from")
    chat_instance: str
    message: Optional[Message] = None
    inline_message_id: Optional[str] = None
    data: Optional[str] = None

    model_config = {"populate_by_name": True}


class InlineKeyboardButton(BaseModel):
    """One button of an inline keyboard."""

    text: str
    url: Optional[str] = None
    callback_data: Optional[str] = None

    model_config = {"populate_by_name": True}


class InlineKeyboardMarkup(BaseModel):
    """An inline keyboard that appears right next to the message it belongs to."""

    inline_keyboard: List[List[InlineKeyboardButton]]

    model_config = {"populate_by_name": True}


class InputFile(BaseModel):
    """Raw file content uploaded as a multipart file part.

    ``filename`` overrides the default part filename (the field name).
    """

    content: bytes
    filename: Optional[str] = None

    model_config = {"populate_by_name": True}


# Anything the codec uploads as a file part, or a file_id / URL string.
FileField = Union[InputFile, io.IOBase, bytes, str]


class OutboundRequest(BaseModel):
    """Base class for typed outbound calls.

    Subclasses set :attr:`api_method` to the remote operation name and
    :attr:`result_type` to the shape the ``result`` fragment decodes into.
    """

    api_method: ClassVar[str] = ""
    result_type: ClassVar[Any] = None

    model_config = {"populate_by_name": True, "arbitrary_types_allowed": True}

    def to_fields(self) -> Dict[str, Any]:
        """Return the non-``None`` fields keyed by their wire names.

        Values are returned as-is (nested models and byte streams included);
        :mod:`tgsdk.codec` decides how each one is encoded.
        """
        fields: Dict[str, Any] = {}
        for name, info in type(self).model_fields.items():
            value = getattr(self, name)
            if value is not None:
                fields[info.alias or name] = value
        return fields


class SendMessage(OutboundRequest):
    """Send a text message. On success, the sent Message is returned."""

    api_method: ClassVar[str] = "sendMessage"
    result_type: ClassVar[Any] = Message

    chat_id: Union[int, str]
    text: str
    parse_mode: Optional[str] = None
    disable_notification: Optional[bool] = None
    reply_to_message_id: Optional[int] = None
    reply_markup: Optional[Union[InlineKeyboardMarkup, Dict[str, Any]]] = None


class SendPhoto(OutboundRequest):
    """Send a photo, either uploaded or referenced by file_id / URL."""

    api_method: ClassVar[str] = "sendPhoto"
    result_type: ClassVar[Any] = Message

    chat_id: Union[int, str]
    photo: FileField
    caption: Optional[str] = None
    parse_mode: Optional[str] = None
    reply_to_message_id: Optional[int] = None
    reply_markup: Optional[Union[InlineKeyboardMarkup, Dict[str, Any]]] = None


class SendDocument(OutboundRequest):
    """Send a general file, either uploaded or referenced by file_id / URL."""

    api_method: ClassVar[str] = "sendDocument"
    result_type: ClassVar[Any] = Message

    chat_id: Union[int, str]
    document: FileField
    caption: Optional[str] = None
    parse_mode: Optional[str] = None
    reply_to_message_id: Optional[int] = None
    reply_markup: Optional[Union[InlineKeyboardMarkup, Dict[str, Any]]] = None


class AnswerCallbackQuery(OutboundRequest):
    """Acknowledge a callback query so the client stops showing a spinner."""

    api_method: ClassVar[str] = "answerCallbackQuery"
    result_type: ClassVar[Any] = bool

    callback_query_id: str
    text: Optional[str] = None
    show_alert: Optional[bool] = None
