"""Transport codec — request bodies out, response envelopes in.

Outbound values are flattened into a field map (see :func:`to_fields`) and
encoded as one JSON document, or as ``multipart/form-data`` when at least one
field is a byte stream.  Inbound bodies are decoded into
:class:`~tgsdk.models.ResponseEnvelope` and result fragments are validated
into the caller's target type with pydantic.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from typing import Any, Dict, List, Tuple, Union

from pydantic import BaseModel, TypeAdapter, ValidationError
from urllib3 import encode_multipart_formdata

from tgsdk.exceptions import ProtocolError
from tgsdk.models import InputFile, ResponseEnvelope

JSON_CONTENT_TYPE = "application/json"


@dataclasses.dataclass(frozen=True, slots=True)
class EncodedBody:
    """A ready-to-send HTTP body and its ``Content-Type`` header value."""

    body: bytes
    content_type: str

    @property
    def is_multipart(self) -> bool:
        return self.content_type.startswith("multipart/form-data")


# ── Field extraction ─────────────────────────────────────────────────────────


def to_fields(value: Any) -> Dict[str, Any]:
    """Flatten an outbound request value into a ``{wire_name: value}`` map.

    Accepts ``None`` (no fields), any mapping with string keys, or an object
    implementing ``to_fields()`` such as :class:`~tgsdk.models.OutboundRequest`.

    Raises:
        TypeError: For any other shape.
    """
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {str(key): item for key, item in value.items()}
    to_fields_method = getattr(value, "to_fields", None)
    if callable(to_fields_method):
        return dict(to_fields_method())
    raise TypeError(f"cannot encode {type(value).__name__} as request fields")


def is_byte_stream(value: Any) -> bool:
    """Return ``True`` for values uploaded as multipart file parts."""
    if isinstance(value, (bytes, bytearray, InputFile)):
        return True
    return callable(getattr(value, "read", None))


def _read_stream(value: Any) -> bytes:
    if isinstance(value, InputFile):
        return value.content
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    data = value.read()
    if isinstance(data, str):
        data = data.encode("utf-8")
    return data


def to_jsonable(value: Any) -> Any:
    """Convert pydantic models (recursively) into plain JSON-ready values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, Mapping):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


# ── Encoding ─────────────────────────────────────────────────────────────────


def encode_body(value: Any) -> EncodedBody:
    """Encode *value* into an HTTP body.

    * no fields: empty body, ``application/json``;
    * no byte-stream field: the field map as one JSON document;
    * otherwise: ``multipart/form-data`` where byte streams become file
      parts named after their field (unless an :class:`InputFile` carries a
      filename), strings become text parts and every other value is
      JSON-marshaled into a text part.
    """
    fields = to_fields(value)
    if not fields:
        return EncodedBody(b"", JSON_CONTENT_TYPE)

    if not any(is_byte_stream(item) for item in fields.values()):
        document = json.dumps(to_jsonable(fields), ensure_ascii=False)
        return EncodedBody(document.encode("utf-8"), JSON_CONTENT_TYPE)

    parts: List[Tuple[str, Union[str, Tuple[str, bytes]]]] = []
    for name, item in fields.items():
        if is_byte_stream(item):
            filename = item.filename if isinstance(item, InputFile) and item.filename else name
            parts.append((name, (filename, _read_stream(item))))
        elif isinstance(item, str):
            parts.append((name, item))
        else:
            parts.append((name, json.dumps(to_jsonable(item), ensure_ascii=False)))
    body, content_type = encode_multipart_formdata(parts)
    return EncodedBody(body, content_type)


# ── Decoding ─────────────────────────────────────────────────────────────────


def decode_envelope(raw: bytes) -> ResponseEnvelope:
    """Parse the top-level ``{ok, result, error_code, description}`` object.

    Raises:
        ProtocolError: If *raw* is not a JSON object of that shape.
    """
    try:
        return ResponseEnvelope.model_validate_json(raw)
    except ValidationError as exc:
        preview = raw[:200].decode("utf-8", errors="replace")
        raise ProtocolError(f"malformed response envelope: {preview!r}") from exc


def decode_result(result: Any, result_type: Any) -> Any:
    """Validate a ``result`` fragment into *result_type*.

    ``None`` as *result_type* returns the fragment untouched.

    Raises:
        ProtocolError: If the fragment does not fit *result_type*.
    """
    if result_type is None:
        return result
    try:
        return TypeAdapter(result_type).validate_python(result)
    except ValidationError as exc:
        name = getattr(result_type, "__name__", repr(result_type))
        raise ProtocolError(f"cannot decode result as {name}: {exc}") from exc


# ── Pretty printing ──────────────────────────────────────────────────────────


def _describe_stream(name: str, value: Any) -> str:
    if isinstance(value, InputFile) and value.filename:
        return f"<file {value.filename}>"
    return f"<file {name}>"


def pretty_json(value: Any) -> str:
    """Render *value* as indented JSON, with byte streams as placeholders.

    Used for the request echo carried by :class:`~tgsdk.exceptions.APIError`
    and for debug logging; never raises on unserializable leaves.
    """
    try:
        fields = to_fields(value)
    except TypeError:
        fields = None
    if fields is not None:
        value = {
            name: _describe_stream(name, item) if is_byte_stream(item) else to_jsonable(item)
            for name, item in fields.items()
        }
    return json.dumps(to_jsonable(value), ensure_ascii=False, indent=2, default=str)


def pretty_body(raw: bytes) -> str:
    """Pretty-print a raw response body, falling back to the decoded text."""
    try:
        return pretty_json(json.loads(raw))
    except ValueError:
        return raw.decode("utf-8", errors="replace")
