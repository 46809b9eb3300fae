"""Content-type driven payload coercion between bytes and text.

Policy by ``content-type`` header (case-insensitive, parameters ignored):

    =========================  ==========================  ====================
    content-type               to text                     to bytes
    =========================  ==========================  ====================
    absent                     decode UTF-8 if bytes       encode UTF-8
    text/*                     decode UTF-8                encode UTF-8
    */json                     decode UTF-8                encode UTF-8
    application/octet-stream   unchanged                   unchanged
    anything else              unchanged                   unchanged
    =========================  ==========================  ====================

Coercion never raises. A payload that cannot be converted (bytes that are
not valid UTF-8, a value with no text form) passes through unchanged.
"""

import json
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional

from core.logging import log_with_context
from core.utils.json_serializers import json_serializer
from streamfn.message import Message

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
APPLICATION_JSON = "application/json"
TEXT_PLAIN = "text/plain"


class Direction(str, Enum):
    TO_TEXT = "toText"
    TO_BYTES = "toBytes"


class PayloadPolicy(Enum):
    ABSENT = "absent"
    TEXT = "text"
    JSON = "json"
    OPAQUE = "opaque"


def normalize_content_type(content_type: Any) -> Optional[str]:
    """Lower-case ``type/subtype`` with parameters removed, or None when unset."""
    if content_type is None:
        return None
    normalized = str(content_type).split(";", 1)[0].strip().lower()
    return normalized or None


def policy_for(content_type: Any) -> PayloadPolicy:
    normalized = normalize_content_type(content_type)
    if normalized is None:
        return PayloadPolicy.ABSENT
    major, _, minor = normalized.partition("/")
    if major == "text":
        return PayloadPolicy.TEXT
    if minor == "json":
        return PayloadPolicy.JSON
    return PayloadPolicy.OPAQUE


def is_textual(content_type: Any) -> bool:
    """True when payloads of this content type are handled as text."""
    return policy_for(content_type) is not PayloadPolicy.OPAQUE


def _to_text(message: Message, policy: PayloadPolicy) -> Message:
    payload = message.payload
    if not isinstance(payload, (bytes, bytearray)):
        return message
    if policy is PayloadPolicy.OPAQUE:
        return message
    try:
        return message.with_payload(bytes(payload).decode("utf-8"))
    except UnicodeDecodeError:
        log_with_context(
            logger,
            logging.DEBUG,
            "Payload is not valid UTF-8, passing through",
            content_type=message.content_type,
            direction=Direction.TO_TEXT.value,
        )
        return message


def _to_bytes(message: Message, policy: PayloadPolicy) -> Message:
    payload = message.payload
    if policy is PayloadPolicy.OPAQUE:
        return message
    if isinstance(payload, str):
        return message.with_payload(payload.encode("utf-8"))
    if isinstance(payload, (Mapping, list)) and policy in (PayloadPolicy.ABSENT, PayloadPolicy.JSON):
        try:
            text = json.dumps(payload, default=json_serializer, ensure_ascii=False)
        except (TypeError, ValueError):
            log_with_context(
                logger,
                logging.DEBUG,
                "Structured payload could not be encoded as JSON, passing through",
                content_type=message.content_type,
                direction=Direction.TO_BYTES.value,
                payload_type=type(payload).__name__,
            )
            return message
        return message.with_payload(text.encode("utf-8"))
    return message


def coerce(message: Message, direction: Direction) -> Message:
    """Convert the payload according to the message's content type."""
    policy = policy_for(message.content_type)
    if Direction(direction) is Direction.TO_TEXT:
        return _to_text(message, policy)
    return _to_bytes(message, policy)


def byte_array_text_to_string(message: Message) -> Message:
    """Decode textual byte payloads; everything else passes through."""
    return coerce(message, Direction.TO_TEXT)


__all__ = [
    "Direction",
    "PayloadPolicy",
    "OCTET_STREAM",
    "APPLICATION_JSON",
    "TEXT_PLAIN",
    "normalize_content_type",
    "policy_for",
    "is_textual",
    "coerce",
    "byte_array_text_to_string",
]
