"""Turn an inference payload into image bytes.

Upstream models answer in several shapes. Each shape is recognised by
`classify_payload` and decoded by exactly one function in `_DECODERS`:

    RAW_BYTES      b"\\x89PNG..."
    CHUNKS         [b"\\x89P", b"NG..."]   (streamed body, arrival order)
    IMAGE_BYTES    {"image": b"..."}
    IMAGE_BASE64   {"image": "iVBOR..."} or "data:image/png;base64,iVBOR..."
    IMAGES_ARRAY   {"images": ["iVBOR...", ...]}   (first element wins)

Anything else raises UnknownResponsePayloadError; a zero-length result raises
EmptyGenerationError.
"""

import base64
import binascii
import re
from enum import Enum
from collections.abc import Iterable
from typing import Any, Callable, Dict

from common.errors import EmptyGenerationError, UnknownResponsePayloadError

_BUFFER_TYPES = (bytes, bytearray, memoryview)
_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


class PayloadShape(str, Enum):
    RAW_BYTES = "raw_bytes"
    CHUNKS = "chunks"
    IMAGE_BYTES = "image_bytes"
    IMAGE_BASE64 = "image_base64"
    IMAGES_ARRAY = "images_array"


def _field(payload: Any, name: str) -> Any:
    if isinstance(payload, dict):
        return payload.get(name)
    return getattr(payload, name, None)


def classify_payload(payload: Any) -> PayloadShape:
    if isinstance(payload, _BUFFER_TYPES):
        return PayloadShape.RAW_BYTES

    image = _field(payload, "image")
    if isinstance(image, _BUFFER_TYPES):
        return PayloadShape.IMAGE_BYTES
    if isinstance(image, str):
        return PayloadShape.IMAGE_BASE64

    images = _field(payload, "images")
    if isinstance(images, (list, tuple)):
        return PayloadShape.IMAGES_ARRAY

    if isinstance(payload, str):
        # bare base64 string, same rules as {"image": "..."}
        return PayloadShape.IMAGE_BASE64

    if not isinstance(payload, dict) and isinstance(payload, Iterable):
        return PayloadShape.CHUNKS

    raise UnknownResponsePayloadError(
        f"Unrecognised AI response payload: {type(payload).__name__}"
    )


def decode_base64_image(data: str) -> bytes:
    """Decode base64 image data, dropping a leading data:image/...;base64, prefix.

    Line breaks and other whitespace inside the data are ignored.
    """
    cleaned = _WHITESPACE.sub("", _DATA_URL_PREFIX.sub("", data.strip(), count=1))
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UnknownResponsePayloadError(f"Image field is not valid base64: {e}") from e


def _decode_raw(payload: Any) -> bytes:
    return bytes(payload)


def _decode_chunks(payload: Iterable) -> bytes:
    parts = []
    for chunk in payload:
        if not isinstance(chunk, _BUFFER_TYPES):
            raise UnknownResponsePayloadError(
                f"Stream produced a non-bytes chunk: {type(chunk).__name__}"
            )
        parts.append(bytes(chunk))
    return b"".join(parts)


def _decode_image_bytes(payload: Any) -> bytes:
    return bytes(_field(payload, "image"))


def _decode_image_base64(payload: Any) -> bytes:
    data = payload if isinstance(payload, str) else _field(payload, "image")
    return decode_base64_image(data)


def _decode_images_array(payload: Any) -> bytes:
    images = _field(payload, "images")
    if not images:
        raise EmptyGenerationError("AI response contained an empty images array")
    first = images[0]
    if isinstance(first, _BUFFER_TYPES):
        return bytes(first)
    if not isinstance(first, str):
        raise UnknownResponsePayloadError(
            f"Unrecognised images[0] element: {type(first).__name__}"
        )
    return decode_base64_image(first)


_DECODERS: Dict[PayloadShape, Callable[[Any], bytes]] = {
    PayloadShape.RAW_BYTES: _decode_raw,
    PayloadShape.CHUNKS: _decode_chunks,
    PayloadShape.IMAGE_BYTES: _decode_image_bytes,
    PayloadShape.IMAGE_BASE64: _decode_image_base64,
    PayloadShape.IMAGES_ARRAY: _decode_images_array,
}


def decode_payload(payload: Any) -> bytes:
    if payload is None:
        raise EmptyGenerationError("AI returned no payload")
    shape = classify_payload(payload)
    data = _DECODERS[shape](payload)
    if not data:
        raise EmptyGenerationError(f"AI returned an empty image ({shape.value})")
    return data
