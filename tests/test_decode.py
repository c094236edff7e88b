"""Tests for AI response payload decoding."""

from __future__ import annotations

import base64

import pytest

from common.errors import EmptyGenerationError, UnknownResponsePayloadError
from worker.decode import PayloadShape, classify_payload, decode_payload

EXPECTED = b"\x89PNG\r\n\x1a\nfake-image-body"
B64 = base64.b64encode(EXPECTED).decode()


class ImageHolder:
    def __init__(self, image):
        self.image = image


@pytest.mark.parametrize(
    ("payload", "shape"),
    [
        (EXPECTED, PayloadShape.RAW_BYTES),
        (bytearray(EXPECTED), PayloadShape.RAW_BYTES),
        ([EXPECTED[:5], EXPECTED[5:12], EXPECTED[12:]], PayloadShape.CHUNKS),
        ({"image": EXPECTED}, PayloadShape.IMAGE_BYTES),
        ({"image": B64}, PayloadShape.IMAGE_BASE64),
        ({"image": f"data:image/png;base64,{B64}"}, PayloadShape.IMAGE_BASE64),
        ({"images": [B64, "ignored"]}, PayloadShape.IMAGES_ARRAY),
        (ImageHolder(EXPECTED), PayloadShape.IMAGE_BYTES),
    ],
)
def test_every_shape_decodes_to_the_same_bytes(payload, shape) -> None:
    assert classify_payload(payload) == shape
    assert decode_payload(payload) == EXPECTED


def test_streamed_generator_is_concatenated_in_order() -> None:
    def stream():
        yield EXPECTED[:3]
        yield EXPECTED[3:]

    assert decode_payload(stream()) == EXPECTED


def test_data_url_prefix_with_jpeg_type_is_stripped() -> None:
    assert decode_payload({"image": f"data:image/jpeg;base64,{B64}"}) == EXPECTED


def test_line_wrapped_base64_decodes() -> None:
    body = EXPECTED * 10
    wrapped = base64.encodebytes(body).decode()
    assert "\n" in wrapped.strip()
    assert decode_payload({"image": wrapped}) == body
    assert decode_payload({"images": [wrapped.replace("\n", "\r\n ")]}) == body


@pytest.mark.parametrize("payload", [b"", [], [b"", b""], {"image": b""}, {"image": ""}, {"images": []}, None])
def test_zero_length_result_is_empty_generation(payload) -> None:
    with pytest.raises(EmptyGenerationError):
        decode_payload(payload)


@pytest.mark.parametrize("payload", [{"result": "nope"}, 42, {"images": [123]}])
def test_unknown_shapes_are_rejected(payload) -> None:
    with pytest.raises(UnknownResponsePayloadError):
        decode_payload(payload)


def test_non_bytes_chunk_is_rejected() -> None:
    with pytest.raises(UnknownResponsePayloadError):
        decode_payload([EXPECTED, "text"])


def test_invalid_base64_is_rejected() -> None:
    with pytest.raises(UnknownResponsePayloadError):
        decode_payload({"image": "not base64 !!"})
