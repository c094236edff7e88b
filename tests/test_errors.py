"""Tests for backend error classification."""

from __future__ import annotations

import httpx
import pytest

from common.errors import (
    EmptyGenerationError,
    GenerationError,
    GenerationTimeoutError,
    QuotaExceededError,
    SourceMissingError,
    UnsupportedFormatError,
    classify_backend_error,
)
from worker.workers_ai import WorkersAIError


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("AiError: 5012: Type mismatch", UnsupportedFormatError),
        ("input must be bytes_type", UnsupportedFormatError),
        ("original not found: original/x.png", SourceMissingError),
        ("Daily quota reached", QuotaExceededError),
        ("neuron limit exceeded", QuotaExceededError),
        ("upstream timeout", GenerationTimeoutError),
        ("something exploded", GenerationError),
    ],
)
def test_substring_reclassification(message, expected) -> None:
    err = classify_backend_error(RuntimeError(message))
    assert type(err) is expected
    assert message in err.message


def test_http_timeout_is_timeout() -> None:
    err = classify_backend_error(httpx.ReadTimeout("read operation stalled"))
    assert isinstance(err, GenerationTimeoutError)


def test_rate_limited_response_is_quota() -> None:
    err = classify_backend_error(WorkersAIError(429, "Workers AI request failed with status 429: 3040: capacity"))
    assert isinstance(err, QuotaExceededError)
    assert err.status_code == 429


def test_classified_errors_pass_through() -> None:
    original = EmptyGenerationError("nothing")
    assert classify_backend_error(original) is original


def test_catch_all_keeps_original_message() -> None:
    err = classify_backend_error(ValueError("model exploded"))
    assert err.status_code == 500
    assert "model exploded" in err.message
    assert err.to_dict() == {"error": "generation_error", "message": err.message}
