"""Shared pytest fixtures for the staging service tests."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from common import storage
from common.logger import get_logger


class FakeAI:
    """Stands in for WorkersAIClient; each backend returns a payload or raises."""

    def __init__(self, conditioned=None, unconditioned=None):
        self.conditioned = conditioned
        self.unconditioned = unconditioned
        self.calls: list[tuple[str, dict]] = []
        self.closed = False

    def _answer(self, value):
        if isinstance(value, Exception):
            raise value
        return value

    def generate_conditioned(self, prompt, negative_prompt, source, strength, params=None, model=None):
        self.calls.append(
            (
                "conditioned",
                {
                    "prompt": prompt,
                    "negative_prompt": negative_prompt,
                    "source": source,
                    "strength": strength,
                    "params": params,
                    "model": model,
                },
            )
        )
        return self._answer(self.conditioned)

    def generate_unconditioned(self, prompt, steps=4, aspect_ratio="1:1", model=None):
        self.calls.append(
            ("unconditioned", {"prompt": prompt, "steps": steps, "aspect_ratio": aspect_ratio, "model": model})
        )
        return self._answer(self.unconditioned)

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def local_store(tmp_path, monkeypatch):
    """Point the local storage backend at a per-test directory."""
    monkeypatch.setattr(storage, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(storage, "LOCAL_DATA_DIR", tmp_path / "data")
    return tmp_path / "data"


@pytest.fixture
def png_bytes() -> bytes:
    """A small 8x6 PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (8, 6), color=(200, 180, 160)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def log():
    return get_logger("tests", job_id="job_test")


@pytest.fixture
def fake_ai_factory():
    return FakeAI
