"""Cloudflare Workers AI client (REST).

Two logical operations are exposed to the pipeline:

- ``generate_conditioned``: image-to-image, source pixels + prompt.
- ``generate_unconditioned``: text-to-image.

Both return the upstream payload as-is (bytes, list of byte chunks, or the
unwrapped JSON ``result`` object); turning it into image bytes is the job of
``worker.decode``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from common.config import (
    CF_ACCOUNT_ID,
    CF_API_TOKEN,
    DEFAULT_IMAGE_MODEL,
    DEFAULT_TEXT_MODEL,
    WORKERS_AI_BASE_URL,
    WORKERS_AI_TIMEOUT,
)

logger = logging.getLogger(__name__)

DEFAULT_TEXT_STEPS = 4
DEFAULT_ASPECT_RATIO = "1:1"

# option name -> Workers AI input name
CONDITIONED_PARAM_NAMES = {
    "cfg_scale": "guidance",
    "steps": "num_steps",
    "seed": "seed",
    "sampler": "scheduler",
}


class WorkersAIError(RuntimeError):
    """Non-2xx response from Workers AI; message carries status, codes and messages."""

    def __init__(self, status_code: int, message: str, codes: Optional[list] = None):
        self.status_code = status_code
        self.codes = codes or []
        super().__init__(message)


class WorkersAIClient:
    def __init__(
        self,
        account_id: Optional[str] = CF_ACCOUNT_ID,
        api_token: Optional[str] = CF_API_TOKEN,
        base_url: str = WORKERS_AI_BASE_URL,
        timeout: float = WORKERS_AI_TIMEOUT,
        stream: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not account_id or not api_token:
            raise ValueError("CF_ACCOUNT_ID and CF_API_TOKEN are required for Workers AI")
        self.stream = stream
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/accounts/{account_id}/ai/run/",
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "WorkersAIClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def run(self, model: str, inputs: dict) -> Any:
        """POST `inputs` to `model`.

        JSON bodies are unwrapped from the ``{"result": ...}`` envelope; binary
        bodies come back as bytes, or as the list of received chunks when the
        client streams.
        """
        logger.debug("Workers AI run", extra={"model": model, "inputs": sorted(inputs)})
        with self._client.stream("POST", model, json=inputs) as response:
            content_type = response.headers.get("content-type", "")

            if response.status_code >= 400:
                response.read()
                raise _error_from_response(response)

            if content_type.startswith("application/json"):
                response.read()
                body = response.json()
                if isinstance(body, dict) and "result" in body:
                    if body.get("success") is False:
                        raise _error_from_response(response)
                    return body["result"]
                return body

            if self.stream:
                return [chunk for chunk in response.iter_bytes() if chunk]
            return response.read()

    def generate_conditioned(
        self,
        prompt: str,
        negative_prompt: str,
        source: bytes,
        strength: float,
        params: Optional[dict] = None,
        model: Optional[str] = None,
    ) -> Any:
        inputs = {
            "prompt": prompt,
            "negative_prompt": negative_prompt,
            # uint8 array, as the img2img models expect
            "image": list(source),
            "strength": strength,
        }
        for name, value in (params or {}).items():
            if value is None:
                continue
            inputs[CONDITIONED_PARAM_NAMES.get(name, name)] = value
        return self.run(model or DEFAULT_IMAGE_MODEL, inputs)

    def generate_unconditioned(
        self,
        prompt: str,
        steps: int = DEFAULT_TEXT_STEPS,
        aspect_ratio: str = DEFAULT_ASPECT_RATIO,
        model: Optional[str] = None,
    ) -> Any:
        inputs = {"prompt": prompt, "steps": steps, "aspect_ratio": aspect_ratio}
        return self.run(model or DEFAULT_TEXT_MODEL, inputs)


def _error_from_response(response: httpx.Response) -> WorkersAIError:
    codes: list = []
    messages: list = []
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for err in body.get("errors") or []:
            if isinstance(err, dict):
                codes.append(err.get("code"))
                messages.append(f"{err.get('code')}: {err.get('message')}")
            else:
                messages.append(str(err))
    if not messages:
        messages.append(response.text[:300] or response.reason_phrase)

    return WorkersAIError(
        response.status_code,
        f"Workers AI request failed with status {response.status_code}: {'; '.join(messages)}",
        codes,
    )
