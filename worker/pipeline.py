"""Generation dispatch and output persistence for a single staging job."""

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from common import records, storage
from common.errors import SourceMissingError, StorageError, classify_backend_error
from common.ids import rid
from common.job_schema import Asset, AssetKind, Job
from worker.decode import decode_payload
from worker.prompts import GenerationRequest
from worker.workers_ai import DEFAULT_ASPECT_RATIO, DEFAULT_TEXT_STEPS

OUTPUT_CONTENT_TYPE = "image/png"


@dataclass
class GenerationResult:
    data: bytes
    content_type: str = OUTPUT_CONTENT_TYPE
    conditioned: bool = False


def output_key(job_id: str) -> str:
    return f"outputs/{job_id}.png"


def load_source(request: GenerationRequest) -> GenerationRequest:
    """Fill `request.source_bytes` from the asset store."""
    key = request.source_key
    if not key:
        return request
    data = storage.get_object(key)
    if data is None:
        raise SourceMissingError(f"Image file not found in storage. Please re-upload the image. ({key})")
    request.source_bytes = data
    return request


def generate(request: GenerationRequest, ai, log: logging.LoggerAdapter) -> GenerationResult:
    """Image-conditioned generation first when source pixels exist, text-only otherwise.

    A failed conditioned attempt falls back to text-only generation exactly
    once; the text-only call has no further fallback.
    """
    if request.source_bytes:
        try:
            payload = ai.generate_conditioned(
                request.prompt,
                request.negative_prompt,
                request.source_bytes,
                request.strength,
                params=request.params,
                model=request.model,
            )
            data = decode_payload(payload)
            log.info("Conditioned generation completed", extra={"bytes": len(data)})
            return GenerationResult(data=data, conditioned=True)
        except Exception as e:
            log.warning(
                "Conditioned generation failed, falling back to text-to-image",
                extra={"error": str(e)},
            )

    # the caller's model only applies here when no source image was involved
    model = request.model if request.source_asset is None else None
    try:
        payload = ai.generate_unconditioned(
            request.prompt,
            steps=request.steps or DEFAULT_TEXT_STEPS,
            aspect_ratio=request.aspect_ratio or DEFAULT_ASPECT_RATIO,
            model=model,
        )
        data = decode_payload(payload)
    except Exception as e:
        err = classify_backend_error(e)
        log.error("AI processing failed", extra={"category": err.category, "error": str(e)})
        if err is e:
            raise
        raise err from e

    log.info("Text-to-image generation completed", extra={"bytes": len(data)})
    return GenerationResult(data=data)


def persist_output(
    job: Job,
    request: GenerationRequest,
    result: GenerationResult,
    log: logging.LoggerAdapter,
) -> Asset:
    """Store the image, then its asset record. The object is removed again if the record can't be written."""
    key = output_key(job.id)
    try:
        storage.put_object(key, result.data, content_type=result.content_type)
    except Exception as e:
        raise StorageError(f"Failed to save processed image: {e}") from e
    log.info("Output saved", extra={"output_key": key})

    source: Optional[Asset] = request.source_asset
    asset = Asset(
        id=rid("ast_"),
        user_email=source.user_email if source else job.user_email,
        kind=AssetKind.OUTPUT,
        r2_key=key,
        mime=result.content_type,
        width=source.width if source else None,
        height=source.height if source else None,
        bytes=len(result.data),
        checksum=hashlib.sha256(result.data).hexdigest(),
        meta={"job_id": job.id, "conditioned": result.conditioned},
    )
    try:
        records.insert_asset(asset)
    except Exception as e:
        try:
            storage.delete_object(key)
        except Exception:
            log.exception("Could not remove output after failed asset insert", extra={"output_key": key})
        raise StorageError(f"Failed to create output asset record: {e}") from e

    log.info("Output asset record created", extra={"output_asset_id": asset.id})
    return asset
