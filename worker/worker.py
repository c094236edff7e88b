import logging
from typing import Optional

from common import records
from common.errors import GenerationError, StagingError, StorageError
from common.job_schema import Asset, Job, JobStatus
from common.logger import bind, get_logger
from worker.pipeline import generate, load_source, persist_output
from worker.prompts import normalize_request
from worker.workers_ai import WorkersAIClient

MAX_ERROR_LENGTH = 500

logger = get_logger(__name__)


# ---------- status / error reporting ----------

def as_staging_error(exc: Exception) -> StagingError:
    if isinstance(exc, StagingError):
        return exc
    return GenerationError(f"{exc.__class__.__name__}: {exc}")


def http_status_for(exc: Exception) -> int:
    return as_staging_error(exc).status_code


def report_success(job: Job, asset: Asset) -> Job:
    job.status = JobStatus.SUCCEEDED
    job.output_r2_key = asset.r2_key
    job.output_asset_id = asset.id
    job.error = None
    try:
        return records.update_job(job)
    except Exception as e:
        raise StorageError(f"Failed to record job result: {e}") from e


def report_failure(job: Job, exc: Exception) -> StagingError:
    """Write the terminal `failed` status and return the classified error.

    A failure to write the status is logged; the classified error is still
    returned so callers see the original cause.
    """
    err = as_staging_error(exc)
    job.status = JobStatus.FAILED
    job.output_r2_key = None
    job.output_asset_id = None
    job.error = f"{err.category}: {err.message}"[:MAX_ERROR_LENGTH]
    try:
        records.update_job(job)
    except Exception:
        logger.exception("Failed to record job failure", extra={"job_id": job.id})
    return err


# ---------- job runner ----------

def process_job(
    job_id: str,
    ai=None,
    log: Optional[logging.LoggerAdapter] = None,
) -> Asset:
    """Run one queued job to completion: processing -> succeeded | failed.

    Returns the output asset; raises the classified StagingError after the
    job has been marked failed.
    """
    job = records.claim_job(job_id)

    log = bind(log or logger, job_id=job.id, original_asset_id=job.original_asset_id)
    log.info("Pipeline processing started", extra={"style": job.style, "mode": job.mode.value})

    owns_client = ai is None
    try:
        request = normalize_request(job.mode, job.style, job.options, job.original_asset_id)
        load_source(request)
        if owns_client:
            ai = WorkersAIClient()
        log.info(
            "AI processing parameters",
            extra={"prompt": request.prompt, "strength": request.strength, "model": request.model},
        )
        result = generate(request, ai, log)
        asset = persist_output(job, request, result, log)
        report_success(job, asset)
    except Exception as e:
        err = report_failure(job, e)
        log.error("Pipeline processing failed", extra={"category": err.category, "error": err.message})
        if err is e:
            raise
        raise err from e
    finally:
        if owns_client and ai is not None:
            ai.close()

    log.info("Job completed successfully", extra={"output_asset_id": asset.id})
    return asset
