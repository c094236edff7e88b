"""Job and asset records.

Each table is one JSON document in the configured storage backend
(db/jobs.json, db/assets.json), read and rewritten as a whole. A process-wide
lock serializes the read-modify-write cycles of a single API process.
"""

import json
import threading
import time
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel

from common import storage
from common.errors import NotFoundError, StorageError, ValidationError
from common.job_schema import Asset, Job, JobStatus

JOBS_OBJECT = "db/jobs.json"
ASSETS_OBJECT = "db/assets.json"

_lock = threading.RLock()

M = TypeVar("M", bound=BaseModel)


def _read_table(key: str, model: Type[M]) -> List[M]:
    raw = storage.get_object(key)
    if raw is None or not raw.strip():
        return []
    return [model(**x) for x in json.loads(raw)]


def _write_table(key: str, rows: List[BaseModel]) -> None:
    data = json.dumps([r.model_dump(mode="json") for r in rows], indent=2)
    storage.put_object(key, data.encode("utf-8"), content_type="application/json")


def _insert(key: str, model: Type[M], row: M) -> M:
    with _lock:
        rows = _read_table(key, model)
        if any(r.id == row.id for r in rows):
            raise StorageError(f"Duplicate id: {row.id}")
        rows.append(row)
        _write_table(key, rows)
    return row


def _get(key: str, model: Type[M], row_id: str) -> Optional[M]:
    with _lock:
        return next((r for r in _read_table(key, model) if r.id == row_id), None)


def _update(key: str, model: Type[M], row: M) -> M:
    with _lock:
        rows = _read_table(key, model)
        for i, r in enumerate(rows):
            if r.id == row.id:
                rows[i] = row
                break
        else:
            raise StorageError(f"No such record: {row.id}")
        _write_table(key, rows)
    return row


# ---------- jobs ----------

def insert_job(job: Job) -> Job:
    now = int(time.time())
    job.created_at = job.created_at or now
    job.updated_at = now
    return _insert(JOBS_OBJECT, Job, job)


def get_job(job_id: str) -> Optional[Job]:
    return _get(JOBS_OBJECT, Job, job_id)


def update_job(job: Job) -> Job:
    job.updated_at = int(time.time())
    return _update(JOBS_OBJECT, Job, job)


def claim_job(job_id: str) -> Job:
    """Move a queued job to `processing` in one locked step and return it."""
    with _lock:
        job = get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")
        if job.status != JobStatus.QUEUED:
            raise ValidationError(f"Job {job_id} is already {job.status.value}")
        job.status = JobStatus.PROCESSING
        return update_job(job)


def list_jobs(status: Optional[JobStatus] = None) -> List[Job]:
    """All jobs, newest first, optionally filtered by status."""
    with _lock:
        jobs = _read_table(JOBS_OBJECT, Job)
    if status is not None:
        jobs = [j for j in jobs if j.status == status]
    # stable ascending sort, then reverse: ties keep newest-inserted first
    return list(reversed(sorted(jobs, key=lambda j: j.created_at)))


# ---------- assets ----------

def insert_asset(asset: Asset) -> Asset:
    return _insert(ASSETS_OBJECT, Asset, asset)


def get_asset(asset_id: str) -> Optional[Asset]:
    return _get(ASSETS_OBJECT, Asset, asset_id)


def update_asset(asset: Asset) -> Asset:
    return _update(ASSETS_OBJECT, Asset, asset)
