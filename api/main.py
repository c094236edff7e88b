from typing import Optional

from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from common import records, storage
from common.config import DEV_USER_EMAIL, LOG_LEVEL, LOG_STRUCTURED
from common.errors import StagingError
from common.ids import rid
from common.job_schema import (
    TEXT_ONLY_SOURCE,
    Asset,
    AssetKind,
    CommitRequest,
    CreateJobRequest,
    GenerationOptions,
    Job,
    JobStatus,
    PresignRequest,
)
from common.logger import configure_logging, get_logger
from common.uploads import commit_asset_metadata
from worker.prompts import normalize_request, resolve_mode
from worker.worker import http_status_for, process_job

configure_logging(LOG_LEVEL, structured=LOG_STRUCTURED)

app = FastAPI(title="Room Staging API")


@app.exception_handler(StagingError)
async def staging_error_handler(request: Request, exc: StagingError):
    return JSONResponse(status_code=http_status_for(exc), content=exc.to_dict())


def current_user(
    cf_access_authenticated_user_email: Optional[str] = Header(default=None),
) -> str:
    # Access token verification happens in front of this service
    return cf_access_authenticated_user_email or DEV_USER_EMAIL


def request_logger(request: Request, user: str = Depends(current_user)):
    return get_logger(
        "api",
        request_id=request.headers.get("x-request-id") or rid(),
        endpoint=request.url.path,
        method=request.method,
        user_id=user,
    )


@app.get("/api/health")
def health():
    return {"ok": True}


# ---------- uploads / assets ----------

@app.post("/api/uploads/presign")
def presign_upload(body: PresignRequest, request: Request, user: str = Depends(current_user)):
    asset_id = rid("ast_")
    key = f"{body.kind.value}/{asset_id}-{body.filename}"
    asset = Asset(
        id=asset_id,
        user_email=user,
        kind=body.kind,
        mime=body.mime,
        meta={"filename": body.filename, "pending_key": key},
    )
    records.insert_asset(asset)
    upload_url = str(request.url_for("upload_asset_bytes", asset_id=asset_id))
    return {"uploadUrl": upload_url, "r2Key": key, "assetId": asset_id}


@app.put("/api/uploads/{asset_id}", name="upload_asset_bytes")
async def upload_asset_bytes(asset_id: str, file: UploadFile = File(...)):
    asset = records.get_asset(asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")
    if asset.r2_key or asset.kind == AssetKind.OUTPUT:
        raise HTTPException(status_code=409, detail="Asset is already uploaded")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="File required")

    key = asset.meta.get("pending_key") or f"{asset.kind.value}/{asset.id}"
    storage.put_object(key, content, content_type=asset.mime)
    asset.r2_key = key
    asset.bytes = len(content)
    records.update_asset(asset)
    return {"ok": True, "r2Key": key, "bytes": len(content)}


@app.post("/api/uploads/commit")
def commit_upload(body: CommitRequest):
    asset = commit_asset_metadata(body)
    return {"ok": True, "asset": asset}


@app.get("/api/assets/{asset_id}")
def download_asset(asset_id: str):
    asset = records.get_asset(asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")
    if not asset.r2_key:
        raise HTTPException(status_code=404, detail="Asset file not available")
    data = storage.get_object(asset.r2_key)
    if data is None:
        raise HTTPException(status_code=404, detail="File not found in storage")
    return Response(
        content=data,
        media_type=asset.mime or "application/octet-stream",
        headers={"Cache-Control": "public, max-age=31536000"},
    )


# ---------- jobs ----------

@app.post("/api/jobs")
def create_job(body: CreateJobRequest, user: str = Depends(current_user), log=Depends(request_logger)):
    options = body.options or GenerationOptions()
    mode = resolve_mode(body.mode, options, body.original_asset_id)

    # Validation failures surface here, before any job row exists
    gen = normalize_request(mode, body.style, options, body.original_asset_id)

    job = Job(
        id=rid("job_"),
        user_email=user,
        mode=mode,
        style=body.style.strip(),
        original_asset_id=gen.source_asset.id if gen.source_asset else None,
        original_r2_key=gen.source_key or TEXT_ONLY_SOURCE,
        options=options,
        prompt=gen.prompt,
        negative_prompt=gen.negative_prompt,
        strength=gen.strength,
        model=gen.model,
    )
    records.insert_job(job)
    log.info("Job created", extra={"job_id": job.id, "mode": mode.value})
    return {"jobId": job.id, "status": job.status}


@app.get("/api/jobs/{job_id}")
def read_job(job_id: str):
    job = records.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return {"job": job}


@app.get("/api/jobs/{job_id}/result")
def get_result(job_id: str):
    job = records.get_job(job_id)
    if not job or not job.output_r2_key:
        raise HTTPException(status_code=404, detail="Result not available")
    data = storage.get_object(job.output_r2_key)
    if data is None:
        raise HTTPException(status_code=404, detail="Result file missing")
    return Response(content=data, media_type="image/png")


@app.post("/api/staging/{job_id}/run")
def run_job(job_id: str, log=Depends(request_logger)):
    # StagingError is rendered by staging_error_handler
    asset = process_job(job_id, log=log)
    return {"ok": True, "outKey": asset.r2_key, "outputAssetId": asset.id}


@app.get("/api/admin/jobs")
def admin_list_jobs(status: Optional[JobStatus] = None):
    return {"jobs": records.list_jobs(status)}
