from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
from enum import Enum

# Source key recorded on text-only jobs
TEXT_ONLY_SOURCE = "text-to-image-placeholder"


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobMode(str, Enum):
    TEXT_TO_IMAGE = "text-to-image"
    IMAGE_TO_IMAGE = "image-to-image"


class AssetKind(str, Enum):
    ORIGINAL = "original"
    OUTPUT = "output"


class GenerationOptions(BaseModel):
    prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    strength: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    model: Optional[str] = None
    mode: Optional[JobMode] = None
    # Advanced parameters (AUTOMATIC1111 style)
    cfg_scale: Optional[float] = None
    steps: Optional[int] = Field(default=None, ge=1)
    seed: Optional[int] = None
    sampler: Optional[str] = None
    # FLUX
    aspect_ratio: Optional[str] = None


class Job(BaseModel):
    id: str
    user_email: str
    mode: JobMode
    style: str
    original_asset_id: Optional[str] = None
    original_r2_key: str = TEXT_ONLY_SOURCE
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    strength: Optional[float] = None
    model: Optional[str] = None
    status: JobStatus = JobStatus.QUEUED
    output_r2_key: Optional[str] = None
    output_asset_id: Optional[str] = None
    error: Optional[str] = None
    created_at: int = 0
    updated_at: int = 0


class Asset(BaseModel):
    id: str
    user_email: str
    kind: AssetKind = AssetKind.ORIGINAL
    r2_key: Optional[str] = None   # unset until the upload lands
    mime: str
    width: Optional[int] = None
    height: Optional[int] = None
    bytes: Optional[int] = None
    checksum: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


# ---------- API bodies ----------

class CreateJobRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mode: Optional[JobMode] = None
    style: str = ""
    original_asset_id: Optional[str] = Field(default=None, alias="originalAssetId")
    options: Optional[GenerationOptions] = None


class PresignRequest(BaseModel):
    filename: str
    mime: str
    kind: AssetKind = AssetKind.ORIGINAL


class CommitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    asset_id: str = Field(alias="assetId")
    width: Optional[int] = None
    height: Optional[int] = None
    bytes: Optional[int] = None
    checksum: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
