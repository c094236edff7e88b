from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from common import records
from common.errors import (
    IncompleteAssetError,
    NotFoundError,
    UnsupportedFormatError,
    ValidationError,
)
from common.job_schema import Asset, GenerationOptions, JobMode

DEFAULT_STRENGTH = 0.6

STYLE_PROMPTS = {
    "modern": "modern interior design, clean lines, minimalist, contemporary furniture, bright lighting",
    "vintage": "vintage interior design, retro furniture, warm colors, classic elements, nostalgic atmosphere",
    "industrial": "industrial interior design, exposed brick, metal fixtures, raw materials, urban loft style",
    "scandinavian": "scandinavian interior design, light wood, white walls, cozy textiles, hygge atmosphere",
    "luxury": "luxury interior design, high-end furniture, elegant decor, premium materials, sophisticated lighting",
    "japandi": "japandi interior design, warm wood, linen, neutral palette, low profile furniture, zen, soft ambient light",
}
FALLBACK_STYLE = "modern"

TEXT_NEGATIVE_PROMPT = "blurry, low quality, distorted, ugly, bad anatomy"
IMAGE_NEGATIVE_PROMPT = "clutter, artifacts, distorted geometry, poor lighting, low quality"

SUPPORTED_MIMES = ("image/jpeg", "image/jpg", "image/png", "image/webp")


@dataclass
class GenerationRequest:
    """Canonical input of the dispatcher. Not persisted."""

    mode: JobMode
    prompt: str
    negative_prompt: str
    strength: float = DEFAULT_STRENGTH
    model: Optional[str] = None
    source_asset: Optional[Asset] = None
    source_bytes: Optional[bytes] = None
    params: Dict[str, object] = field(default_factory=dict)
    steps: Optional[int] = None
    aspect_ratio: Optional[str] = None

    @property
    def source_key(self) -> Optional[str]:
        return self.source_asset.r2_key if self.source_asset else None


def resolve_mode(
    mode: Optional[JobMode],
    options: Optional[GenerationOptions],
    original_asset_id: Optional[str],
) -> JobMode:
    if mode is not None:
        return mode
    if options is not None and options.mode is not None:
        return options.mode
    return JobMode.IMAGE_TO_IMAGE if original_asset_id else JobMode.TEXT_TO_IMAGE


def style_prompt(style: str) -> str:
    return STYLE_PROMPTS.get((style or "").strip().lower(), STYLE_PROMPTS[FALLBACK_STYLE])


def normalize_request(
    mode: JobMode,
    style: str,
    options: Optional[GenerationOptions] = None,
    original_asset_id: Optional[str] = None,
    lookup_asset: Callable[[str], Optional[Asset]] = records.get_asset,
) -> GenerationRequest:
    """Map a job description onto a GenerationRequest.

    Raises ValidationError, NotFoundError, IncompleteAssetError or
    UnsupportedFormatError; never touches job state.
    """
    options = options or GenerationOptions()
    strength = options.strength if options.strength is not None else DEFAULT_STRENGTH
    params = {
        "cfg_scale": options.cfg_scale,
        "steps": options.steps,
        "seed": options.seed,
        "sampler": options.sampler,
    }
    params = {k: v for k, v in params.items() if v is not None}

    if mode == JobMode.TEXT_TO_IMAGE:
        prompt = (style or "").strip()
        if not prompt:
            raise ValidationError("A prompt is required for text-to-image jobs")
        return GenerationRequest(
            mode=mode,
            prompt=prompt,
            negative_prompt=options.negative_prompt or TEXT_NEGATIVE_PROMPT,
            strength=strength,
            model=options.model,
            params=params,
            steps=options.steps,
            aspect_ratio=options.aspect_ratio,
        )

    if not original_asset_id:
        raise ValidationError("originalAssetId is required for image-to-image jobs")

    asset = lookup_asset(original_asset_id)
    if asset is None:
        raise NotFoundError(f"Asset not found: {original_asset_id}")
    if not asset.r2_key:
        raise IncompleteAssetError(f"Asset upload not finished: {original_asset_id}")
    if asset.mime not in SUPPORTED_MIMES:
        raise UnsupportedFormatError(
            f"Unsupported image format: {asset.mime}. Supported formats: {', '.join(SUPPORTED_MIMES)}"
        )

    return GenerationRequest(
        mode=mode,
        prompt=options.prompt or style_prompt(style),
        negative_prompt=options.negative_prompt or IMAGE_NEGATIVE_PROMPT,
        strength=strength,
        model=options.model,
        source_asset=asset,
        params=params,
        steps=options.steps,
        aspect_ratio=options.aspect_ratio,
    )
