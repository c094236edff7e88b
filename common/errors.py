import httpx


class StagingError(Exception):
    """Base for every classified failure surfaced to callers."""

    status_code = 500
    category = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.category, "message": self.message}


class ValidationError(StagingError):
    status_code = 400
    category = "validation_error"


class NotFoundError(StagingError):
    status_code = 404
    category = "not_found"


class SourceMissingError(StagingError):
    status_code = 404
    category = "source_missing"


class IncompleteAssetError(StagingError):
    status_code = 400
    category = "incomplete_asset"


class UnsupportedFormatError(StagingError):
    status_code = 400
    category = "unsupported_format"


class QuotaExceededError(StagingError):
    status_code = 429
    category = "quota_exceeded"


class GenerationTimeoutError(StagingError):
    category = "timeout"


class EmptyGenerationError(StagingError):
    category = "empty_generation"


class UnknownResponsePayloadError(StagingError):
    category = "unknown_response_payload"


class GenerationError(StagingError):
    category = "generation_error"


class StorageError(StagingError):
    category = "storage_error"


def classify_backend_error(exc: Exception) -> StagingError:
    """Map an inference backend exception onto the error taxonomy.

    Already-classified errors pass through untouched.
    """
    if isinstance(exc, StagingError):
        return exc

    raw = str(exc) or exc.__class__.__name__
    text = raw.lower()

    if "5012" in text or "bytes_type" in text or "unsupported" in text:
        return UnsupportedFormatError(
            f"Image format not supported by AI model. Please use PNG or JPEG format. ({raw})"
        )
    if "not found" in text:
        return SourceMissingError(f"Image file not found in storage. Please re-upload the image. ({raw})")
    if getattr(exc, "status_code", None) == 429 or "quota" in text or "limit" in text:
        return QuotaExceededError(f"AI processing quota exceeded. Please try again later. ({raw})")
    if isinstance(exc, httpx.TimeoutException) or "timeout" in text or "timed out" in text:
        return GenerationTimeoutError(f"AI processing timed out. ({raw})")
    return GenerationError(f"AI processing failed: {raw}")
