import hashlib
import io

from PIL import Image, UnidentifiedImageError

from common import records, storage
from common.errors import IncompleteAssetError, NotFoundError, UnsupportedFormatError
from common.job_schema import Asset, CommitRequest


def measure_image(data: bytes) -> tuple:
    """(width, height) of an encoded image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except UnidentifiedImageError as e:
        raise UnsupportedFormatError(f"Uploaded file is not a readable image: {e}") from e


def commit_asset_metadata(body: CommitRequest) -> Asset:
    """Fill in dimensions, size, checksum and meta once the upload has landed.

    Values sent by the client win; anything missing is measured from the
    stored bytes.
    """
    asset = records.get_asset(body.asset_id)
    if asset is None:
        raise NotFoundError(f"Asset not found: {body.asset_id}")
    if not asset.r2_key:
        raise IncompleteAssetError(f"Asset upload not finished: {body.asset_id}")

    width, height = body.width, body.height
    size, checksum = body.bytes, body.checksum

    if width is None or height is None or size is None or checksum is None:
        data = storage.get_object(asset.r2_key)
        if data is None:
            raise IncompleteAssetError(f"Asset bytes missing from storage: {body.asset_id}")
        if width is None or height is None:
            width, height = measure_image(data)
        size = size if size is not None else len(data)
        checksum = checksum or hashlib.sha256(data).hexdigest()

    asset.width = width
    asset.height = height
    asset.bytes = size
    asset.checksum = checksum
    if body.meta:
        asset.meta.update(body.meta)
    return records.update_asset(asset)
