from pathlib import Path
from typing import Optional

# STORAGE_BACKEND determines which logic branch (local/gcp/azure) runs.
from common.config import (
    AZURE_CONN_STR,
    AZURE_CONTAINER,
    GCS_BUCKET,
    LOCAL_DATA_DIR,
    STORAGE_BACKEND,
)
from common.errors import StorageError

# ------------------------------------------------------------------------------
# CONDITIONAL IMPORTS
# Only the SDK of the configured backend has to be installed.
# ------------------------------------------------------------------------------

try:
    from google.cloud import storage as gcs
except ImportError:
    gcs = None

try:
    from azure.storage.blob import BlobServiceClient
except ImportError:
    BlobServiceClient = None

DEFAULT_CONTENT_TYPE = "application/octet-stream"


# ------------------------------------------------------------------------------
# LOCAL FILESYSTEM
# ------------------------------------------------------------------------------

def _local_path(key: str) -> Path:
    root = Path(LOCAL_DATA_DIR).resolve()
    path = (root / key).resolve()
    if root not in path.parents:
        raise StorageError(f"Invalid storage key: {key}")
    return path


# ------------------------------------------------------------------------------
# GOOGLE CLOUD STORAGE
# ------------------------------------------------------------------------------

def _get_gcs_bucket():
    if not gcs:
        raise RuntimeError("google-cloud-storage library is not installed.")
    if not GCS_BUCKET:
        raise ValueError("GCS_BUCKET env var is required for GCP backend")
    return gcs.Client().bucket(GCS_BUCKET)


# ------------------------------------------------------------------------------
# AZURE BLOB STORAGE
# ------------------------------------------------------------------------------

def _get_azure_container():
    if not BlobServiceClient:
        raise RuntimeError("azure-storage-blob library is not installed.")
    if not AZURE_CONN_STR:
        raise ValueError("AZURE_STORAGE_CONNECTION_STRING env var is missing.")
    if not AZURE_CONTAINER:
        raise ValueError("AZURE_CONTAINER env var is required for Azure backend")
    client = BlobServiceClient.from_connection_string(AZURE_CONN_STR)
    container_client = client.get_container_client(AZURE_CONTAINER)
    if not container_client.exists():
        container_client.create_container()
    return container_client


# ------------------------------------------------------------------------------
# PUBLIC API
# The records layer, the pipeline and the API call THESE.
# ------------------------------------------------------------------------------

def put_object(key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
    """Write `data` under `key`, overwriting any previous object. Returns the key."""
    if STORAGE_BACKEND == "local":
        path = _local_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return key

    elif STORAGE_BACKEND == "gcp":
        blob = _get_gcs_bucket().blob(key)
        blob.upload_from_string(data, content_type=content_type)
        return key

    elif STORAGE_BACKEND == "azure":
        from azure.storage.blob import ContentSettings

        blob_client = _get_azure_container().get_blob_client(key)
        blob_client.upload_blob(
            data,
            overwrite=True,
            content_settings=ContentSettings(content_type=content_type),
        )
        return key

    else:
        raise RuntimeError(f"Unsupported STORAGE_BACKEND: {STORAGE_BACKEND}")


def get_object(key: str) -> Optional[bytes]:
    """Read the object at `key`; None when it does not exist."""
    if STORAGE_BACKEND == "local":
        path = _local_path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    elif STORAGE_BACKEND == "gcp":
        blob = _get_gcs_bucket().blob(key)
        if not blob.exists():
            return None
        return blob.download_as_bytes()

    elif STORAGE_BACKEND == "azure":
        blob_client = _get_azure_container().get_blob_client(key)
        if not blob_client.exists():
            return None
        return blob_client.download_blob().readall()

    else:
        raise RuntimeError(f"Unsupported STORAGE_BACKEND: {STORAGE_BACKEND}")


def delete_object(key: str) -> None:
    """Remove the object at `key`; missing objects are ignored."""
    if STORAGE_BACKEND == "local":
        _local_path(key).unlink(missing_ok=True)

    elif STORAGE_BACKEND == "gcp":
        blob = _get_gcs_bucket().blob(key)
        if blob.exists():
            blob.delete()

    elif STORAGE_BACKEND == "azure":
        blob_client = _get_azure_container().get_blob_client(key)
        if blob_client.exists():
            blob_client.delete_blob()

    else:
        raise RuntimeError(f"Unsupported STORAGE_BACKEND: {STORAGE_BACKEND}")
