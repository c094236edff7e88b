import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parents[1]

# Storage mode: local / gcp / azure
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")

# Local backend keeps objects and the JSON tables under one directory
LOCAL_DATA_DIR = Path(os.getenv("LOCAL_DATA_DIR", str(BASE_DIR / "data")))

GCS_BUCKET = os.getenv("GCS_BUCKET")
AZURE_CONN_STR = os.getenv("AZURE_STORAGE_CONNECTION_STRING")
AZURE_CONTAINER = os.getenv("AZURE_CONTAINER")

# Cloudflare Workers AI
CF_ACCOUNT_ID = os.getenv("CF_ACCOUNT_ID")
CF_API_TOKEN = os.getenv("CF_API_TOKEN") or os.getenv("CLOUDFLARE_API_TOKEN")
WORKERS_AI_BASE_URL = os.getenv("WORKERS_AI_BASE_URL", "https://api.cloudflare.com/client/v4")
WORKERS_AI_TIMEOUT = float(os.getenv("WORKERS_AI_TIMEOUT", "120"))

DEFAULT_IMAGE_MODEL = os.getenv("DEFAULT_IMAGE_MODEL", "@cf/runwayml/stable-diffusion-v1-5-img2img")
DEFAULT_TEXT_MODEL = os.getenv("DEFAULT_TEXT_MODEL", "@cf/black-forest-labs/flux-1-schnell")

# Identity used when no access header is present (dev only)
DEV_USER_EMAIL = os.getenv("DEV_USER_EMAIL", "dev@example.com")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_STRUCTURED = os.getenv("LOG_STRUCTURED", "true").lower() == "true"
