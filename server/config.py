"""Configuration settings for the ShortDrop server."""

import os
from common.constants import MAX_UPLOAD_BYTES, RATE_LIMIT_MAX_ATTEMPTS, RATE_LIMIT_WINDOW_SECONDS


SERVER_HOST = os.environ.get("SHORTDROP_HOST", "0.0.0.0")

SERVER_PORT = int(os.environ.get("SHORTDROP_PORT", os.environ.get("PORT", "3000")))

UPLOAD_DIR = os.environ.get("SHORTDROP_UPLOAD_DIR", "uploads")

DATABASE_PATH = os.environ.get("SHORTDROP_DATABASE_PATH", "database.json")

# Empty means "derive from the incoming request".
PUBLIC_BASE_URL = os.environ.get("SHORTDROP_PUBLIC_BASE_URL", "").rstrip("/")

MAX_UPLOAD_SIZE = int(os.environ.get("SHORTDROP_MAX_UPLOAD_BYTES", str(MAX_UPLOAD_BYTES)))

RATE_LIMIT_MAX = int(os.environ.get("SHORTDROP_RATE_LIMIT_MAX", str(RATE_LIMIT_MAX_ATTEMPTS)))

RATE_LIMIT_WINDOW = int(os.environ.get("SHORTDROP_RATE_LIMIT_WINDOW_SECONDS", str(RATE_LIMIT_WINDOW_SECONDS)))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("SHORTDROP_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
