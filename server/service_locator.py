"""Service locator for process-wide server components."""

import threading
from typing import Optional

from server import config
from server.metadata_store import MetadataStore
from server.rate_limiter import SlidingWindowRateLimiter
from server.storage import ContentStorage

_metadata_store: Optional[MetadataStore] = None
_content_storage: Optional[ContentStorage] = None
_rate_limiter: Optional[SlidingWindowRateLimiter] = None
_init_lock = threading.Lock()


def set_metadata_store(store: MetadataStore):
    """Set global metadata store instance"""
    global _metadata_store
    _metadata_store = store


def get_metadata_store() -> MetadataStore:
    """Get global metadata store instance, creating it from config on first use"""
    global _metadata_store
    with _init_lock:
        if _metadata_store is None:
            _metadata_store = MetadataStore(config.DATABASE_PATH)
        return _metadata_store


def set_content_storage(storage: ContentStorage):
    """Set global content storage instance"""
    global _content_storage
    _content_storage = storage


def get_content_storage() -> ContentStorage:
    """Get global content storage instance, creating it from config on first use"""
    global _content_storage
    with _init_lock:
        if _content_storage is None:
            _content_storage = ContentStorage(config.UPLOAD_DIR)
        return _content_storage


def set_rate_limiter(limiter: SlidingWindowRateLimiter):
    """Set global upload rate limiter instance"""
    global _rate_limiter
    _rate_limiter = limiter


def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Get global upload rate limiter instance, creating it from config on first use"""
    global _rate_limiter
    with _init_lock:
        if _rate_limiter is None:
            _rate_limiter = SlidingWindowRateLimiter(
                limit=config.RATE_LIMIT_MAX,
                window_seconds=config.RATE_LIMIT_WINDOW
            )
        return _rate_limiter


def reset():
    """Drop all instances so the next get_* call rebuilds them from config"""
    global _metadata_store, _content_storage, _rate_limiter
    with _init_lock:
        _metadata_store = None
        _content_storage = None
        _rate_limiter = None
