"""
Object Storage
Private object storage for wardrobe photos, served only through signed URLs.

STORAGE STRUCTURE:
------------------
storage_dir/
└── {bucket}/
    └── {user_id}/
        └── {epoch_ms}.{ext}     <- private; never exposed without a signature

SIGNED URL FORMAT:
------------------
  /ai/storage/{user_id}/{file}?expires={unix_ts}&signature={hmac_sha256}

The signature covers the object key and expiry, so a URL cannot be
re-pointed at another object or extended.
"""
import hmac
import time
import hashlib
import logging
import secrets
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from wardrobe_service.config import get_settings
from wardrobe_service.core.errors import InvalidInput, NotFound
from wardrobe_service.core.validation import sanitize_asset_path

logger = logging.getLogger(__name__)

DEFAULT_SIGNED_URL_TTL = 3600
SIGNED_URL_PREFIX = "/ai/storage"


def build_item_path(user_id: str, extension: str) -> str:
    """Storage key for a new item photo, scoped to its owner."""
    return f"{user_id}/{int(time.time() * 1000)}.{extension}"


class ObjectStore(ABC):
    """Abstract private object store."""

    @abstractmethod
    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Store content under path. Returns the path; never a public URL."""

    @abstractmethod
    def remove(self, paths: List[str]) -> int:
        """Remove objects. Missing objects are skipped. Returns the count removed."""

    @abstractmethod
    def read(self, path: str) -> bytes:
        """Object content. Raises NotFound when absent."""

    @abstractmethod
    def create_signed_url(self, path: str, expires_in: int = DEFAULT_SIGNED_URL_TTL) -> Optional[str]:
        """Temporary fetchable URL for path, or None on failure."""


class LocalObjectStore(ObjectStore):
    """ObjectStore on the local filesystem with HMAC-signed URLs."""

    def __init__(self, base_dir: str = None, bucket: str = None, signing_secret: str = None):
        settings = get_settings()
        self.bucket = bucket or settings.storage_bucket
        self.bucket_dir = Path(base_dir or settings.storage_dir) / self.bucket

        secret = signing_secret or settings.signing_secret
        if not secret:
            logger.warning("WARDROBE_SIGNING_SECRET not set - signed URLs will not survive a restart")
            secret = secrets.token_hex(32)
        self._secret = secret.encode("utf-8")

    def ensure_directories(self):
        """Create the bucket directory."""
        self.bucket_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Storage bucket initialized: {self.bucket_dir}")

    def path_for(self, path: str) -> Path:
        """Filesystem location of an object key (traversal-safe)."""
        return sanitize_asset_path(path, self.bucket_dir)

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        target = self.path_for(path)
        if target.exists():
            raise InvalidInput(f"Object already exists: {path}", status_code=409)

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as f:
            f.write(content)

        logger.info(f"Stored object {path} ({content_type}, {len(content)} bytes)")
        return path

    def remove(self, paths: List[str]) -> int:
        removed = 0
        for path in paths:
            target = self.path_for(path)
            if target.is_file():
                target.unlink()
                removed += 1
        logger.info(f"Removed {removed} object(s)")
        return removed

    def read(self, path: str) -> bytes:
        target = self.path_for(path)
        if not target.is_file():
            raise NotFound(f"Object not found: {path}")
        return target.read_bytes()

    # ==================== SIGNED URLS ====================

    def _sign(self, path: str, expires: int) -> str:
        message = f"{self.bucket}/{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def create_signed_url(self, path: str, expires_in: int = DEFAULT_SIGNED_URL_TTL) -> Optional[str]:
        try:
            if not self.path_for(path).is_file():
                logger.error(f"Error creating signed URL: object not found: {path}")
                return None

            expires = int(time.time()) + int(expires_in)
            signature = self._sign(path, expires)
            return f"{SIGNED_URL_PREFIX}/{quote(path)}?expires={expires}&signature={signature}"

        except Exception as e:
            logger.error(f"Unexpected error creating signed URL: {e}")
            return None

    def verify_signature(self, path: str, expires: int, signature: str) -> bool:
        """Check a signed URL's signature and expiry."""
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self._sign(path, expires), signature or "")


# ==================== SINGLETON INSTANCE ====================

_object_store: Optional[LocalObjectStore] = None


def get_object_store() -> LocalObjectStore:
    """Get the shared object store (FastAPI dependency)."""
    global _object_store
    if _object_store is None:
        _object_store = LocalObjectStore()
    return _object_store
