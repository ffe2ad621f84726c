"""
Settings Module
Centralized configuration from environment variables.
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings from environment variables."""

    # Storage
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "wardrobe"
    storage_dir: str = "wardrobe_service/data/storage"
    storage_bucket: str = "wardrobe"
    signing_secret: Optional[str] = None
    signed_url_ttl: int = 3600

    # Auth
    bypass_auth: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            # Storage
            mongo_uri=os.getenv("MONGO_URI", "mongodb://localhost:27017"),
            mongo_db_name=os.getenv("MONGO_DB_NAME", "wardrobe"),
            storage_dir=os.getenv("WARDROBE_STORAGE_DIR", "wardrobe_service/data/storage"),
            storage_bucket=os.getenv("WARDROBE_STORAGE_BUCKET", "wardrobe"),
            signing_secret=os.getenv("WARDROBE_SIGNING_SECRET"),
            signed_url_ttl=int(os.getenv("WARDROBE_SIGNED_URL_TTL", "3600")),

            # Auth
            bypass_auth=os.getenv("WARDROBE_BYPASS_AUTH", "false").lower() == "true",
        )

    def to_dict(self) -> dict:
        """Export settings as dict (without the signing secret).

        LLM credentials are not settings; the adapter reads them from the
        environment on each call (see ActiveLLMConfig.api_key_env).
        """
        return {
            "mongo_db_name": self.mongo_db_name,
            "storage_bucket": self.storage_bucket,
            "signed_url_ttl": self.signed_url_ttl,
            "bypass_auth": self.bypass_auth,
        }


def get_settings() -> Settings:
    """Get application settings (cached singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
        logger.info(f"Settings loaded: {_settings.to_dict()}")
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings.from_env()
    logger.info(f"Settings reloaded: {_settings.to_dict()}")
    return _settings


# Singleton instance
_settings: Optional[Settings] = None
