"""
MongoDB Connection Module
Shared database handle for the record store and the identity provider.

Collections:
    wardrobe_items   - catalog rows (RecordStore table)
    outfits          - saved outfits (RecordStore table)
    users            - accounts (identity provider)
    sessions         - hashed access tokens (identity provider)
    password_resets  - hashed one-time codes (identity provider)
"""
import logging

from wardrobe_service.config import get_settings

logger = logging.getLogger(__name__)

SERVER_SELECTION_TIMEOUT_MS = 3000

# (collection, keys, options)
INDEXES = [
    ("wardrobe_items", [("user_id", 1), ("created_at", -1)], {}),
    ("wardrobe_items", [("id", 1)], {"unique": True}),
    ("outfits", [("user_id", 1), ("scheduled_date", 1)], {}),
    ("outfits", [("id", 1)], {"unique": True}),
    ("users", [("email", 1)], {"unique": True}),
    ("sessions", [("token_hash", 1)], {"unique": True}),
    ("password_resets", [("email", 1)], {"unique": True}),
]

_client = None
_db = None


def connect() -> bool:
    """
    Open the shared client and select the configured database.

    Returns:
        True if the server answered a ping
    """
    global _client, _db

    settings = get_settings()

    try:
        from pymongo import MongoClient

        client = MongoClient(settings.mongo_uri, serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS)
        client.admin.command("ping")
    except Exception as e:
        logger.warning(f"MongoDB unreachable ({settings.mongo_db_name}): {e}")
        _client = None
        _db = None
        return False

    _client = client
    _db = client[settings.mongo_db_name]
    ensure_indexes()

    logger.info(f"MongoDB database ready: {settings.mongo_db_name}")
    return True


def ensure_indexes() -> None:
    """Create lookup and uniqueness indexes. Existing indexes are left alone."""
    if _db is None:
        return

    for collection, keys, options in INDEXES:
        try:
            _db[collection].create_index(keys, **options)
        except Exception as e:
            logger.warning(f"Index on {collection} {keys} not created: {e}")


def get_collection(name: str):
    """Collection handle, or None while the database is unreachable."""
    if _db is None and not connect():
        return None
    return _db[name]


def close() -> None:
    """Drop the shared client (lifespan shutdown)."""
    global _client, _db

    if _client is not None:
        _client.close()
        logger.info("MongoDB client closed")

    _client = None
    _db = None


def health_check() -> dict:
    """Ping the server without raising."""
    if _client is None and not connect():
        return {"status": "disconnected", "reason": "server not reachable"}

    try:
        _client.admin.command("ping")
    except Exception as e:
        return {"status": "disconnected", "reason": str(e)}

    return {"status": "connected", "database": get_settings().mongo_db_name}
