"""
Wardrobe System Module
User wardrobe item management over the record store and object store.
"""
import uuid
import logging
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone

from wardrobe_service.core.storage import ObjectStore, build_item_path, DEFAULT_SIGNED_URL_TTL
from wardrobe_service.core.validation import validate_item_metadata, validate_image_upload, file_extension
from wardrobe_service.db.records import RecordStore

logger = logging.getLogger(__name__)

TABLE = "wardrobe_items"
ALL_DRESS_CODES = "All"
SUMMARY_FIELDS = ("id", "name", "category", "dress_code", "color")


# ==================== WARDROBE ITEM MODEL ====================

def create_wardrobe_item(
    store: RecordStore,
    object_store: ObjectStore,
    user_id: str,
    fields: Dict[str, Any],
    image_content: bytes,
    content_type: Optional[str],
    filename: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create a new wardrobe item.

    Metadata and image are validated before storage is contacted. The photo
    is uploaded to a private key under the owner's prefix; the record keeps
    that key, never a public URL.

    Args:
        store: Record store
        object_store: Private photo storage
        user_id: Owner's user ID
        fields: name, category, dress_code, color, season, notes
        image_content: Raw photo bytes
        content_type: Photo MIME type
        filename: Original filename (extension hint)

    Returns:
        Created item record
    """
    metadata = validate_item_metadata(fields)
    mime = validate_image_upload(image_content, content_type)

    image_path = build_item_path(user_id, file_extension(mime, filename))
    object_store.upload(image_path, image_content, mime)

    item = {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        **metadata,
        "image_path": image_path,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }

    try:
        created = store.insert(TABLE, item)
    except Exception:
        object_store.remove([image_path])
        raise

    logger.info(f"Wardrobe item created: {item['id']} ({item['category']})")
    return created


def list_wardrobe_items(
    store: RecordStore,
    user_id: str,
    dress_code: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Get user's wardrobe items, newest first.

    Args:
        dress_code: Only items with this dress code ("All" or None for every item)
    """
    filters = {"user_id": user_id}
    if dress_code and dress_code != ALL_DRESS_CODES:
        filters["dress_code"] = dress_code

    return store.select(TABLE, filters, order_by="created_at", ascending=False)


def get_wardrobe_item(store: RecordStore, user_id: str, item_id: str) -> Optional[Dict[str, Any]]:
    """Get a specific wardrobe item owned by user_id."""
    return store.select_one(TABLE, {"id": item_id, "user_id": user_id})


def delete_wardrobe_item(
    store: RecordStore,
    object_store: ObjectStore,
    user_id: str,
    item_id: str
) -> bool:
    """
    Delete a wardrobe item and its stored photo.

    Returns:
        True if deleted, False if the user has no such item
    """
    item = get_wardrobe_item(store, user_id, item_id)
    if item is None:
        return False

    if item.get("image_path"):
        object_store.remove([item["image_path"]])

    store.delete(TABLE, {"id": item_id, "user_id": user_id})
    logger.info(f"Wardrobe item deleted: {item_id}")
    return True


def dress_code_tabs(items: List[Dict[str, Any]]) -> List[str]:
    """Filter tabs: "All" followed by each dress code present, in first-seen order."""
    tabs = [ALL_DRESS_CODES]
    for item in items:
        code = item.get("dress_code")
        if code and code not in tabs:
            tabs.append(code)
    return tabs


def item_summary(item: Dict[str, Any]) -> Dict[str, Any]:
    """The fields sent to the outfit suggestion endpoint."""
    return {name: item.get(name) for name in SUMMARY_FIELDS}


def signed_image_url(
    object_store: ObjectStore,
    item: Dict[str, Any],
    expires_in: int = DEFAULT_SIGNED_URL_TTL
) -> Optional[str]:
    """Temporary URL for an item's photo, or None."""
    path = item.get("image_path")
    if not path:
        return None
    return object_store.create_signed_url(path, expires_in)
