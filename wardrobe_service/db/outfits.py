"""
Outfits Module
Saved outfits (manual or AI-generated) and their calendar schedule.
"""
import uuid
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from wardrobe_service.core.errors import InvalidInput
from wardrobe_service.db import wardrobe
from wardrobe_service.db.records import RecordStore, NOT_NULL

logger = logging.getLogger(__name__)

TABLE = "outfits"
MAX_NAME_LENGTH = 100
MAX_OCCASION_LENGTH = 50


def _validate_schedule_date(value: Optional[str]) -> Optional[str]:
    """Normalize a YYYY-MM-DD date, or None."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date().isoformat()
    except (TypeError, ValueError):
        raise InvalidInput("scheduled_date must be a date in YYYY-MM-DD format")


def _validate_item_ids(store: RecordStore, user_id: str, item_ids: Any) -> List[str]:
    """Outfit items must be a non-empty list of the user's own item ids."""
    if not isinstance(item_ids, (list, tuple)) or not item_ids:
        raise InvalidInput("An outfit needs at least one item")

    owned = {item["id"] for item in wardrobe.list_wardrobe_items(store, user_id)}
    ids = [str(item_id) for item_id in item_ids]
    unknown = [item_id for item_id in ids if item_id not in owned]

    if unknown:
        raise InvalidInput(f"Unknown wardrobe items: {', '.join(unknown)}")
    return ids


# ==================== SAVED OUTFITS ====================

def save_outfit(
    store: RecordStore,
    user_id: str,
    name: str,
    occasion: str,
    item_ids: Sequence[str],
    is_ai_generated: bool = False,
    reasoning: Optional[str] = None,
    styling_tips: Optional[str] = None,
    scheduled_date: Optional[str] = None
) -> Dict[str, Any]:
    """
    Persist an outfit.

    Args:
        store: Record store
        user_id: Owner user ID
        name: Display name
        occasion: Occasion label
        item_ids: Wardrobe item ids (must belong to the user)
        is_ai_generated: Whether the outfit came from a suggestion
        reasoning / styling_tips: Suggestion text, if any
        scheduled_date: Optional calendar date (YYYY-MM-DD)

    Returns:
        Created outfit record
    """
    name = (name or "").strip()
    occasion = (occasion or "").strip()

    if not name or len(name) > MAX_NAME_LENGTH:
        raise InvalidInput(f"Outfit name is required (max {MAX_NAME_LENGTH} characters)")
    if not occasion or len(occasion) > MAX_OCCASION_LENGTH:
        raise InvalidInput(f"Valid occasion is required (max {MAX_OCCASION_LENGTH} characters)")

    outfit = {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "name": name,
        "occasion": occasion,
        "item_ids": _validate_item_ids(store, user_id, item_ids),
        "is_ai_generated": bool(is_ai_generated),
        "reasoning": reasoning,
        "styling_tips": styling_tips,
        "scheduled_date": _validate_schedule_date(scheduled_date),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }

    created = store.insert(TABLE, outfit)
    logger.info(f"Outfit saved: {outfit['id']} (ai={outfit['is_ai_generated']})")
    return created


def save_generated_outfit(
    store: RecordStore,
    user_id: str,
    suggestion: Dict[str, Any],
    occasion: str,
    name: Optional[str] = None,
    scheduled_date: Optional[str] = None
) -> Dict[str, Any]:
    """Persist an accepted outfit suggestion."""
    reasoning = suggestion.get("reasoning")
    styling_tips = suggestion.get("styling_tips")

    return save_outfit(
        store,
        user_id,
        name=name or f"{occasion.strip()} outfit",
        occasion=occasion,
        item_ids=suggestion.get("outfit"),
        is_ai_generated=True,
        reasoning=str(reasoning) if reasoning is not None else None,
        styling_tips=str(styling_tips) if styling_tips is not None else None,
        scheduled_date=scheduled_date,
    )


def list_outfits(store: RecordStore, user_id: str) -> List[Dict[str, Any]]:
    """Get user's outfits, newest first."""
    return store.select(TABLE, {"user_id": user_id}, order_by="created_at", ascending=False)


# ==================== CALENDAR ====================

def schedule_outfit(
    store: RecordStore,
    user_id: str,
    outfit_id: str,
    scheduled_date: Optional[str]
) -> bool:
    """
    Set or clear an outfit's calendar date.

    Returns:
        True if the outfit exists for this user
    """
    if store.select_one(TABLE, {"id": outfit_id, "user_id": user_id}) is None:
        return False

    store.update(
        TABLE,
        {"id": outfit_id, "user_id": user_id},
        {"scheduled_date": _validate_schedule_date(scheduled_date)}
    )
    return True


def list_scheduled_outfits(store: RecordStore, user_id: str) -> List[Dict[str, Any]]:
    """Outfits with a calendar date, earliest first."""
    return store.select(
        TABLE,
        {"user_id": user_id, "scheduled_date": NOT_NULL},
        order_by="scheduled_date",
        ascending=True
    )


def outfits_for_date(outfits: List[Dict[str, Any]], day: date) -> List[Dict[str, Any]]:
    """Filter scheduled outfits down to one calendar day."""
    target = day.isoformat()
    return [outfit for outfit in outfits if outfit.get("scheduled_date") == target]
