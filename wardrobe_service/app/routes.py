"""
API Routes for the Wardrobe AI Service
Outfit suggestion endpoint plus the authenticated catalog routes.
"""
import logging
import mimetypes
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, UploadFile, File, Form, HTTPException, Depends, Request, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from wardrobe_service.config import get_settings, get_llm_config
from wardrobe_service.core import suggestion as suggestion_service
from wardrobe_service.core.auth import (
    User,
    IdentityProvider,
    get_current_user,
    get_identity_provider,
    bearer_token,
)
from wardrobe_service.core.errors import ServiceError
from wardrobe_service.core.storage import LocalObjectStore, get_object_store
from wardrobe_service.core.validation import MAX_FILE_SIZE_BYTES
from wardrobe_service.db import mongo
from wardrobe_service.db import outfits as outfit_store
from wardrobe_service.db import wardrobe
from wardrobe_service.db.records import RecordStore, get_record_store
from wardrobe_service.llm.llm_adapter import LLMClient, get_llm_client
from wardrobe_service.observability import get_metrics, is_logging_enabled

logger = logging.getLogger(__name__)

router = APIRouter()

VERSION = "1.0.0"
SUGGESTION_PATH = "/ai/generate-outfit"

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
}


def _cors_json(content: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


def _http_error(error: ServiceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


# ==================== PUBLIC ENDPOINTS ====================

@router.get("/health")
async def health_check():
    """Health check with observability info."""
    metrics = get_metrics()

    return {
        "status": "ok",
        "version": VERSION,
        "llm": get_llm_config().to_dict(),
        "mongo": mongo.health_check(),
        "settings": get_settings().to_dict(),
        "observability": {
            "logging_enabled": is_logging_enabled(),
            "total_requests": metrics["total_requests"],
            "fallback_ratio": metrics["fallback_ratio"],
        },
    }


@router.get("/metrics")
async def get_metrics_endpoint():
    """Get detailed metrics for monitoring."""
    return JSONResponse(content=get_metrics())


# ==================== OUTFIT SUGGESTION ====================

@router.options(SUGGESTION_PATH)
async def generate_outfit_preflight():
    """CORS preflight."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(SUGGESTION_PATH)
async def generate_outfit(
    request: Request,
    client: LLMClient = Depends(get_llm_client)
):
    """
    POST /ai/generate-outfit

    Body:
        {"items": [{"id", "name", "category", "dress_code", "color"}, ...], "occasion": "Formal"}

    Responses:
        200 {"outfit": [...], "reasoning": "...", "styling_tips": "..."}
        400 {"error": "..."} - invalid request
        500 {"error": "..."} - configuration or upstream failure
    """
    try:
        body = await request.json()
    except ValueError:
        return _cors_json({"error": "Request body must be valid JSON"}, status_code=400)

    if not isinstance(body, dict):
        body = {}

    try:
        result = await suggestion_service.generate(body.get("items"), body.get("occasion"), client=client)
    except ServiceError as e:
        if e.status_code >= 500:
            logger.error(f"Outfit suggestion failed: {e.message}")
        return _cors_json({"error": e.message}, status_code=e.status_code)
    except Exception as e:
        logger.error(f"Outfit suggestion failed: {e}")
        return _cors_json({"error": str(e)}, status_code=500)

    return _cors_json(result.to_dict())


# ==================== AUTH ====================

@router.post("/ai/auth/signup")
async def sign_up(
    email: str = Form(...),
    password: str = Form(...),
    full_name: str = Form(...),
    provider: IdentityProvider = Depends(get_identity_provider)
):
    """Create an account."""
    try:
        user = provider.sign_up(email, password, full_name)
    except ServiceError as e:
        raise _http_error(e)
    return JSONResponse(content=user.to_dict(), status_code=201)


@router.post("/ai/auth/signin")
async def sign_in(
    email: str = Form(...),
    password: str = Form(...),
    provider: IdentityProvider = Depends(get_identity_provider)
):
    """Exchange email and password for an access token."""
    try:
        session = provider.sign_in(email, password)
    except ServiceError as e:
        raise _http_error(e)
    return JSONResponse(content=session.to_dict())


@router.post("/ai/auth/signout")
async def sign_out(
    request: Request,
    user: User = Depends(get_current_user),
    provider: IdentityProvider = Depends(get_identity_provider)
):
    """Invalidate the current access token."""
    token = bearer_token(request.headers.get("authorization"))
    if token:
        provider.sign_out(token)
    return JSONResponse(content={"message": "Signed out"})


@router.post("/ai/auth/reset-password")
async def reset_password(
    email: str = Form(...),
    provider: IdentityProvider = Depends(get_identity_provider)
):
    """Send a password reset code. Always succeeds to avoid leaking accounts."""
    try:
        provider.reset_password_for_email(email)
    except ServiceError as e:
        raise _http_error(e)
    return JSONResponse(content={"message": "If that account exists, a reset code has been sent"})


@router.post("/ai/auth/verify-otp")
async def verify_otp(
    email: str = Form(...),
    token: str = Form(...),
    provider: IdentityProvider = Depends(get_identity_provider)
):
    """Exchange a reset code for a recovery session."""
    try:
        session = provider.verify_otp(email, token)
    except ServiceError as e:
        raise _http_error(e)
    return JSONResponse(content=session.to_dict())


@router.post("/ai/auth/update-password")
async def update_password(
    request: Request,
    password: str = Form(...),
    user: User = Depends(get_current_user),
    provider: IdentityProvider = Depends(get_identity_provider)
):
    """Set a new password for the signed-in user."""
    token = bearer_token(request.headers.get("authorization"))
    if not token:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    try:
        updated = provider.update_password(token, password)
    except ServiceError as e:
        raise _http_error(e)
    return JSONResponse(content=updated.to_dict())


# ==================== WARDROBE ====================

def _with_image_url(item: dict, object_store: LocalObjectStore) -> dict:
    return {**item, "image_url": wardrobe.signed_image_url(object_store, item, get_settings().signed_url_ttl)}


@router.post("/ai/wardrobe/items")
async def upload_wardrobe_item(
    image: UploadFile = File(..., description="Clothing item photo"),
    name: str = Form(...),
    category: str = Form(..., description="Top, Bottom, Dress, Outerwear, Shoes, Accessories"),
    dress_code: str = Form(..., description="Casual, Formal, Business, Party, Athletic, Streetwear"),
    color: Optional[str] = Form(None),
    season: Optional[str] = Form(None, description="Spring, Summer, Fall, Winter, All Season"),
    notes: Optional[str] = Form(None),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store),
    object_store: LocalObjectStore = Depends(get_object_store)
):
    """
    Upload a clothing item to user's wardrobe.

    Flow:
    1. Validate metadata and image (type, size, decodable)
    2. Store photo privately under the user's prefix
    3. Save item record
    """
    # One byte past the limit is enough for the size check to reject
    content = await image.read(MAX_FILE_SIZE_BYTES + 1)

    try:
        item = wardrobe.create_wardrobe_item(
            store,
            object_store,
            user.user_id,
            {
                "name": name,
                "category": category,
                "dress_code": dress_code,
                "color": color,
                "season": season,
                "notes": notes,
            },
            content,
            image.content_type,
            filename=image.filename
        )
    except ServiceError as e:
        raise _http_error(e)

    return JSONResponse(content=_with_image_url(item, object_store), status_code=201)


@router.get("/ai/wardrobe/items")
async def get_wardrobe_items(
    dress_code: Optional[str] = Query(None, description="Dress code tab, or All"),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store),
    object_store: LocalObjectStore = Depends(get_object_store)
):
    """List wardrobe items (newest first) with signed image URLs and dress code tabs."""
    try:
        all_items = wardrobe.list_wardrobe_items(store, user.user_id)
        items = wardrobe.list_wardrobe_items(store, user.user_id, dress_code) if dress_code else all_items
    except ServiceError as e:
        raise _http_error(e)

    return JSONResponse(content={
        "items": [_with_image_url(item, object_store) for item in items],
        "dress_codes": wardrobe.dress_code_tabs(all_items),
        "count": len(items),
    })


@router.delete("/ai/wardrobe/items/{item_id}")
async def delete_item(
    item_id: str,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store),
    object_store: LocalObjectStore = Depends(get_object_store)
):
    """Delete an item and its photo."""
    try:
        deleted = wardrobe.delete_wardrobe_item(store, object_store, user.user_id, item_id)
    except ServiceError as e:
        raise _http_error(e)

    if not deleted:
        raise HTTPException(status_code=404, detail="Item not found")

    return JSONResponse(content={"message": "Item deleted successfully"})


@router.get("/ai/wardrobe/items/{item_id}/image-url")
async def get_item_image_url(
    item_id: str,
    expires_in: int = Query(3600, ge=1, le=7 * 24 * 3600),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store),
    object_store: LocalObjectStore = Depends(get_object_store)
):
    """Issue a time-limited URL for an item's photo."""
    try:
        item = wardrobe.get_wardrobe_item(store, user.user_id, item_id)
    except ServiceError as e:
        raise _http_error(e)

    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")

    signed_url = wardrobe.signed_image_url(object_store, item, expires_in)
    if signed_url is None:
        raise HTTPException(status_code=500, detail="Could not create signed URL")

    return JSONResponse(content={"signed_url": signed_url, "expires_in": expires_in})


@router.get("/ai/storage/{path:path}")
async def serve_object(
    path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    object_store: LocalObjectStore = Depends(get_object_store)
):
    """Serve a stored photo through a signed URL."""
    try:
        if not object_store.verify_signature(path, expires, signature):
            raise HTTPException(status_code=403, detail="Invalid or expired signature")
        content = object_store.read(path)
    except ServiceError as e:
        raise _http_error(e)

    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type, headers={"Cache-Control": "private, max-age=300"})


# ==================== OUTFITS ====================

class OutfitCreate(BaseModel):
    """Outfit to save, typically an accepted suggestion."""

    occasion: str
    item_ids: List[str] = Field(..., description="Wardrobe item ids")
    name: Optional[str] = None
    is_ai_generated: bool = False
    reasoning: Optional[str] = None
    styling_tips: Optional[str] = None
    scheduled_date: Optional[str] = Field(None, description="YYYY-MM-DD")


class OutfitSchedule(BaseModel):
    scheduled_date: Optional[str] = Field(None, description="YYYY-MM-DD, or null to unschedule")


@router.post("/ai/outfits")
async def create_outfit(
    payload: OutfitCreate,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store)
):
    """Save an outfit."""
    try:
        outfit = outfit_store.save_outfit(
            store,
            user.user_id,
            name=payload.name or f"{payload.occasion.strip()} outfit",
            occasion=payload.occasion,
            item_ids=payload.item_ids,
            is_ai_generated=payload.is_ai_generated,
            reasoning=payload.reasoning,
            styling_tips=payload.styling_tips,
            scheduled_date=payload.scheduled_date,
        )
    except ServiceError as e:
        raise _http_error(e)

    return JSONResponse(content=outfit, status_code=201)


@router.get("/ai/outfits")
async def get_outfits(
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store)
):
    """List saved outfits, newest first."""
    try:
        outfits = outfit_store.list_outfits(store, user.user_id)
    except ServiceError as e:
        raise _http_error(e)

    return JSONResponse(content={"outfits": outfits, "count": len(outfits)})


@router.get("/ai/outfits/scheduled")
async def get_scheduled_outfits(
    on: Optional[date] = Query(None, description="Only outfits scheduled for this day"),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store)
):
    """Calendar view: scheduled outfits, earliest first."""
    try:
        outfits = outfit_store.list_scheduled_outfits(store, user.user_id)
    except ServiceError as e:
        raise _http_error(e)

    if on is not None:
        outfits = outfit_store.outfits_for_date(outfits, on)

    return JSONResponse(content={"outfits": outfits, "count": len(outfits)})


@router.put("/ai/outfits/{outfit_id}/schedule")
async def schedule_outfit(
    outfit_id: str,
    payload: OutfitSchedule,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_record_store)
):
    """Put an outfit on the calendar, or take it off."""
    try:
        found = outfit_store.schedule_outfit(store, user.user_id, outfit_id, payload.scheduled_date)
    except ServiceError as e:
        raise _http_error(e)

    if not found:
        raise HTTPException(status_code=404, detail="Outfit not found")

    return JSONResponse(content={"id": outfit_id, "scheduled_date": payload.scheduled_date})
