"""
Input Validation Module
Validates uploaded images, wardrobe item metadata and account forms.
"""
import io
import re
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from PIL import Image

from wardrobe_service.core.errors import InvalidInput

logger = logging.getLogger(__name__)

# Image upload configuration
MAX_FILE_SIZE_MB = 5
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
ALLOWED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}

# Catalog vocabularies offered by the upload form
CATEGORIES = ("Top", "Bottom", "Dress", "Outerwear", "Shoes", "Accessories")
DRESS_CODES = ("Casual", "Formal", "Business", "Party", "Athletic", "Streetwear")
SEASONS = ("Spring", "Summer", "Fall", "Winter", "All Season")

# Field bounds: (max_length, required)
ITEM_FIELD_LIMITS = {
    "name": (100, True),
    "category": (50, True),
    "dress_code": (50, True),
    "color": (30, False),
    "season": (20, False),
    "notes": (1000, False),
}

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
FULL_NAME_PATTERN = re.compile(r"^[a-zA-Z\s'-]+$")


# ==================== IMAGE UPLOADS ====================

def validate_file_size(content: bytes) -> None:
    """
    Check if file size is within limits.

    Raises:
        InvalidInput: If file exceeds MAX_FILE_SIZE_MB
    """
    if len(content) > MAX_FILE_SIZE_BYTES:
        raise InvalidInput(
            f"Image file size must be less than {MAX_FILE_SIZE_MB}MB",
            status_code=413
        )
    logger.debug(f"File size OK: {len(content) / (1024 * 1024):.2f}MB")


def validate_mime_type(content_type: Optional[str]) -> str:
    """
    Check if MIME type is allowed.

    Returns:
        Normalized MIME type

    Raises:
        InvalidInput: If MIME type is not in ALLOWED_MIME_TYPES
    """
    mime = (content_type or "").split(";")[0].strip().lower()

    if mime not in ALLOWED_MIME_TYPES:
        raise InvalidInput(
            "Please upload a valid image file (JPEG, PNG, or WebP)",
            status_code=415
        )
    return mime


def decode_image(content: bytes) -> Image.Image:
    """
    Decode image bytes to PIL Image.

    Raises:
        InvalidInput: If image cannot be decoded
    """
    try:
        image = Image.open(io.BytesIO(content))
        image.load()  # Force load to catch truncated images
        return image
    except Exception as e:
        raise InvalidInput(f"Cannot decode image: {str(e)}")


def validate_image_upload(content: bytes, content_type: Optional[str]) -> str:
    """
    Complete validation pipeline for an uploaded item photo.

    Runs before storage is contacted. Type is checked before size so an
    oversized PDF reports the type problem.

    Returns:
        Normalized MIME type
    """
    mime = validate_mime_type(content_type)
    validate_file_size(content)
    image = decode_image(content)

    logger.info(f"Image validated: {image.size[0]}x{image.size[1]}, {image.mode}")
    return mime


def file_extension(content_type: str, filename: Optional[str] = None) -> str:
    """Pick a storage extension, preferring the upload's filename when it is an image extension."""
    if filename and "." in filename:
        extension = filename.rsplit(".", 1)[-1].lower()
        if extension in ALLOWED_EXTENSIONS:
            return extension

    return {
        "image/jpeg": "jpg",
        "image/jpg": "jpg",
        "image/png": "png",
        "image/webp": "webp",
    }.get(content_type, "jpg")


def sanitize_asset_path(path: str, base_dir: Path) -> Path:
    """
    Resolve a storage key under base_dir, refusing path traversal.

    Raises:
        InvalidInput: If path traversal detected
    """
    for pattern in ("..", "~", "$", "%", "\\"):
        if pattern in path:
            raise InvalidInput(
                f"Access denied: suspicious path pattern '{pattern}'",
                status_code=403
            )

    requested_path = (base_dir / path).resolve()
    try:
        requested_path.relative_to(base_dir.resolve())
    except ValueError:
        raise InvalidInput("Access denied: path traversal detected", status_code=403)

    return requested_path


# ==================== WARDROBE ITEM METADATA ====================

def validate_item_metadata(fields: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """
    Validate and normalize wardrobe item form fields.

    Required fields must be non-blank; optional blank fields become None.

    Returns:
        Dict with trimmed values for every known field

    Raises:
        InvalidInput: Listing every failing field
    """
    errors = []
    cleaned: Dict[str, Optional[str]] = {}

    for field, (max_length, required) in ITEM_FIELD_LIMITS.items():
        raw = fields.get(field)
        value = str(raw).strip() if raw is not None else ""
        label = field.replace("_", " ").capitalize()

        if not value:
            if required:
                errors.append(f"{label} is required")
            cleaned[field] = None
            continue

        if len(value) > max_length:
            errors.append(f"{label} must be less than {max_length} characters")
        cleaned[field] = value

    if errors:
        raise InvalidInput("; ".join(errors))

    return cleaned


# ==================== ACCOUNT FORMS ====================

def validate_credentials(email: Optional[str], password: Optional[str]) -> str:
    """
    Validate sign-in fields.

    Returns:
        Normalized (trimmed, lower-cased) email
    """
    errors = []
    email = (email or "").strip()

    if not EMAIL_PATTERN.match(email):
        errors.append("Please enter a valid email address")
    elif len(email) > 255:
        errors.append("Email must be less than 255 characters")

    errors.extend(_password_errors(password))

    if errors:
        raise InvalidInput("; ".join(errors))
    return email.lower()


def validate_signup(email: Optional[str], password: Optional[str], full_name: Optional[str]) -> Dict[str, str]:
    """Validate sign-up fields (credentials plus display name)."""
    errors = []
    try:
        normalized_email = validate_credentials(email, password)
    except InvalidInput as e:
        normalized_email = ""
        errors.append(e.message)

    full_name = (full_name or "").strip()
    if not full_name:
        errors.append("Full name is required")
    elif len(full_name) > 100:
        errors.append("Full name must be less than 100 characters")
    elif not FULL_NAME_PATTERN.match(full_name):
        errors.append("Full name can only contain letters, spaces, hyphens, and apostrophes")

    if errors:
        raise InvalidInput("; ".join(errors))

    return {"email": normalized_email, "full_name": full_name}


def validate_new_password(password: Optional[str]) -> None:
    errors = _password_errors(password)
    if errors:
        raise InvalidInput("; ".join(errors))


def _password_errors(password: Optional[str]) -> list:
    password = password or ""
    if len(password) < 8:
        return ["Password must be at least 8 characters"]
    if len(password) > 128:
        return ["Password must be less than 128 characters"]
    return []
