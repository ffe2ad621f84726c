"""
Outfit Suggestion Service
Turns a user's items and an occasion into a structured outfit suggestion.

Pipeline:
    1. Validate the request (fail fast, nothing sent upstream)
    2. Sanitize occasion and item fields
    3. Render the stylist prompt
    4. One call to the text-generation model
    5. Parse the reply: JSON object if present, deterministic fallback otherwise

The result is always suggestion-shaped. A reply that cannot be parsed is
not an error, it yields a FallbackReply.
"""
import re
import json
import time
import uuid
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from wardrobe_service.core.errors import InvalidInput, ServiceError
from wardrobe_service.llm.llm_adapter import LLMClient, get_llm_client
from wardrobe_service.observability import log_request, increment_request

logger = logging.getLogger(__name__)

MIN_ITEMS = 3
MAX_OCCASION_LENGTH = 50
FALLBACK_ITEM_COUNT = 3
FALLBACK_STYLING_TIPS = "Mix and match these pieces for a great look!"
NO_COLOR = "no color"

REQUIRED_ITEM_FIELDS = ("id", "name", "category", "dress_code")
ITEM_FIELD_LIMITS = {
    "id": 100,
    "name": 100,
    "category": 50,
    "dress_code": 50,
    "color": 30,
}

TAG_PATTERN = re.compile(r"<[^>]*>")
DISALLOWED_OCCASION_CHARS = re.compile(r"[^\w\s-]", re.ASCII)
WHITESPACE_RUN = re.compile(r"\s+")
# Greedy: first "{" through last "}"
JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

PROMPT_TEMPLATE = """You are a fashion stylist AI. Create a stylish outfit for a {occasion} occasion.

Available items: {items}

Item IDs, in the same order as the items above: {item_ids}

Provide a response in this exact JSON format:
{{
  "outfit": [list of item IDs that work together],
  "reasoning": "Why this combination works",
  "styling_tips": "How to wear and accessorize this outfit"
}}

Select 3-5 items that complement each other based on color, style, and the occasion."""


# ==================== RESULT TYPES ====================

@dataclass
class ParsedReply:
    """The model replied with a JSON object; returned exactly as parsed."""
    data: Dict[str, Any]
    outcome: str = field(default="parsed", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return self.data


@dataclass
class FallbackReply:
    """Deterministic suggestion used when the reply holds no parsable JSON object."""
    outfit: List[str]
    reasoning: str
    styling_tips: str = FALLBACK_STYLING_TIPS
    outcome: str = field(default="fallback", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outfit": list(self.outfit),
            "reasoning": self.reasoning,
            "styling_tips": self.styling_tips,
        }


OutfitSuggestion = Union[ParsedReply, FallbackReply]


# ==================== VALIDATION ====================

def validate_request(items: Any, occasion: Any) -> None:
    """
    Validate a raw suggestion request.

    Raises:
        InvalidInput: On the first failing rule
    """
    if not isinstance(items, (list, tuple)) or len(items) < MIN_ITEMS:
        raise InvalidInput(f"At least {MIN_ITEMS} items are required")

    if not isinstance(occasion, str) or not occasion or len(occasion) > MAX_OCCASION_LENGTH:
        raise InvalidInput(f"Valid occasion is required (max {MAX_OCCASION_LENGTH} characters)")

    for item in items:
        if not isinstance(item, Mapping) or not all(item.get(name) for name in REQUIRED_ITEM_FIELDS):
            raise InvalidInput("Invalid item data structure")


# ==================== SANITIZATION ====================

def sanitize_occasion(occasion: Any) -> str:
    """Reduce an occasion label to plain words, spaces and hyphens (max 50 chars)."""
    text = TAG_PATTERN.sub("", str(occasion).strip())
    text = DISALLOWED_OCCASION_CHARS.sub("", text)
    text = WHITESPACE_RUN.sub(" ", text)
    return text.strip()[:MAX_OCCASION_LENGTH].strip()


def _clip(value: Any, limit: int) -> str:
    return str(value)[:limit]


def sanitize_item(item: Mapping) -> Dict[str, str]:
    """Coerce an item summary to bounded plain text."""
    color = item.get("color")
    return {
        "id": _clip(item["id"], ITEM_FIELD_LIMITS["id"]),
        "name": _clip(item["name"], ITEM_FIELD_LIMITS["name"]),
        "category": _clip(item["category"], ITEM_FIELD_LIMITS["category"]),
        "dress_code": _clip(item["dress_code"], ITEM_FIELD_LIMITS["dress_code"]),
        "color": _clip(color, ITEM_FIELD_LIMITS["color"]) if color else NO_COLOR,
    }


# ==================== PROMPT ====================

def describe_item(item: Mapping) -> str:
    return f"{item['name']} ({item['category']}, {item['dress_code']}, {item['color']})"


def build_prompt(items: Sequence[Mapping], occasion: str) -> str:
    """Render sanitized items and occasion into the stylist prompt."""
    return PROMPT_TEMPLATE.format(
        occasion=occasion,
        items=", ".join(describe_item(item) for item in items),
        item_ids=", ".join(item["id"] for item in items),
    )


# ==================== REPLY PARSING ====================

def fallback_reply(raw_text: str, item_ids: Sequence[str]) -> FallbackReply:
    return FallbackReply(
        outfit=list(item_ids[:FALLBACK_ITEM_COUNT]),
        reasoning=raw_text,
    )


def parse_reply(raw_text: Optional[str], item_ids: Sequence[str]) -> OutfitSuggestion:
    """
    Parse the model reply into a suggestion.

    The outermost brace-delimited span is tried as JSON. Anything else,
    including a reply with no braces at all, becomes a FallbackReply
    that echoes the raw text as reasoning.
    """
    text = raw_text or ""
    match = JSON_OBJECT_PATTERN.search(text)

    if match:
        try:
            data = json.loads(match.group(0))
        except ValueError as e:
            logger.info(f"Reply JSON not parsable, using fallback: {e}")
            data = None

        if isinstance(data, dict):
            return ParsedReply(data=data)

    return fallback_reply(text, item_ids)


def unknown_item_ids(suggestion: OutfitSuggestion, item_ids: Sequence[str]) -> List[str]:
    """Ids in the suggestion's outfit that were not offered to the model."""
    outfit = suggestion.to_dict().get("outfit")
    if not isinstance(outfit, list):
        return []
    known = set(item_ids)
    return [str(item_id) for item_id in outfit if str(item_id) not in known]


# ==================== PUBLIC API ====================

async def generate(
    items: Any,
    occasion: Any,
    client: Optional[LLMClient] = None
) -> OutfitSuggestion:
    """
    Generate an outfit suggestion.

    Args:
        items: Item summaries (id, name, category, dress_code, color)
        occasion: Occasion label, at most 50 characters
        client: LLM client (defaults to the shared client)

    Returns:
        ParsedReply or FallbackReply

    Raises:
        InvalidInput: Request failed validation (no upstream call made)
        ConfigurationError: Model credential missing
        UpstreamError: Model call failed
    """
    validate_request(items, occasion)

    clean_occasion = sanitize_occasion(occasion)
    if not clean_occasion:
        raise InvalidInput(f"Valid occasion is required (max {MAX_OCCASION_LENGTH} characters)")

    clean_items = [sanitize_item(item) for item in items]
    item_ids = [str(item["id"]) for item in items]
    prompt = build_prompt(clean_items, clean_occasion)

    client = client or get_llm_client()
    request_id = str(uuid.uuid4())
    start_time = time.time()

    logger.info(f"Suggestion request {request_id}: occasion={clean_occasion!r}, items={len(items)}")

    try:
        raw_text = await client.generate_text(prompt)
    except ServiceError as e:
        latency_ms = int((time.time() - start_time) * 1000)
        log_request(request_id, client.provider, client.model, latency_ms, "fail",
                    item_count=len(items), error=e.message)
        increment_request(client.provider, error=True)
        raise

    suggestion = parse_reply(raw_text, item_ids)

    unknown = unknown_item_ids(suggestion, item_ids)
    if unknown:
        logger.warning(f"Suggestion {request_id} references unknown item ids: {unknown}")

    latency_ms = int((time.time() - start_time) * 1000)
    log_request(request_id, client.provider, client.model, latency_ms, "success",
                outcome=suggestion.outcome, item_count=len(items))
    increment_request(client.provider, outcome=suggestion.outcome)

    logger.info(f"Suggestion {request_id} completed: outcome={suggestion.outcome}, latency={latency_ms}ms")
    return suggestion
