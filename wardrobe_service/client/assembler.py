"""
Outfit Request Assembler
Client side of the suggestion flow: checks the request locally, posts it
to the suggestion endpoint once, and hands back the result or the
server's error message.
"""
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

import requests

from wardrobe_service.core.errors import InvalidInput, ServiceError
from wardrobe_service.db.wardrobe import item_summary

logger = logging.getLogger(__name__)

MIN_ITEMS = 3
SUGGESTION_PATH = "/ai/generate-outfit"
DEFAULT_TIMEOUT = 60


class SuggestionRequestError(ServiceError):
    """The suggestion endpoint answered with an error."""


class RequestInFlightError(ServiceError):
    """A suggestion request is already running for this assembler."""
    status_code = 409


class OutfitRequestAssembler:
    """
    Builds and sends outfit suggestion requests.

    Usage:
        assembler = OutfitRequestAssembler("http://localhost:8000", access_token=token)
        suggestion = assembler.request_suggestion(items, "Formal")
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout
        self._in_flight = False
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @staticmethod
    def build_request(items: Sequence[Dict[str, Any]], occasion: str) -> Dict[str, Any]:
        """
        Package the user's items and occasion.

        Raises:
            InvalidInput: Fewer than 3 items or a blank occasion
        """
        if not occasion or not str(occasion).strip():
            raise InvalidInput("Please choose an occasion")

        if len(items) < MIN_ITEMS:
            raise InvalidInput(f"You need at least {MIN_ITEMS} items in your wardrobe to generate an outfit")

        return {
            "items": [item_summary(item) for item in items],
            "occasion": str(occasion).strip(),
        }

    def request_suggestion(self, items: Sequence[Dict[str, Any]], occasion: str) -> Dict[str, Any]:
        """
        Ask the service for an outfit suggestion.

        Returns:
            {"outfit": [...], "reasoning": str, "styling_tips": str}

        Raises:
            InvalidInput: Local validation failed (nothing sent)
            RequestInFlightError: Another request is still running
            SuggestionRequestError: Server error, message passed through verbatim
        """
        with self._lock:
            if self._in_flight:
                raise RequestInFlightError("An outfit is already being generated")
            payload = self.build_request(items, occasion)
            self._in_flight = True

        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            response = self.session.post(
                f"{self.base_url}{SUGGESTION_PATH}",
                json=payload,
                headers=headers,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Suggestion request failed: {e}")
            raise SuggestionRequestError(str(e)) from e
        finally:
            with self._lock:
                self._in_flight = False

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code != 200:
            message = body.get("error") if isinstance(body, dict) else None
            raise SuggestionRequestError(
                message or f"Suggestion request failed with status {response.status_code}",
                status_code=response.status_code
            )

        if not isinstance(body, dict):
            raise SuggestionRequestError("Suggestion response was not a JSON object", status_code=502)

        logger.info(f"Suggestion received for {payload['occasion']!r}: {body.get('outfit')}")
        return body

    def suggested_items(self, suggestion: Dict[str, Any], items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Resolve a suggestion's ids to the caller's items, dropping ids it does not know."""
        by_id = {str(item.get("id")): item for item in items}
        outfit = suggestion.get("outfit") or []
        return [by_id[str(item_id)] for item_id in outfit if str(item_id) in by_id]
