# Client module
from wardrobe_service.client.assembler import (
    OutfitRequestAssembler,
    SuggestionRequestError,
    RequestInFlightError,
)
