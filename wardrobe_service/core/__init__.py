# Core module
from wardrobe_service.core.errors import (
    ServiceError,
    InvalidInput,
    ConfigurationError,
    UpstreamError,
    NotFound,
    StoreUnavailable,
)
