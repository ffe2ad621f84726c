# Observability module
from wardrobe_service.observability.logger import log_request, is_logging_enabled
from wardrobe_service.observability.metrics import (
    increment_request,
    get_metrics,
    reset_metrics,
)
