"""
Wardrobe AI Service v1.0.0
Wardrobe catalog, calendar and AI outfit suggestions.

============================================================================
ROUTES
============================================================================
- /ai/generate-outfit     - Outfit suggestion (public, CORS open)
- /ai/auth/*              - Sign up, sign in, password reset
- /ai/wardrobe/items/*    - Wardrobe catalog (authenticated)
- /ai/outfits/*           - Saved and scheduled outfits (authenticated)
- /ai/storage/*           - Photos behind signed URLs
- /health, /metrics       - Health and monitoring

STORAGE STRUCTURE:
------------------
wardrobe_service/data/storage/
└── wardrobe/{user_id}/   <- private item photos, served only via signed URL
    └── {epoch_ms}.{ext}
============================================================================
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wardrobe_service.app.routes import router, CORS_ALLOW_HEADERS, SUGGESTION_PATH, VERSION
from wardrobe_service.core.storage import get_object_store
from wardrobe_service.config import get_llm_config
from wardrobe_service.db import mongo
from wardrobe_service.observability import is_logging_enabled

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


class CatalogCORSMiddleware(CORSMiddleware):
    """
    Open CORS for the catalog routes.

    The suggestion endpoint sets its own CORS headers and answers its own
    OPTIONS, so its requests bypass the middleware untouched.
    """

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"] == SUGGESTION_PATH:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=" * 50)
    logger.info(f"Wardrobe AI Service v{VERSION} Starting...")
    logger.info("=" * 50)

    object_store = get_object_store()
    object_store.ensure_directories()

    mongo_connected = mongo.connect()
    logger.info(f"MongoDB: {'connected' if mongo_connected else 'disconnected'}")

    llm_config = get_llm_config()
    logger.info(f"Active LLM: {llm_config.provider.value} ({llm_config.model})")
    if not llm_config.to_dict()["credential_configured"]:
        logger.warning("No LLM credential configured; /ai/generate-outfit will return 500")

    logger.info(f"Logging: {'enabled' if is_logging_enabled() else 'disabled'}")
    logger.info(f"Photo storage: {object_store.bucket_dir}")

    logger.info("✓ Service ready! http://localhost:8000")
    logger.info("✓ Metrics available at /metrics")
    logger.info("=" * 50)

    yield

    logger.info("Service shutting down...")
    mongo.close()


app = FastAPI(
    title="Wardrobe AI Service",
    description="Wardrobe catalog with AI outfit suggestions",
    version=VERSION,
    lifespan=lifespan
)

# ============================================================================
# MIDDLEWARE
# ============================================================================
app.add_middleware(
    CatalogCORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=CORS_ALLOW_HEADERS
)

app.include_router(router)
