# Database module
from wardrobe_service.db.mongo import connect, close, get_collection, health_check
