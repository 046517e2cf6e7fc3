"""Store management: registration, configuration and Shopify sync."""

from app.features.stores.routes import router
from app.features.stores.schemas import (
    StoreCreate,
    StoreListResponse,
    StoreResponse,
    StoreUpdate,
    SyncAcceptedResponse,
)
from app.features.stores.service import StoreService
from app.features.stores.sync import SyncResult, SyncService

__all__ = [
    "StoreCreate",
    "StoreListResponse",
    "StoreResponse",
    "StoreService",
    "StoreUpdate",
    "SyncAcceptedResponse",
    "SyncResult",
    "SyncService",
    "router",
]
