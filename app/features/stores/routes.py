"""API routes for store management and sync.

Stores are the tenants of the analytics engine: every order, product and
metric row belongs to one. Sync runs in the background; the returned
``job_id`` is tracked through the jobs endpoints.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger, store_id_ctx
from app.features.jobs.service import JobService
from app.features.jobs.worker import JobWorker, get_job_worker
from app.features.stores.schemas import (
    StoreCreate,
    StoreListResponse,
    StoreResponse,
    StoreUpdate,
    SyncAcceptedResponse,
)
from app.features.stores.service import StoreService

logger = get_logger(__name__)

router = APIRouter(prefix="/stores", tags=["stores"])


def get_store_service() -> StoreService:
    """Dependency providing the store service."""
    return StoreService()


def get_job_service() -> JobService:
    """Dependency providing the job service."""
    return JobService()


# =============================================================================
# CRUD
# =============================================================================


@router.post(
    "",
    response_model=StoreResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a store",
    description="""
Register a Shopify store by URL and Admin API access token.

The URL is normalized to `https://<shop>.myshopify.com`, so `demo`,
`demo.myshopify.com` and `https://demo.myshopify.com/` are the same store.

**Error Handling**:
- Returns 409 if the store is already registered
""",
)
async def create_store(
    store_create: StoreCreate,
    db: AsyncSession = Depends(get_db),
    service: StoreService = Depends(get_store_service),
) -> StoreResponse:
    """Register a new store."""
    return await service.create_store(db, store_create)


@router.get(
    "",
    response_model=StoreListResponse,
    summary="List stores",
)
async def list_stores(
    db: AsyncSession = Depends(get_db),
    service: StoreService = Depends(get_store_service),
) -> StoreListResponse:
    """List all registered stores."""
    return await service.list_stores(db)


@router.get(
    "/{store_id}",
    response_model=StoreResponse,
    summary="Get store by ID",
)
async def get_store(
    store_id: int,
    db: AsyncSession = Depends(get_db),
    service: StoreService = Depends(get_store_service),
) -> StoreResponse:
    """Get a store by ID; 404 if missing."""
    store_id_ctx.set(store_id)
    return await service.get_store(db, store_id)


@router.patch(
    "/{store_id}",
    response_model=StoreResponse,
    summary="Update a store",
    description="""
Partially update a store. Omitted fields are left unchanged.

`start_date` / `end_date` bound the window pulled by sync; when unset, sync
pulls the last `ANALYTICS_DEFAULT_RANGE_DAYS` days.

**Error Handling**:
- Returns 404 if the store doesn't exist
- Returns 422 if the resulting window has end_date before start_date
""",
)
async def update_store(
    store_id: int,
    store_update: StoreUpdate,
    db: AsyncSession = Depends(get_db),
    service: StoreService = Depends(get_store_service),
) -> StoreResponse:
    """Update a store."""
    store_id_ctx.set(store_id)
    return await service.update_store(db, store_id, store_update)


@router.delete(
    "/{store_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a store",
    description="Delete a store and all of its synced orders, products and metrics.",
)
async def delete_store(
    store_id: int,
    db: AsyncSession = Depends(get_db),
    service: StoreService = Depends(get_store_service),
) -> Response:
    """Delete a store."""
    store_id_ctx.set(store_id)
    await service.delete_store(db, store_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Sync
# =============================================================================


@router.post(
    "/{store_id}/sync",
    response_model=SyncAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a store sync",
    description="""
Queue a background sync of orders, products and ShopifyQL analytics for the
store. Returns immediately with the job id.

**Workflow**:
1. `POST /stores/{store_id}/sync` returns `{"message": "Sync started", "job_id": "..."}`
2. Poll `GET /jobs/{job_id}` until `status` is `completed` or `failed`
3. Query `GET /analytics/{store_id}`

**Error Handling**:
- Returns 404 if the store doesn't exist
- Returns 503 if the job worker cannot accept work
""",
)
async def sync_store(
    store_id: int,
    db: AsyncSession = Depends(get_db),
    job_service: JobService = Depends(get_job_service),
    worker: JobWorker = Depends(get_job_worker),
) -> SyncAcceptedResponse:
    """Queue a store sync job."""
    store_id_ctx.set(store_id)
    job = await job_service.submit_sync(db, store_id, worker)
    logger.info("stores.sync_requested", store_id=store_id, job_id=job.job_id)
    return SyncAcceptedResponse(job_id=job.job_id)
