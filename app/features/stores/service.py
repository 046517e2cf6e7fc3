"""Service layer for store management."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.features.data_platform.models import Store
from app.features.shopify.client import format_store_url
from app.features.stores.schemas import (
    StoreCreate,
    StoreListResponse,
    StoreResponse,
    StoreUpdate,
)

logger = get_logger(__name__)


class StoreService:
    """CRUD for connected Shopify stores."""

    async def create_store(self, db: AsyncSession, store_create: StoreCreate) -> StoreResponse:
        """Register a store.

        The URL is stored normalized so ``demo`` and ``https://demo.myshopify.com``
        are the same store.

        Raises:
            ConflictError: If a store with the same URL exists.
        """
        url = format_store_url(store_create.url)
        existing = await db.execute(select(Store.id).where(Store.url == url))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(
                message=f"Store already registered: {url}",
                details={"url": url},
            )

        store = Store(name=store_create.name, url=url, access_token=store_create.access_token)
        db.add(store)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError(
                message=f"Store already registered: {url}",
                details={"url": url},
            ) from e
        await db.refresh(store)

        logger.info("stores.store_created", store_id=store.id, url=url)
        return StoreResponse.model_validate(store)

    async def list_stores(self, db: AsyncSession) -> StoreListResponse:
        """List stores ordered by id."""
        result = await db.execute(select(Store).order_by(Store.id))
        stores = result.scalars().all()
        total = (await db.execute(select(func.count(Store.id)))).scalar_one()
        return StoreListResponse(
            stores=[StoreResponse.model_validate(s) for s in stores],
            total=total,
        )

    async def get_store(self, db: AsyncSession, store_id: int) -> StoreResponse:
        """Get a store by id.

        Raises:
            NotFoundError: If the store does not exist.
        """
        return StoreResponse.model_validate(await self._get_or_404(db, store_id))

    async def update_store(
        self, db: AsyncSession, store_id: int, store_update: StoreUpdate
    ) -> StoreResponse:
        """Apply a partial update.

        Raises:
            NotFoundError: If the store does not exist.
            ValidationError: If the resulting sync window is inverted.
        """
        store = await self._get_or_404(db, store_id)
        changes = store_update.model_dump(exclude_unset=True)
        for field_name, value in changes.items():
            setattr(store, field_name, value)

        if store.start_date and store.end_date and store.end_date < store.start_date:
            await db.rollback()
            raise ValidationError(
                message="end_date must be on or after start_date",
                details={
                    "start_date": store.start_date.isoformat(),
                    "end_date": store.end_date.isoformat(),
                },
            )

        await db.commit()
        await db.refresh(store)

        logger.info("stores.store_updated", store_id=store_id, fields=sorted(changes))
        return StoreResponse.model_validate(store)

    async def delete_store(self, db: AsyncSession, store_id: int) -> None:
        """Delete a store and everything synced for it.

        Raises:
            NotFoundError: If the store does not exist.
        """
        store = await self._get_or_404(db, store_id)
        await db.delete(store)
        await db.commit()
        logger.info("stores.store_deleted", store_id=store_id)

    @staticmethod
    async def _get_or_404(db: AsyncSession, store_id: int) -> Store:
        store = await db.get(Store, store_id)
        if store is None:
            raise NotFoundError(
                message=f"Store not found: {store_id}",
                details={"store_id": store_id},
            )
        return store
