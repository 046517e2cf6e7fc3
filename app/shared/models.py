"""Shared SQLAlchemy model mixins."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, declared_attr, mapped_column


class TimestampMixin:
    """created_at / updated_at maintained by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class StoreScopedMixin:
    """Row owned by a store; deleted with it.

    Every synced record and metric carries ``store_id`` and every analytics
    query filters on it, hence the index.
    """

    @declared_attr
    def store_id(cls) -> Mapped[int]:
        return mapped_column(Integer, ForeignKey("store.id", ondelete="CASCADE"), index=True)
