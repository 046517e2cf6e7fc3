"""Model mixins shared by the data platform and jobs features."""

from app.shared.models import StoreScopedMixin, TimestampMixin

__all__ = ["StoreScopedMixin", "TimestampMixin"]
