"""create_store_analytics_tables

Revision ID: 9c1e4f7a2b30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "9c1e4f7a2b30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    """created_at / updated_at columns (from TimestampMixin)."""
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Apply migration - create store, transactional, metric and job tables."""
    # Create store table
    op.create_table(
        "store",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("url", sa.String(length=255), nullable=False),
        sa.Column("access_token", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR end_date >= start_date",
            name="ck_store_valid_sync_window",
        ),
    )
    op.create_index(op.f("ix_store_url"), "store", ["url"], unique=True)

    # Create order table
    op.create_table(
        "order",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("shopify_id", sa.String(length=64), nullable=False),
        sa.Column("total_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["store_id"], ["store.id"], ondelete="CASCADE"),
        sa.CheckConstraint("total_price >= 0", name="ck_order_total_price_positive"),
    )
    op.create_index(op.f("ix_order_store_id"), "order", ["store_id"], unique=False)
    op.create_index(op.f("ix_order_shopify_id"), "order", ["shopify_id"], unique=True)
    op.create_index(op.f("ix_order_processed_at"), "order", ["processed_at"], unique=False)
    op.create_index(
        "ix_order_store_processed_at", "order", ["store_id", "processed_at"], unique=False
    )

    # Create line_item table
    op.create_table(
        "line_item",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["order_id"], ["order.id"], ondelete="CASCADE"),
        sa.CheckConstraint("quantity >= 0", name="ck_line_item_quantity_positive"),
        sa.CheckConstraint("price >= 0", name="ck_line_item_price_positive"),
    )
    op.create_index(op.f("ix_line_item_order_id"), "line_item", ["order_id"], unique=False)
    op.create_index(op.f("ix_line_item_title"), "line_item", ["title"], unique=False)

    # Create product table
    op.create_table(
        "product",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("shopify_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("handle", sa.String(length=255), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.String(length=255)), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["store_id"], ["store.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_product_store_id"), "product", ["store_id"], unique=False)
    op.create_index(op.f("ix_product_shopify_id"), "product", ["shopify_id"], unique=True)

    # Create session_metric table
    op.create_table(
        "session_metric",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("sessions", sa.Integer(), nullable=False),
        sa.Column("conversion_rate", sa.Numeric(precision=10, scale=4), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["store_id"], ["store.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("store_id", "date", name="uq_session_metric_grain"),
        sa.CheckConstraint("sessions >= 0", name="ck_session_metric_sessions_positive"),
        sa.CheckConstraint(
            "conversion_rate IS NULL OR (conversion_rate >= 0 AND conversion_rate <= 1)",
            name="ck_session_metric_conversion_rate_range",
        ),
    )
    op.create_index(
        op.f("ix_session_metric_store_id"), "session_metric", ["store_id"], unique=False
    )
    op.create_index(op.f("ix_session_metric_date"), "session_metric", ["date"], unique=False)

    # Create daily_metric table
    op.create_table(
        "daily_metric",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("total_revenue", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("total_orders", sa.Integer(), nullable=False),
        sa.Column("sessions", sa.Integer(), nullable=False),
        sa.Column("conversion_rate", sa.Numeric(precision=10, scale=4), nullable=False),
        sa.Column("average_order_value", sa.Numeric(precision=12, scale=2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["store_id"], ["store.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("store_id", "date", name="uq_daily_metric_grain"),
    )
    op.create_index(op.f("ix_daily_metric_store_id"), "daily_metric", ["store_id"], unique=False)
    op.create_index(op.f("ix_daily_metric_date"), "daily_metric", ["date"], unique=False)

    # Create product_metric table
    op.create_table(
        "product_metric",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("product_title", sa.String(length=255), nullable=False),
        sa.Column("total_sales", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("net_sales", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("net_items_sold", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["store_id"], ["store.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "store_id", "date", "product_title", name="uq_product_metric_grain"
        ),
    )
    op.create_index(
        op.f("ix_product_metric_store_id"), "product_metric", ["store_id"], unique=False
    )
    op.create_index(op.f("ix_product_metric_date"), "product_metric", ["date"], unique=False)

    # Create job table
    op.create_table(
        "job",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.String(length=32), nullable=False),
        sa.Column("job_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("store_id", sa.Integer(), nullable=True),
        sa.Column("params", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("result", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("error_message", sa.String(length=2000), nullable=True),
        sa.Column("error_type", sa.String(length=100), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["store_id"], ["store.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "status IN ('pending', 'running', 'completed', 'failed', 'cancelled')",
            name="ck_job_valid_status",
        ),
        sa.CheckConstraint("job_type IN ('store_sync')", name="ck_job_valid_type"),
    )
    op.create_index(op.f("ix_job_job_id"), "job", ["job_id"], unique=True)
    op.create_index(op.f("ix_job_job_type"), "job", ["job_type"], unique=False)
    op.create_index(op.f("ix_job_status"), "job", ["status"], unique=False)
    op.create_index(op.f("ix_job_store_id"), "job", ["store_id"], unique=False)
    op.create_index("ix_job_type_status", "job", ["job_type", "status"], unique=False)


def downgrade() -> None:
    """Revert migration - drop all store analytics tables."""
    op.drop_index("ix_job_type_status", table_name="job")
    op.drop_index(op.f("ix_job_store_id"), table_name="job")
    op.drop_index(op.f("ix_job_status"), table_name="job")
    op.drop_index(op.f("ix_job_job_type"), table_name="job")
    op.drop_index(op.f("ix_job_job_id"), table_name="job")
    op.drop_table("job")

    op.drop_index(op.f("ix_product_metric_date"), table_name="product_metric")
    op.drop_index(op.f("ix_product_metric_store_id"), table_name="product_metric")
    op.drop_table("product_metric")

    op.drop_index(op.f("ix_daily_metric_date"), table_name="daily_metric")
    op.drop_index(op.f("ix_daily_metric_store_id"), table_name="daily_metric")
    op.drop_table("daily_metric")

    op.drop_index(op.f("ix_session_metric_date"), table_name="session_metric")
    op.drop_index(op.f("ix_session_metric_store_id"), table_name="session_metric")
    op.drop_table("session_metric")

    op.drop_index(op.f("ix_product_shopify_id"), table_name="product")
    op.drop_index(op.f("ix_product_store_id"), table_name="product")
    op.drop_table("product")

    op.drop_index(op.f("ix_line_item_title"), table_name="line_item")
    op.drop_index(op.f("ix_line_item_order_id"), table_name="line_item")
    op.drop_table("line_item")

    op.drop_index("ix_order_store_processed_at", table_name="order")
    op.drop_index(op.f("ix_order_processed_at"), table_name="order")
    op.drop_index(op.f("ix_order_shopify_id"), table_name="order")
    op.drop_index(op.f("ix_order_store_id"), table_name="order")
    op.drop_table("order")

    op.drop_index(op.f("ix_store_url"), table_name="store")
    op.drop_table("store")
