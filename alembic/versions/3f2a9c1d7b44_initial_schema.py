"""Initial schema for the fleet tables.

Sources:
  - mower_manager.py      (mowers, service_records)
  - task_manager.py       (tasks)
  - parts_inventory.py    (parts, engines, asset_parts)
  - attachments.py        (attachments)
  - notifications.py      (notifications)

Revision ID: 3f2a9c1d7b44
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "3f2a9c1d7b44"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _auto_pk():
    """Auto-increment integer PK; SERIAL on Postgres, AUTOINCREMENT on SQLite."""
    return sa.Column("id", sa.Integer, primary_key=True, autoincrement=True)


def _ts_default():
    """CURRENT_TIMESTAMP default usable on both dialects."""
    return sa.text("CURRENT_TIMESTAMP")


# ---------------------------------------------------------------------------
# upgrade
# ---------------------------------------------------------------------------

def upgrade() -> None:
    op.create_table(
        "mowers",
        _auto_pk(),
        sa.Column("make", sa.Text, nullable=False),
        sa.Column("model", sa.Text, nullable=False),
        sa.Column("year", sa.Integer),
        sa.Column("serial_number", sa.Text),
        sa.Column("purchase_date", sa.Text),
        sa.Column("purchase_price", sa.Float),
        sa.Column("location", sa.Text),
        sa.Column("condition", sa.Text, nullable=False, server_default="good"),
        sa.Column("status", sa.Text, nullable=False, server_default="active"),
        sa.Column("last_service_date", sa.Text),
        sa.Column("next_service_date", sa.Text),
        sa.Column("thumbnail_attachment_id", sa.Integer),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.TIMESTAMP, server_default=_ts_default()),
        sa.Column("updated_at", sa.TIMESTAMP, server_default=_ts_default()),
    )

    op.create_table(
        "service_records",
        _auto_pk(),
        sa.Column("mower_id", sa.Integer, sa.ForeignKey("mowers.id"), nullable=False),
        sa.Column("service_date", sa.Text, nullable=False),
        sa.Column("service_type", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("cost", sa.Float),
        sa.Column("performed_by", sa.Text),
        sa.Column("next_service_due", sa.Text),
        sa.Column("mileage", sa.Integer),
        sa.Column("created_at", sa.TIMESTAMP, server_default=_ts_default()),
    )
    op.create_index("idx_service_records_mower", "service_records", ["mower_id", "service_date"])

    op.create_table(
        "tasks",
        _auto_pk(),
        sa.Column("mower_id", sa.Integer, sa.ForeignKey("mowers.id"), nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("priority", sa.Text, nullable=False, server_default="medium"),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("category", sa.Text, nullable=False, server_default="maintenance"),
        sa.Column("due_date", sa.Text),
        sa.Column("estimated_cost", sa.Float),
        sa.Column("part_number", sa.Text),
        sa.Column("created_at", sa.TIMESTAMP, server_default=_ts_default()),
        sa.Column("completed_at", sa.TIMESTAMP),
    )

    op.create_table(
        "parts",
        _auto_pk(),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("part_number", sa.Text),
        sa.Column("manufacturer", sa.Text),
        sa.Column("category", sa.Text),
        sa.Column("unit_cost", sa.Float),
        sa.Column("stock_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("min_stock_level", sa.Integer, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.TIMESTAMP, server_default=_ts_default()),
        sa.Column("updated_at", sa.TIMESTAMP, server_default=_ts_default()),
    )

    op.create_table(
        "engines",
        _auto_pk(),
        sa.Column("mower_id", sa.Integer, sa.ForeignKey("mowers.id")),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("part_number", sa.Text),
        sa.Column("manufacturer", sa.Text),
        sa.Column("model", sa.Text),
        sa.Column("serial_number", sa.Text),
        sa.Column("install_date", sa.Text),
        sa.Column("condition", sa.Text, nullable=False, server_default="good"),
        sa.Column("status", sa.Text, nullable=False, server_default="active"),
        sa.Column("cost", sa.Float),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.TIMESTAMP, server_default=_ts_default()),
        sa.Column("updated_at", sa.TIMESTAMP, server_default=_ts_default()),
    )

    op.create_table(
        "asset_parts",
        _auto_pk(),
        sa.Column("part_id", sa.Integer, sa.ForeignKey("parts.id"), nullable=False),
        sa.Column("mower_id", sa.Integer, sa.ForeignKey("mowers.id")),
        sa.Column("engine_id", sa.Integer, sa.ForeignKey("engines.id")),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("install_date", sa.Text),
        sa.Column("service_record_id", sa.Integer, sa.ForeignKey("service_records.id")),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.TIMESTAMP, server_default=_ts_default()),
    )

    op.create_table(
        "attachments",
        _auto_pk(),
        sa.Column("mower_id", sa.Integer, sa.ForeignKey("mowers.id")),
        sa.Column("engine_id", sa.Integer, sa.ForeignKey("engines.id")),
        sa.Column("part_id", sa.Integer, sa.ForeignKey("parts.id")),
        sa.Column("file_name", sa.Text, nullable=False),
        sa.Column("title", sa.Text),
        sa.Column("file_type", sa.Text, nullable=False),
        sa.Column("mime_type", sa.Text),
        sa.Column("file_data", sa.Text, nullable=False),
        sa.Column("file_size", sa.Integer, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("uploaded_at", sa.TIMESTAMP, server_default=_ts_default()),
    )

    op.create_table(
        "notifications",
        _auto_pk(),
        sa.Column("notification_type", sa.Text, nullable=False, server_default="info"),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("priority", sa.Text, nullable=False, server_default="medium"),
        sa.Column("is_read", sa.Integer, nullable=False, server_default="0"),
        sa.Column("entity_type", sa.Text),
        sa.Column("entity_id", sa.Integer),
        sa.Column("entity_name", sa.Text),
        sa.Column("detail_url", sa.Text),
        sa.Column("created_at", sa.TIMESTAMP, nullable=False, server_default=_ts_default()),
    )


# ---------------------------------------------------------------------------
# downgrade
# ---------------------------------------------------------------------------

def downgrade() -> None:
    # Drop in reverse order to respect FK ordering.
    tables = [
        "notifications",
        "attachments",
        "asset_parts",
        "engines",
        "parts",
        "tasks",
        "service_records",
        "mowers",
    ]
    for table in tables:
        op.drop_table(table)
