"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates all tables for the change-notice tracker:
users, change_records, attachments, purchase_entries.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

role_enum = sa.Enum("reader", "editor", "admin", name="role")
purchase_status_enum = sa.Enum("in_progress", "done", "cancelled", name="purchasestatus")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("login", sa.String(100), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("role", role_enum, nullable=False, server_default="reader"),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # --- change_records ---
    op.create_table(
        "change_records",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("reference", sa.String(100), nullable=False, unique=True),
        sa.Column("product_line", sa.String(150), nullable=False),
        sa.Column("model", sa.String(150), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("affected_serials", sa.Text, nullable=True),
        sa.Column("supplier", sa.String(255), nullable=True),
        sa.Column("subassembly", sa.String(255), nullable=True),
        sa.Column("component", sa.String(255), nullable=True),
        sa.Column("validated_on", sa.Date, nullable=True),
        sa.Column("in_production_since", sa.Date, nullable=True),
        sa.Column("sheet_part_name", sa.String(255), nullable=True),
        sa.Column("external_code", sa.String(100), nullable=True),
        sa.Column("creator_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_change_records_product_line", "change_records", ["product_line"])
    op.create_index("ix_change_records_model", "change_records", ["model"])
    op.create_index("ix_change_records_external_code", "change_records", ["external_code"])
    op.create_index("ix_change_records_updated_at", "change_records", ["updated_at"])

    # --- attachments ---
    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("record_id", sa.Integer, sa.ForeignKey("change_records.id"), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("stored_name", sa.String(255), nullable=False, unique=True),
        sa.Column("mime_type", sa.String(150), nullable=False),
        sa.Column("size_bytes", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_attachments_record_id", "attachments", ["record_id"])

    # --- purchase_entries ---
    op.create_table(
        "purchase_entries",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("record_id", sa.Integer, sa.ForeignKey("change_records.id"), nullable=False),
        sa.Column("designation", sa.String(255), nullable=False),
        sa.Column("supplier", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=True),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("status", purchase_status_enum, nullable=False, server_default="in_progress"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_purchase_entries_record_id", "purchase_entries", ["record_id"])


def downgrade() -> None:
    op.drop_table("purchase_entries")
    op.drop_table("attachments")
    op.drop_table("change_records")
    op.drop_table("users")
    purchase_status_enum.drop(op.get_bind(), checkfirst=True)
    role_enum.drop(op.get_bind(), checkfirst=True)
