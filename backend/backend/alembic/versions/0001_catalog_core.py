"""catalog core tables

Revision ID: 0001_catalog_core
Revises:
Create Date: 2026-10-19T09:00:00Z
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_catalog_core"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "app_sites",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("name", sa.String(length=256), nullable=False),
    )
    op.create_index("ix_app_sites_name", "app_sites", ["name"])

    op.create_table(
        "app_employees",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("full_name", sa.String(length=256), nullable=False),
    )
    op.create_index("ix_app_employees_full_name", "app_employees", ["full_name"])

    op.create_table(
        "app_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("name", sa.String(length=512), nullable=False),
        sa.Column("sku", sa.String(length=128), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=True),
        sa.UniqueConstraint("sku", "name", name="uq_app_items_sku_name"),
        sa.CheckConstraint(
            "category IS NULL OR category IN ('consumables', 'supply', 'equipment')",
            name="ck_app_items_category",
        ),
    )
    op.create_index("ix_app_items_name", "app_items", ["name"])
    op.create_index("ix_app_items_sku", "app_items", ["sku"])

    op.create_table(
        "app_site_employees",
        sa.Column("site_id", sa.String(length=36), sa.ForeignKey("app_sites.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "employee_id", sa.String(length=36), sa.ForeignKey("app_employees.id", ondelete="CASCADE"), primary_key=True
        ),
    )

    op.create_table(
        "app_site_items",
        sa.Column("site_id", sa.String(length=36), sa.ForeignKey("app_sites.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("item_id", sa.String(length=36), sa.ForeignKey("app_items.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("image_path", sa.String(length=512), nullable=True),
        sa.Column("par", sa.Integer(), nullable=True),
        sa.CheckConstraint("par IS NULL OR par >= 0", name="ck_app_site_items_par"),
    )
    op.create_index("ix_app_site_items_item", "app_site_items", ["item_id"])


def downgrade():
    op.drop_index("ix_app_site_items_item", table_name="app_site_items")
    op.drop_table("app_site_items")
    op.drop_table("app_site_employees")
    op.drop_index("ix_app_items_sku", table_name="app_items")
    op.drop_index("ix_app_items_name", table_name="app_items")
    op.drop_table("app_items")
    op.drop_index("ix_app_employees_full_name", table_name="app_employees")
    op.drop_table("app_employees")
    op.drop_index("ix_app_sites_name", table_name="app_sites")
    op.drop_table("app_sites")
