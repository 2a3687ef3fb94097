"""
Ordering catalog tables.

Rules:
- Site names are not unique in the table; lookups dedupe on a normalized key.
- Items are identified by (sku, name); sku may be NULL.
- Link tables use composite primary keys so duplicate inserts can be ignored.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt


CATEGORIES = ("consumables", "supply", "equipment")


class Site(Base, HasId, HasCreatedAt):
    __tablename__ = "app_sites"

    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)

    employee_links: Mapped[list["SiteEmployee"]] = relationship(back_populates="site", passive_deletes=True)
    item_links: Mapped[list["SiteItem"]] = relationship(back_populates="site", passive_deletes=True)


class Employee(Base, HasId, HasCreatedAt):
    __tablename__ = "app_employees"

    # Not unique: the same literal name may be reused across sites.
    full_name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)


class Item(Base, HasId, HasCreatedAt):
    __tablename__ = "app_items"
    __table_args__ = (
        UniqueConstraint("sku", "name", name="uq_app_items_sku_name"),
        CheckConstraint(
            "category IS NULL OR category IN ('consumables', 'supply', 'equipment')",
            name="ck_app_items_category",
        ),
    )

    name: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    sku: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    category: Mapped[str | None] = mapped_column(String(32), nullable=True)  # consumables|supply|equipment


class SiteEmployee(Base):
    __tablename__ = "app_site_employees"

    site_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_sites.id", ondelete="CASCADE"), primary_key=True)
    employee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("app_employees.id", ondelete="CASCADE"), primary_key=True
    )

    site: Mapped[Site] = relationship(back_populates="employee_links")
    employee: Mapped[Employee] = relationship()


class SiteItem(Base):
    __tablename__ = "app_site_items"
    __table_args__ = (
        CheckConstraint("par IS NULL OR par >= 0", name="ck_app_site_items_par"),
    )

    site_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_sites.id", ondelete="CASCADE"), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(36), ForeignKey("app_items.id", ondelete="CASCADE"), primary_key=True)

    # Site-scoped attributes; never touched by the insert-or-ignore path.
    image_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    par: Mapped[int | None] = mapped_column(Integer, nullable=True)

    site: Mapped[Site] = relationship(back_populates="item_links")
    item: Mapped[Item] = relationship()


Index("ix_app_site_items_item", SiteItem.item_id)
