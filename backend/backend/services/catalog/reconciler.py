"""
Catalog reconciliation: find-or-create-or-correct for sites, employees, items
and their site links.

Every operation is one idempotent step that commits on success. Store errors
(SQLAlchemyError) are re-raised unchanged after a rollback; nothing retries.
A lookup that finds nothing is not an error, it is what triggers creation.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Literal

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.catalog import CATEGORIES, Employee, Item, Site, SiteEmployee, SiteItem
from services.catalog.rules import categorize, normalize_site_name

logger = logging.getLogger(__name__)

_UNSET = object()


class CatalogValidationError(ValueError):
    pass


@dataclass
class ReconcileCache:
    """Per-run memo of resolved ids. Lives as long as its Reconciler."""

    sites: dict[str, str] = field(default_factory=dict)  # normalized name -> id
    employees: dict[str, str] = field(default_factory=dict)  # literal full name -> id
    items: dict[tuple[str | None, str], str] = field(default_factory=dict)  # (sku, name) -> id

    def forget_site(self, site_id: str) -> None:
        for key in [k for k, v in self.sites.items() if v == site_id]:
            del self.sites[key]

    def forget_item(self, item_id: str) -> None:
        for key in [k for k, v in self.items.items() if v == item_id]:
            del self.items[key]


@dataclass(frozen=True)
class MatchPolicy:
    # "exact": reuse a site row only on a literal name match.
    # "ignore_case": reuse on a case-insensitive match of the trimmed name.
    site_lookup: Literal["exact", "ignore_case"] = "exact"
    # Fix rows whose name column holds the sku we are looking for.
    repair_sku_as_name: bool = True


def _require(value: str | None, label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise CatalogValidationError(f"{label} is required")
    return cleaned


def _clean_sku(sku: str | None) -> str | None:
    if sku is None:
        return None
    cleaned = str(sku).strip()
    return cleaned or None


def _check_category(category: str | None) -> None:
    if category is not None and category not in CATEGORIES:
        raise CatalogValidationError(f"category must be one of: {', '.join(CATEGORIES)}")


def _check_par(par: int | None) -> None:
    if par is not None and (not isinstance(par, int) or isinstance(par, bool) or par < 0):
        raise CatalogValidationError("par must be an integer >= 0")


def insert_ignore(db: Session, model, values: dict, key: list[str]) -> bool:
    """INSERT ... ON CONFLICT DO NOTHING. Returns True when a row was written."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values).on_conflict_do_nothing(index_elements=key)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values).on_conflict_do_nothing(index_elements=key)
    else:
        if db.get(model, tuple(values[k] for k in key)) is not None:
            return False
        db.add(model(**values))
        db.flush()
        return True
    return db.execute(stmt).rowcount == 1


class Reconciler:
    def __init__(self, db: Session, cache: ReconcileCache | None = None, policy: MatchPolicy | None = None):
        self.db = db
        self.cache = cache if cache is not None else ReconcileCache()
        self.policy = policy or MatchPolicy()

    @contextmanager
    def _unit(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    # ---- Sites ----
    def resolve_site(self, name: str) -> str:
        name = _require(name, "site name")
        key = normalize_site_name(name)
        cached = self.cache.sites.get(key)
        if cached is not None:
            logger.debug("site %r served from cache as %s", name, cached)
            return cached

        with self._unit():
            q = self.db.query(Site.id)
            if self.policy.site_lookup == "ignore_case":
                q = q.filter(func.lower(Site.name) == name.lower())
            else:
                q = q.filter(Site.name == name)
            found = q.order_by(Site.created_at.asc(), Site.id.asc()).first()
            if found:
                site_id = found[0]
            else:
                site = Site(name=name)
                self.db.add(site)
                self.db.flush()
                site_id = site.id
                logger.info("created site %r as %s", name, site_id)

        self.cache.sites[key] = site_id
        return site_id

    def delete_site(self, site_id: str) -> bool:
        """Delete a site and its links; items left without any site link go too."""
        with self._unit():
            item_ids = [r[0] for r in self.db.query(SiteItem.item_id).filter(SiteItem.site_id == site_id).all()]
            self.db.query(SiteEmployee).filter(SiteEmployee.site_id == site_id).delete(synchronize_session=False)
            self.db.query(SiteItem).filter(SiteItem.site_id == site_id).delete(synchronize_session=False)
            deleted = self.db.query(Site).filter(Site.id == site_id).delete(synchronize_session=False)
            orphans = [item_id for item_id in item_ids if self._delete_if_orphan(item_id)]

        self.cache.forget_site(site_id)
        for item_id in orphans:
            self.cache.forget_item(item_id)
        if deleted:
            logger.info("deleted site %s (%d orphaned items removed)", site_id, len(orphans))
        return deleted == 1

    # ---- Employees ----
    def resolve_employee(self, full_name: str) -> str:
        full_name = _require(full_name, "employee name")
        cached = self.cache.employees.get(full_name)
        if cached is not None:
            return cached

        with self._unit():
            found = (
                self.db.query(Employee.id)
                .filter(Employee.full_name == full_name)
                .order_by(Employee.created_at.asc(), Employee.id.asc())
                .first()
            )
            if found:
                employee_id = found[0]
            else:
                emp = Employee(full_name=full_name)
                self.db.add(emp)
                self.db.flush()
                employee_id = emp.id
                logger.info("created employee %r as %s", full_name, employee_id)

        self.cache.employees[full_name] = employee_id
        return employee_id

    def link_site_employee(self, site_id: str, employee_id: str) -> bool:
        with self._unit():
            return insert_ignore(
                self.db,
                SiteEmployee,
                {"site_id": site_id, "employee_id": employee_id},
                ["site_id", "employee_id"],
            )

    def unlink_site_employee(self, site_id: str, employee_id: str) -> bool:
        with self._unit():
            n = (
                self.db.query(SiteEmployee)
                .filter(SiteEmployee.site_id == site_id, SiteEmployee.employee_id == employee_id)
                .delete(synchronize_session=False)
            )
        return n > 0

    # ---- Items ----
    def _find_item(self, sku: str | None, name: str) -> Item | None:
        q = self.db.query(Item).filter(Item.name == name)
        if sku is None:
            q = q.filter(Item.sku.is_(None))
        else:
            q = q.filter(Item.sku == sku)
        return q.order_by(Item.created_at.asc(), Item.id.asc()).first()

    def _find_sku_stored_as_name(self, sku: str) -> Item | None:
        return (
            self.db.query(Item)
            .filter(Item.name == sku)
            .order_by(Item.created_at.asc(), Item.id.asc())
            .first()
        )

    def resolve_item(self, sku: str | None, name: str, category: str | None = None) -> str:
        """Find an item by (sku, name), repair a sku-in-name row, or create one.

        A stored category is only filled in when empty; it is never replaced here.
        """
        sku = _clean_sku(sku)
        name = _require(name, "item name")
        _check_category(category)

        key = (sku, name)
        cached = self.cache.items.get(key)
        if cached is not None:
            logger.debug("item %r served from cache as %s", key, cached)
            return cached

        with self._unit():
            item = self._find_item(sku, name)
            if item is None and sku is not None and self.policy.repair_sku_as_name:
                item = self._find_sku_stored_as_name(sku)
                if item is not None:
                    logger.info(
                        "repairing item %s: sku %r -> %r, name %r -> %r",
                        item.id, item.sku, sku, item.name, name,
                    )
                    self.cache.forget_item(item.id)
                    item.sku = sku
                    item.name = name

            if item is None:
                item = Item(sku=sku, name=name, category=category or categorize(name, sku or ""))
                self.db.add(item)
                logger.info("created item %r (sku=%r, category=%s)", name, sku, item.category)
            elif category and not item.category:
                item.category = category

            self.db.flush()
            item_id = item.id

        self.cache.items[key] = item_id
        return item_id

    def update_item(
        self,
        item_id: str,
        *,
        name: str | None = None,
        sku=_UNSET,
        category: str | None = None,
    ) -> bool:
        """Explicit admin edit. The only path that overwrites a stored category."""
        _check_category(category)
        values: dict = {}
        if name is not None:
            values["name"] = _require(name, "item name")
        if sku is not _UNSET:
            values["sku"] = _clean_sku(sku)
        if category is not None:
            values["category"] = category
        if not values:
            return self.db.get(Item, item_id) is not None

        with self._unit():
            n = self.db.query(Item).filter(Item.id == item_id).update(values, synchronize_session=False)
        self.cache.forget_item(item_id)
        return n > 0

    # ---- Site items ----
    def link_site_item(
        self,
        site_id: str,
        item_id: str,
        *,
        image_path: str | None = None,
        par: int | None = None,
    ) -> bool:
        """Create the link if missing. Attributes on an existing link are changed
        by a separate explicit update, never by the insert itself.

        Returns True when the link was created.
        """
        _check_par(par)
        attrs = {}
        if image_path is not None:
            attrs["image_path"] = image_path
        if par is not None:
            attrs["par"] = par

        with self._unit():
            created = insert_ignore(
                self.db,
                SiteItem,
                {"site_id": site_id, "item_id": item_id, **attrs},
                ["site_id", "item_id"],
            )
            if not created and attrs:
                self._update_site_item(site_id, item_id, attrs)
        return created

    def _update_site_item(self, site_id: str, item_id: str, values: dict) -> int:
        return (
            self.db.query(SiteItem)
            .filter(SiteItem.site_id == site_id, SiteItem.item_id == item_id)
            .update(values, synchronize_session=False)
        )

    def set_site_item_attrs(self, site_id: str, item_id: str, *, image_path=_UNSET, par=_UNSET) -> bool:
        """Update image_path and/or par on an existing link. None clears a value.

        Returns False when no such link exists.
        """
        values: dict = {}
        if image_path is not _UNSET:
            values["image_path"] = image_path
        if par is not _UNSET:
            _check_par(par)
            values["par"] = par
        if not values:
            return self.db.get(SiteItem, (site_id, item_id)) is not None

        with self._unit():
            n = self._update_site_item(site_id, item_id, values)
        return n > 0

    def _delete_if_orphan(self, item_id: str) -> bool:
        # Single conditional DELETE, so the check and the delete see the same snapshot.
        still_linked = select(SiteItem.site_id).where(SiteItem.item_id == item_id).exists()
        stmt = delete(Item).where(Item.id == item_id, ~still_linked).execution_options(synchronize_session=False)
        result = self.db.execute(stmt)
        return result.rowcount == 1

    def remove_site_item(self, site_id: str, item_id: str) -> bool:
        """Unlink an item from a site. Returns True when the item itself was
        deleted because no other site referenced it."""
        with self._unit():
            (
                self.db.query(SiteItem)
                .filter(SiteItem.site_id == site_id, SiteItem.item_id == item_id)
                .delete(synchronize_session=False)
            )
            orphaned = self._delete_if_orphan(item_id)

        if orphaned:
            self.cache.forget_item(item_id)
            logger.info("removed orphaned item %s", item_id)
        return orphaned
