from __future__ import annotations

from sqlalchemy.orm import Session

from app.db.models.catalog import Employee, Item, Site, SiteEmployee, SiteItem

CATEGORY_ORDER = {"consumables": 0, "supply": 1, "equipment": 2}


def list_sites(db: Session) -> list[dict]:
    rows = db.query(Site).order_by(Site.name.asc()).all()
    return [{"id": r.id, "name": r.name} for r in rows]


def site_employees(db: Session, site_id: str) -> list[dict]:
    rows = (
        db.query(Employee)
        .join(SiteEmployee, SiteEmployee.employee_id == Employee.id)
        .filter(SiteEmployee.site_id == site_id)
        .order_by(Employee.full_name.asc())
        .all()
    )
    return [{"id": r.id, "full_name": r.full_name} for r in rows]


def site_items(db: Session, site_id: str) -> list[dict]:
    """Items linked to a site: consumables, then supply, then equipment; by name within each."""
    rows = (
        db.query(Item, SiteItem)
        .join(SiteItem, SiteItem.item_id == Item.id)
        .filter(SiteItem.site_id == site_id)
        .all()
    )
    out = [
        {
            "id": item.id,
            "name": item.name,
            "sku": item.sku,
            "category": item.category or "supply",
            "image_path": link.image_path,
            "par": link.par,
        }
        for item, link in rows
    ]
    out.sort(key=lambda r: (CATEGORY_ORDER.get(r["category"], 1), r["name"] or ""))
    return out


def group_by_category(items: list[dict]) -> dict[str, list[dict]]:
    grouped: dict[str, list[dict]] = {k: [] for k in CATEGORY_ORDER}
    for it in items:
        grouped.setdefault(it["category"] or "supply", []).append(it)
    return grouped
