"""
Seed sites, employees and items from JSON exports.

    python -m scripts.seed_app --supplies site_supplies_aligned.json [--employees site_employees.json]

employees: [{"site": "...", "employees": ["Full Name", ...]}]
supplies:  [{"site": "...", "supplies": [{"item_number": "<item name>", "supply": "<sku>"}]}]

The aligned supplies export carries the item name under "item_number" and the
SKU under "supply".
"""

from __future__ import annotations

import argparse
import json
import logging

from sqlalchemy import func

from app.db.models.catalog import Employee, Item, Site
from app.db.session import SessionLocal
from scripts._runner import run, setup_logging
from services.catalog.reconciler import Reconciler
from services.catalog.rules import normalize_site_name

logger = logging.getLogger(__name__)


def _load(path: str) -> list[dict]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list")
    return data


def is_header_echo(row: dict) -> bool:
    name = str(row.get("item_number") or "").strip().lower()
    sku = str(row.get("supply") or "").strip().lower()
    return name == "item" and "item number" in sku


def supply_rows(entry: dict) -> list[tuple[str, str]]:
    """(sku, name) pairs for one site entry, minus blanks and header echoes."""
    out = []
    for row in entry.get("supplies") or []:
        name = str(row.get("item_number") or "").strip()
        sku = str(row.get("supply") or "").strip()
        if not name or not sku or is_header_echo(row):
            continue
        out.append((sku, name))
    return out


def seed(db, employees: list[dict], supplies: list[dict]) -> dict:
    rec = Reconciler(db)
    counts = {"site_employee_links": 0, "site_item_links": 0}

    for entry in employees:
        site_id = rec.resolve_site(entry["site"])
        for full_name in entry.get("employees") or []:
            if not str(full_name).strip():
                continue
            rec.link_site_employee(site_id, rec.resolve_employee(full_name))
            counts["site_employee_links"] += 1

    # Every existing site plus every site named in the supplies file.
    names: dict[str, str] = {}
    for (name,) in db.query(Site.name).order_by(Site.created_at.asc()).all():
        names.setdefault(normalize_site_name(name), name)
    for entry in employees:
        names.setdefault(normalize_site_name(entry["site"]), entry["site"])
    by_norm: dict[str, list[tuple[str, str]]] = {}
    for entry in supplies:
        norm = normalize_site_name(entry["site"])
        names.setdefault(norm, entry["site"])
        by_norm[norm] = supply_rows(entry)

    for norm, site_name in names.items():
        rows = by_norm.get(norm) or []
        if not rows:
            continue
        site_id = rec.resolve_site(site_name)
        for sku, name in rows:
            rec.link_site_item(site_id, rec.resolve_item(sku, name))
            counts["site_item_links"] += 1

    counts["sites"] = db.query(func.count(Site.id)).scalar()
    counts["employees"] = db.query(func.count(Employee.id)).scalar()
    counts["items"] = db.query(func.count(Item.id)).scalar()
    return counts


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed sites, employees and items from JSON")
    parser.add_argument("--supplies", default="site_supplies_aligned.json", help="site supplies JSON")
    parser.add_argument("--employees", default=None, help="optional site employees JSON")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    setup_logging(args.verbose)

    employees = _load(args.employees) if args.employees else []
    supplies = _load(args.supplies)

    db = SessionLocal()
    try:
        c = seed(db, employees, supplies)
    finally:
        db.close()

    logger.info(
        "Seed complete. Sites=%d, Employees=%d, Items=%d, Links: site_employees=%d, site_items=%d",
        c["sites"], c["employees"], c["items"], c["site_employee_links"], c["site_item_links"],
    )
    return 0


if __name__ == "__main__":
    run(main)
