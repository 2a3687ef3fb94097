from __future__ import annotations

import io
from dataclasses import dataclass

from openpyxl import Workbook
from sqlalchemy.orm import Session

from app.db.models.catalog import Item, Site, SiteItem

LISTING_COLUMNS = ["SKU", "Item Name", "Category", "Site(s)"]


@dataclass
class ReportRow:
    item_id: str
    sku: str | None
    name: str
    category: str | None
    site_name: str | None
    image_path: str | None


def collect_rows(db: Session) -> list[ReportRow]:
    """Every site-item link with its item and site."""
    rows = (
        db.query(Item, SiteItem.image_path, Site.name)
        .join(SiteItem, SiteItem.item_id == Item.id)
        .join(Site, Site.id == SiteItem.site_id)
        .order_by(Site.name.asc(), Item.name.asc())
        .all()
    )
    return [
        ReportRow(
            item_id=item.id,
            sku=item.sku,
            name=item.name,
            category=item.category,
            site_name=site_name,
            image_path=image_path,
        )
        for item, image_path, site_name in rows
    ]


def _pct(part: int, total: int) -> str:
    if not total:
        return "0.0%"
    return f"{part / total * 100:.1f}%"


def summarize(rows: list[ReportRow]) -> dict:
    with_images = sum(1 for r in rows if r.image_path)
    by_category: dict[str, dict[str, int]] = {}
    for r in rows:
        stats = by_category.setdefault(r.category or "Unknown", {"total": 0, "with_images": 0, "without_images": 0})
        stats["total"] += 1
        if r.image_path:
            stats["with_images"] += 1
        else:
            stats["without_images"] += 1
    return {
        "total": len(rows),
        "with_images": with_images,
        "without_images": len(rows) - with_images,
        "coverage": _pct(with_images, len(rows)),
        "by_category": by_category,
    }


def build_report(rows: list[ReportRow]) -> bytes:
    missing = [r for r in rows if not r.image_path]
    present = [r for r in rows if r.image_path]

    wb = Workbook()
    ws = wb.active
    ws.title = "Missing Images"
    ws.append(LISTING_COLUMNS)
    for r in missing:
        ws.append([r.sku, r.name, r.category or "Unknown", r.site_name or "Multiple sites"])

    if present:
        ws = wb.create_sheet("Items With Images")
        ws.append(LISTING_COLUMNS + ["Image Path"])
        for r in present:
            ws.append([r.sku, r.name, r.category or "Unknown", r.site_name or "Multiple sites", r.image_path])

    s = summarize(rows)
    ws = wb.create_sheet("Summary")
    ws.append(["Total Items", s["total"]])
    ws.append(["Items With Images", s["with_images"]])
    ws.append(["Items Without Images", s["without_images"]])
    ws.append(["Coverage Percentage", s["coverage"]])
    ws.append([])
    ws.append(["Categories Breakdown:"])
    ws.append(["Category", "Total", "With Images", "Without Images", "Coverage %"])
    for category, stats in s["by_category"].items():
        ws.append([
            category,
            stats["total"],
            stats["with_images"],
            stats["without_images"],
            _pct(stats["with_images"], stats["total"]),
        ])

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
