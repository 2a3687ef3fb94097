"""
Seed from the legacy workbooks.

Supply workbook: one sheet per site; item rows follow the row whose first
cell is "ITEM", columns [name, sku].
Staff workbook: first sheet, first column, cells "Full Name - Site Name".
"""

from __future__ import annotations

import argparse
import logging

import openpyxl

from app.db.session import SessionLocal
from scripts._runner import run, setup_logging
from services.catalog.reconciler import Reconciler

logger = logging.getLogger(__name__)

STAFF_SEPARATOR = " - "


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def supply_sheets(path: str) -> list[tuple[str, list[tuple[str, str]]]]:
    """[(site name, [(name, sku), ...]), ...] in sheet order."""
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        out = []
        for ws in wb.worksheets:
            rows = [[_text(c) for c in r] for r in ws.iter_rows(values_only=True)]
            start = next((i + 1 for i, r in enumerate(rows) if r and r[0] == "ITEM"), 0)
            items = []
            for r in rows[start:]:
                if not r or not r[0]:
                    continue
                items.append((r[0], r[1] if len(r) > 1 else ""))
            out.append((ws.title, items))
        return out
    finally:
        wb.close()


def staff_pairs(path: str) -> list[tuple[str, str]]:
    """[(full name, site name), ...] from the staff workbook."""
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        pairs = []
        for r in wb.worksheets[0].iter_rows(values_only=True):
            cell = _text(r[0]) if r else ""
            if STAFF_SEPARATOR not in cell:
                if cell:
                    logger.info("skip staff cell without site: %r", cell)
                continue
            full_name, site_name = cell.split(STAFF_SEPARATOR, 1)
            pairs.append((full_name.strip(), site_name.strip()))
        return pairs
    finally:
        wb.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed from the supply list and staff workbooks")
    parser.add_argument("--supply", default="Supply List as of 7_31_25.xlsx")
    parser.add_argument("--staff", default="Job Site Staff.xlsx")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    setup_logging(args.verbose)

    db = SessionLocal()
    try:
        rec = Reconciler(db)
        sites = items = employees = 0
        for site_name, rows in supply_sheets(args.supply):
            site_id = rec.resolve_site(site_name)
            sites += 1
            for name, sku in rows:
                rec.link_site_item(site_id, rec.resolve_item(sku, name))
                items += 1
        for full_name, site_name in staff_pairs(args.staff):
            site_id = rec.resolve_site(site_name)
            rec.link_site_employee(site_id, rec.resolve_employee(full_name))
            employees += 1
    finally:
        db.close()

    logger.info("Imported %d sites, %d items, %d employees", sites, items, employees)
    return 0


if __name__ == "__main__":
    run(main)
