import io

import openpyxl

from services.catalog.reconciler import Reconciler
from services.reports.missing_images import build_report, collect_rows, summarize


def _seed(db):
    rec = Reconciler(db)
    site = rec.resolve_site("Main Campus")
    rec.link_site_item(site, rec.resolve_item("A1", "Mop Head"), image_path="item-images/a1.png")
    rec.link_site_item(site, rec.resolve_item("T1", "Paper Towel"))
    rec.link_site_item(site, rec.resolve_item("V1", "Vacuum"))


def test_summary(db):
    _seed(db)
    s = summarize(collect_rows(db))
    assert (s["total"], s["with_images"], s["without_images"]) == (3, 1, 2)
    assert s["coverage"] == "33.3%"
    assert s["by_category"]["supply"] == {"total": 1, "with_images": 1, "without_images": 0}
    assert s["by_category"]["equipment"]["without_images"] == 1


def test_report_workbook(db):
    _seed(db)
    wb = openpyxl.load_workbook(io.BytesIO(build_report(collect_rows(db))))
    assert wb.sheetnames == ["Missing Images", "Items With Images", "Summary"]

    missing = list(wb["Missing Images"].iter_rows(values_only=True))
    assert missing[0] == ("SKU", "Item Name", "Category", "Site(s)")
    assert {r[0] for r in missing[1:]} == {"T1", "V1"}

    with_images = list(wb["Items With Images"].iter_rows(values_only=True))
    assert with_images[1] == ("A1", "Mop Head", "supply", "Main Campus", "item-images/a1.png")

    summary = list(wb["Summary"].iter_rows(values_only=True))
    assert summary[0][:2] == ("Total Items", 3)
    assert summary[3][:2] == ("Coverage Percentage", "33.3%")


def test_report_without_images_has_no_with_images_sheet():
    wb = openpyxl.load_workbook(io.BytesIO(build_report([])))
    assert wb.sheetnames == ["Missing Images", "Summary"]
