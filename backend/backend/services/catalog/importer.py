"""
Bulk spreadsheet import.

Expected layout (first sheet, row 1 is a header):

    Site Location | Item SKU | Item Name | Type (consumable|supply|equipment)

Validation problems are collected per row and never raised; by default the
valid rows are applied and the rest skipped. Callers that want all-or-nothing
pass require_clean=True.
"""

from __future__ import annotations

import csv
import io
import logging
import os
import zipfile
from dataclasses import dataclass, field
from typing import Iterable

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from services.catalog.reconciler import CatalogValidationError, Reconciler
from services.catalog.rules import category_from_type
from services.catalog.storage import ImageStore, upload_key

logger = logging.getLogger(__name__)

SPREADSHEET_EXTENSIONS = (".xlsx", ".xlsm", ".csv")
IMAGE_UPLOAD_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")
VALID_TYPES = ("consumable", "supply", "equipment")


@dataclass
class ImportRow:
    site_location: str
    item_sku: str
    item_name: str
    type: str
    row_number: int


@dataclass
class RowError:
    row_number: int  # 0 = whole file
    field: str
    message: str

    def __str__(self) -> str:
        prefix = f"Row {self.row_number}, " if self.row_number > 0 else ""
        return f"{prefix}{self.field}: {self.message}"


@dataclass
class ImportImage:
    filename: str
    sku: str
    content: bytes


@dataclass
class ImportResult:
    applied: int = 0
    skipped: int = 0
    images_linked: int = 0
    errors: list[RowError] = field(default_factory=list)
    image_errors: list[str] = field(default_factory=list)


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _read_table(filename: str, content: bytes) -> list[list]:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in SPREADSHEET_EXTENSIONS:
        raise CatalogValidationError("Invalid file type. Please upload an Excel (.xlsx) or CSV file.")
    try:
        if ext == ".csv":
            return [row for row in csv.reader(io.StringIO(content.decode("utf-8-sig")))]
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        try:
            return [list(r) for r in wb.worksheets[0].iter_rows(values_only=True)]
        finally:
            wb.close()
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, csv.Error) as e:
        raise CatalogValidationError(
            "Failed to parse file. Please ensure it's a valid Excel or CSV file."
        ) from e


def read_rows(filename: str, content: bytes) -> list[ImportRow]:
    table = _read_table(filename, content)
    rows: list[ImportRow] = []
    # Row numbers are spreadsheet rows: the header is row 1.
    for row_number, raw in enumerate(table[1:], start=2):
        cells = [_cell(c) for c in raw]
        if not any(cells):
            continue
        cells += [""] * (4 - len(cells))
        rows.append(
            ImportRow(
                site_location=cells[0],
                item_sku=cells[1],
                item_name=cells[2],
                type=cells[3].lower(),
                row_number=row_number,
            )
        )
    return rows


def validate_rows(rows: Iterable[ImportRow], expected_site: str | None = None) -> list[RowError]:
    errors: list[RowError] = []
    for row in rows:
        if not row.site_location:
            errors.append(RowError(row.row_number, "Site Location", "Site location is required"))
        if not row.item_sku:
            errors.append(RowError(row.row_number, "Item SKU", "Item SKU is required"))
        if not row.item_name:
            errors.append(RowError(row.row_number, "Item Name", "Item name is required"))
        if not row.type:
            errors.append(RowError(row.row_number, "Type", "Type is required"))
        elif row.type not in VALID_TYPES:
            errors.append(RowError(row.row_number, "Type", f"Type must be one of: {', '.join(VALID_TYPES)}"))
        if expected_site and row.site_location.lower() != expected_site.strip().lower():
            errors.append(
                RowError(
                    row.row_number,
                    "Site Location",
                    f'Site location "{row.site_location}" doesn\'t match current site "{expected_site}"',
                )
            )
    return errors


def match_images(rows: list[ImportRow], files: Iterable[tuple[str, bytes]]) -> tuple[list[ImportImage], list[str]]:
    """Pair uploaded images with imported rows; the file name stem is the SKU."""
    skus = {r.item_sku.lower() for r in rows if r.item_sku}
    images: list[ImportImage] = []
    seen: set[str] = set()
    problems: list[str] = []
    for filename, content in files:
        stem, ext = os.path.splitext(filename or "")
        if ext.lower() not in IMAGE_UPLOAD_EXTENSIONS:
            problems.append(f"{filename}: Invalid file type. Only JPG, PNG, and WEBP are supported.")
            continue
        if not stem:
            problems.append(f"{filename}: Could not extract SKU from filename.")
            continue
        if stem.lower() not in skus:
            problems.append(f'{filename}: SKU "{stem}" does not match any imported items.')
            continue
        if stem.lower() in seen:
            problems.append(f'{filename}: Duplicate SKU "{stem}" already selected.')
            continue
        seen.add(stem.lower())
        images.append(ImportImage(filename=filename, sku=stem, content=content))
    return images, problems


def apply_rows(
    reconciler: Reconciler,
    rows: list[ImportRow],
    errors: list[RowError] | None = None,
    *,
    images: Iterable[ImportImage] = (),
    store: ImageStore | None = None,
    require_clean: bool = False,
    site_id: str | None = None,
) -> ImportResult:
    """Apply valid rows. With site_id every row links to that site; its
    site column has already been checked against the site name."""
    errors = list(errors or [])
    result = ImportResult(errors=errors)
    if require_clean and errors:
        result.skipped = len(rows)
        return result

    bad_rows = {e.row_number for e in errors}
    by_sku = {img.sku.lower(): img for img in images}
    uploaded: dict[str, str] = {}

    for row in rows:
        if row.row_number in bad_rows:
            result.skipped += 1
            continue
        row_site_id = site_id or reconciler.resolve_site(row.site_location)
        item_id = reconciler.resolve_item(row.item_sku, row.item_name, category_from_type(row.type))

        image_path = None
        img = by_sku.get(row.item_sku.lower())
        if img is not None and store is not None:
            if img.sku.lower() not in uploaded:
                uploaded[img.sku.lower()] = store.put(upload_key(row.item_sku, img.filename), img.content)
            image_path = uploaded[img.sku.lower()]

        reconciler.link_site_item(row_site_id, item_id, image_path=image_path)
        if image_path:
            result.images_linked += 1
        result.applied += 1

    logger.info("import applied %d rows, skipped %d", result.applied, result.skipped)
    return result


def import_file(
    reconciler: Reconciler,
    filename: str,
    content: bytes,
    *,
    expected_site: str | None = None,
    image_files: Iterable[tuple[str, bytes]] = (),
    store: ImageStore | None = None,
    require_clean: bool = False,
    site_id: str | None = None,
) -> ImportResult:
    try:
        rows = read_rows(filename, content)
    except CatalogValidationError as e:
        return ImportResult(errors=[RowError(0, "File", str(e))])

    errors = validate_rows(rows, expected_site)
    images, image_problems = match_images(rows, image_files)
    result = apply_rows(
        reconciler,
        rows,
        errors,
        images=images,
        store=store,
        require_clean=require_clean,
        site_id=site_id,
    )
    result.image_errors = image_problems
    return result
