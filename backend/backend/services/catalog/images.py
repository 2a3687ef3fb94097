"""
Item image sync.

Images live in one folder per site. A file belongs to the item whose SKU is
embedded in its name:

    PRO_<SKU>_product_<SKU>_usn.webp
    PRO_<SKU>_product_<SKU>_usn (2).png
    PRO_<SKU>.jpg

Folder names are matched to sites on their normalized form, after dropping
annotations such as "(old)" or "COMPLETED". Matched files are uploaded under
"<normalized site>/<filename>" and the site's link to the item gets the new
image_path through an explicit attribute update.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from sqlalchemy.orm import Session

from app.db.models.catalog import Item, Site, SiteItem
from services.catalog.reconciler import Reconciler
from services.catalog.rules import normalize_site_name
from services.catalog.storage import ImageStore, site_image_key

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ("webp", "png", "jpg", "jpeg")

SKU_FILENAME_RE = re.compile(
    r"^PRO_([A-Za-z0-9-]+)(?:_product_[A-Za-z0-9-]+(?:_usn)?(?: \(\d+\))?)?\.(?:webp|png|jpg|jpeg)$",
    re.IGNORECASE,
)

_PARENS_RE = re.compile(r"\([^)]*\)")
_MARKERS_RE = re.compile(r"\bCOMPLETED\b|\bN-?A IN HD SUPPLY\b", re.IGNORECASE)


def sku_from_filename(filename: str) -> str | None:
    m = SKU_FILENAME_RE.match(filename or "")
    if not m:
        return None
    return m.group(1).upper()


def is_image_filename(filename: str) -> bool:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    return ext in IMAGE_EXTENSIONS


def clean_site_folder_name(folder_name: str) -> str:
    without_parens = _PARENS_RE.sub(" ", folder_name or "")
    return _MARKERS_RE.sub(" ", without_parens)


def site_folder_key(folder_name: str) -> str:
    return normalize_site_name(clean_site_folder_name(folder_name))


class ImageSource(Protocol):
    def folders(self) -> Iterable[tuple[str, object]]: ...

    def files(self, folder: object) -> Iterable[tuple[str, object]]: ...

    def read(self, handle: object) -> bytes: ...


class LocalImageSource:
    """Site folders under a local directory."""

    def __init__(self, root: str):
        self.root = root

    def folders(self):
        for entry in sorted(os.scandir(self.root), key=lambda e: e.name):
            if entry.is_dir():
                yield entry.name, entry.path

    def files(self, folder):
        for entry in sorted(os.scandir(folder), key=lambda e: e.name):
            if entry.is_file():
                yield entry.name, entry.path

    def read(self, handle) -> bytes:
        with open(handle, "rb") as f:
            return f.read()


@dataclass
class SyncStats:
    uploaded: int = 0
    linked: int = 0
    unlinked: int = 0
    skipped_files: int = 0
    skipped_folders: list[str] = field(default_factory=list)


def _site_index(db: Session) -> dict[str, str]:
    index: dict[str, str] = {}
    for site_id, name in db.query(Site.id, Site.name).order_by(Site.created_at.asc()).all():
        index.setdefault(normalize_site_name(name), site_id)
    return index


def _site_sku_index(db: Session, site_id: str) -> dict[str, str]:
    rows = (
        db.query(Item.sku, Item.id)
        .join(SiteItem, SiteItem.item_id == Item.id)
        .filter(SiteItem.site_id == site_id, Item.sku.isnot(None))
        .order_by(Item.created_at.asc())
        .all()
    )
    index: dict[str, str] = {}
    for sku, item_id in rows:
        index.setdefault(sku.upper(), item_id)
    return index


def sync_images(
    db: Session,
    source: ImageSource,
    store: ImageStore,
    *,
    skip_folders: Iterable[str] = (),
    upload_unmatched: bool = True,
) -> SyncStats:
    """Upload site-folder images and link them to the site's items by SKU."""
    stats = SyncStats()
    reconciler = Reconciler(db)
    sites = _site_index(db)
    skip = {s.strip() for s in skip_folders if s and s.strip()}

    for folder_name, folder in source.folders():
        norm_site = site_folder_key(folder_name)
        site_id = sites.get(norm_site)
        if not site_id:
            logger.info("skip site folder without match: %s", folder_name)
            stats.skipped_folders.append(folder_name)
            continue
        if folder_name in skip:
            logger.info("skip requested location: %s", folder_name)
            stats.skipped_folders.append(folder_name)
            continue

        skus = _site_sku_index(db, site_id)
        for filename, handle in source.files(folder):
            if not is_image_filename(filename):
                stats.skipped_files += 1
                continue
            sku = sku_from_filename(filename)
            if not sku:
                logger.info("skip file with invalid naming pattern: %s", filename)
                stats.skipped_files += 1
                continue

            item_id = skus.get(sku)
            if not item_id and not upload_unmatched:
                stats.skipped_files += 1
                continue

            image_path = store.put(site_image_key(norm_site, filename), source.read(handle))
            stats.uploaded += 1

            if item_id:
                reconciler.set_site_item_attrs(site_id, item_id, image_path=image_path)
                stats.linked += 1
                logger.info("uploaded and linked %s %s", folder_name, filename)
            else:
                stats.unlinked += 1
                logger.info("uploaded (no link, sku %s not at site): %s %s", sku, folder_name, filename)

    return stats
