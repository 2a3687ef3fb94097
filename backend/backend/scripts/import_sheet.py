"""Bulk import a site/item spreadsheet from the command line."""

from __future__ import annotations

import argparse
import logging
import os

from app.db.session import SessionLocal
from scripts._runner import run, setup_logging
from services.catalog.importer import import_file
from services.catalog.reconciler import Reconciler
from services.catalog.storage import ImageStore

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Import sites and items from .xlsx or .csv")
    parser.add_argument("path")
    parser.add_argument("--site", default=None, help="reject rows for any other site")
    parser.add_argument("--images", nargs="*", default=[], help="image files named <SKU>.<ext>")
    parser.add_argument("--require-clean", action="store_true", help="apply nothing if any row is invalid")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    setup_logging(args.verbose)

    with open(args.path, "rb") as f:
        content = f.read()
    image_files = []
    for p in args.images:
        with open(p, "rb") as f:
            image_files.append((os.path.basename(p), f.read()))

    db = SessionLocal()
    try:
        result = import_file(
            Reconciler(db),
            os.path.basename(args.path),
            content,
            expected_site=args.site,
            image_files=image_files,
            store=ImageStore(),
            require_clean=args.require_clean,
        )
    finally:
        db.close()

    for err in result.errors:
        logger.warning("%s", err)
    for msg in result.image_errors:
        logger.warning("%s", msg)
    logger.info(
        "applied=%d skipped=%d images_linked=%d errors=%d",
        result.applied, result.skipped, result.images_linked, len(result.errors),
    )
    return 1 if result.errors and result.applied == 0 else 0


if __name__ == "__main__":
    run(main)
