"""Upload item images from LOCAL_IMAGES_DIR/<site folder>/ and link them by SKU."""

from __future__ import annotations

import argparse
import logging
import os

from app.db.session import SessionLocal
from scripts._runner import require_env, run, setup_logging
from services.catalog.images import LocalImageSource, sync_images
from services.catalog.storage import ImageStore

logger = logging.getLogger(__name__)

SKIP_SITE_FOLDERS = [s.strip() for s in os.getenv("SKIP_SITE_FOLDERS", "").split(",") if s.strip()]


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync item images from a local directory")
    parser.add_argument("--skip", action="append", default=[], help="site folder to skip (repeatable)")
    parser.add_argument("--linked-only", action="store_true", help="skip files whose SKU is not at the site")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    setup_logging(args.verbose)

    root = require_env("LOCAL_IMAGES_DIR")["LOCAL_IMAGES_DIR"]
    if not os.path.isdir(root):
        logger.error("LOCAL_IMAGES_DIR is not a directory: %s", root)
        return 1

    db = SessionLocal()
    try:
        stats = sync_images(
            db,
            LocalImageSource(root),
            ImageStore(),
            skip_folders=SKIP_SITE_FOLDERS + args.skip,
            upload_unmatched=not args.linked_only,
        )
    finally:
        db.close()

    logger.info(
        "Local sync complete. uploaded=%d linked=%d unlinked=%d skipped_files=%d skipped_folders=%d",
        stats.uploaded, stats.linked, stats.unlinked, stats.skipped_files, len(stats.skipped_folders),
    )
    return 0


if __name__ == "__main__":
    run(main)
