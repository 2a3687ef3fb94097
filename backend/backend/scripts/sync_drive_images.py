"""Upload item images from per-site Drive folders and link them by SKU."""

from __future__ import annotations

import argparse
import logging

from app.db.session import SessionLocal
from scripts._runner import require_env, run, setup_logging
from services.catalog.drive import DriveImageSource, build_drive_service
from services.catalog.images import sync_images
from services.catalog.storage import ImageStore

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Sync item images from Google Drive")
    parser.add_argument("--linked-only", action="store_true", help="skip files whose SKU is not at the site")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    setup_logging(args.verbose)

    env = require_env("DRIVE_FOLDER_ID", "GOOGLE_CREDENTIALS_JSON")
    source = DriveImageSource(build_drive_service(env["GOOGLE_CREDENTIALS_JSON"]), env["DRIVE_FOLDER_ID"])

    db = SessionLocal()
    try:
        stats = sync_images(db, source, ImageStore(), upload_unmatched=not args.linked_only)
    finally:
        db.close()

    logger.info(
        "Drive sync complete. uploaded=%d linked=%d unlinked=%d skipped_files=%d skipped_folders=%d",
        stats.uploaded, stats.linked, stats.unlinked, stats.skipped_files, len(stats.skipped_folders),
    )
    return 0


if __name__ == "__main__":
    run(main)
