from __future__ import annotations

import argparse
import logging
import os

from app.db.session import SessionLocal
from scripts._runner import run, setup_logging
from services.reports.missing_images import build_report, collect_rows, summarize

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Write a workbook of site items with and without images")
    parser.add_argument("--out", default=os.path.join(os.getcwd(), "missing-images-report.xlsx"))
    args = parser.parse_args()
    setup_logging()

    db = SessionLocal()
    try:
        rows = collect_rows(db)
    finally:
        db.close()
    logger.info("Found %d site-item relationships", len(rows))

    with open(args.out, "wb") as f:
        f.write(build_report(rows))

    s = summarize(rows)
    logger.info(
        "Report written to %s. total=%d with_images=%d without_images=%d coverage=%s",
        args.out, s["total"], s["with_images"], s["without_images"], s["coverage"],
    )
    return 0


if __name__ == "__main__":
    run(main)
