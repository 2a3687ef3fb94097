from __future__ import annotations

import argparse
import logging
from scripts._runner import run, setup_logging
from services.catalog.storage import PLACEHOLDER_KEY, ImageStore

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Upload the item image placeholder")
    parser.add_argument("file", help="placeholder image (jpeg)")
    args = parser.parse_args()
    setup_logging()

    with open(args.file, "rb") as f:
        path = ImageStore().put(PLACEHOLDER_KEY, f.read())
    logger.info("Placeholder image uploaded to %s", path)
    return 0


if __name__ == "__main__":
    run(main)
