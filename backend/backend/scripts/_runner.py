from __future__ import annotations

import logging
import os
import sys
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("scripts")


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def require_env(*names: str) -> dict[str, str]:
    values = {n: os.getenv(n, "").strip() for n in names}
    missing = [n for n, v in values.items() if not v]
    if missing:
        logger.error("Missing required env: %s", ", ".join(missing))
        sys.exit(1)
    return values


def run(main: Callable[[], int | None]) -> None:
    """Run a job; store and input errors are logged and end the process with 1."""
    try:
        code = main()
    except SQLAlchemyError as e:
        logger.error("store error: %s", e)
        sys.exit(1)
    except (OSError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(1)
    sys.exit(code or 0)
