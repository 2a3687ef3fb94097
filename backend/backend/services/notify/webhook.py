from __future__ import annotations

import logging
import os

import httpx

logger = logging.getLogger(__name__)

SLACK_WEBHOOK_URL = os.getenv("SLACK_WEBHOOK_URL", "")
WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10"))


def post_json(url: str, body: dict, *, client: httpx.Client | None = None) -> tuple[bool, str | None]:
    """POST a JSON body. Never raises; returns (ok, error)."""
    try:
        if client is not None:
            resp = client.post(url, json=body, timeout=WEBHOOK_TIMEOUT_SECONDS)
        else:
            with httpx.Client() as c:
                resp = c.post(url, json=body, timeout=WEBHOOK_TIMEOUT_SECONDS)
        if 200 <= resp.status_code < 300:
            return True, None
        return False, f"HTTP {resp.status_code}: {resp.text[:300]}"
    except httpx.HTTPError as e:
        return False, str(e)
