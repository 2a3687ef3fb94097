from __future__ import annotations

import re

from app.db.models.catalog import CATEGORIES

_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]+")

# Precedence is equipment, then consumables, then supply.
EQUIPMENT_RE = re.compile(
    r"(vacuum|machine|(?:auto\s?-?)?scrubber|burnisher|buffer|extractor|polisher|propane|battery"
    r"|dispenser|bucket|cart|handle|frame)"
)
CONSUMABLES_RE = re.compile(
    r"(towel|tissue|toilet|bath|liner|bag|soap|sanitiz|wipe|napkin|roll|pad|refill|chemical|degreaser"
    r"|glass|cleaner|disinfect|urinal|odor|fragrance|can liner|trash bag)"
)
SUPPLY_RE = re.compile(
    r"(mop|broom|brush|duster|dust\s?pan|dustpan|squeegee|spray\s?bottle|bottle\b|caddy|holder|sign"
    r"|wet\s?floor|cone\b|gloves?|goggles?|mask\b|scraper|sponges?|mitt|microfiber|cloth|rag|wringer)"
)

# Spreadsheet "type" column -> stored category
TYPE_TO_CATEGORY = {
    "consumable": "consumables",
    "supply": "supply",
    "equipment": "equipment",
}


def normalize_site_name(raw: str) -> str:
    """Lookup key for a site: uppercase, non-alphanumeric runs -> one space, trimmed.

    Never stored; two names with the same key are the same site.
    """
    return _NON_ALNUM_RE.sub(" ", (raw or "").upper()).strip()


def categorize(name: str, sku: str) -> str:
    """Keyword guess at an item's category. Pure; callers decide whether to persist it."""
    text = f"{name or ''} {sku or ''}".lower()
    if EQUIPMENT_RE.search(text):
        return "equipment"
    if CONSUMABLES_RE.search(text):
        return "consumables"
    if SUPPLY_RE.search(text):
        return "supply"
    return "supply"


def category_from_type(value: str | None) -> str | None:
    if not value:
        return None
    key = value.strip().lower()
    if key in TYPE_TO_CATEGORY:
        return TYPE_TO_CATEGORY[key]
    if key in CATEGORIES:
        return key
    return None
