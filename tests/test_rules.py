import pytest

from services.catalog.rules import categorize, category_from_type, normalize_site_name


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Main Campus", "MAIN CAMPUS"),
        ("  main-campus!! ", "MAIN CAMPUS"),
        ("St. Mary's / North", "ST MARY S NORTH"),
        ("", ""),
    ],
)
def test_normalize_site_name(raw, expected):
    assert normalize_site_name(raw) == expected


def test_variants_share_a_key():
    assert normalize_site_name("Acme  Tower (B)") == normalize_site_name("ACME-TOWER-B")


@pytest.mark.parametrize(
    "name, sku, expected",
    [
        ("Auto-Scrubber", "AS100", "equipment"),
        ("Paper Towel Roll", "PT1", "consumables"),
        ("Mop Head", "MH1", "supply"),
        ("Unlabeled Widget", "", "supply"),
        ("Towel Dispenser", "TD1", "equipment"),
        ("Nitrile Gloves", "", "supply"),
    ],
)
def test_categorize(name, sku, expected):
    assert categorize(name, sku) == expected


def test_categorize_reads_sku_too():
    assert categorize("Widget", "vacuum-9") == "equipment"


def test_category_from_type():
    assert category_from_type("consumable") == "consumables"
    assert category_from_type(" Equipment ") == "equipment"
    assert category_from_type("supply") == "supply"
    assert category_from_type("consumables") == "consumables"
    assert category_from_type("") is None
    assert category_from_type("tools") is None
