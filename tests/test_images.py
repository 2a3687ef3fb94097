import pytest

from app.db.models.catalog import SiteItem
from services.catalog.images import (
    LocalImageSource,
    clean_site_folder_name,
    site_folder_key,
    sku_from_filename,
    sync_images,
)
from services.catalog.reconciler import Reconciler


@pytest.mark.parametrize(
    "filename, sku",
    [
        ("PRO_ABC-12_product_ABC-12_usn.webp", "ABC-12"),
        ("PRO_abc12_product_abc12_usn (2).png", "ABC12"),
        ("PRO_X9.jpeg", "X9"),
        ("pro_x9.JPG", "X9"),
        ("ABC12.png", None),
        ("PRO_ABC12.gif", None),
        ("PRO_ABC12_something.png", None),
    ],
)
def test_sku_from_filename(filename, sku):
    assert sku_from_filename(filename) == sku


def test_site_folder_names_are_cleaned():
    assert clean_site_folder_name("Main Campus (old)").strip() == "Main Campus"
    assert site_folder_key("Main Campus COMPLETED") == "MAIN CAMPUS"
    assert site_folder_key("Main-Campus N-A IN HD SUPPLY (2)") == "MAIN CAMPUS"


def _write(path, content=b"img"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def test_sync_local_images(db, store, tmp_path):
    rec = Reconciler(db)
    site_id = rec.resolve_site("Main Campus")
    item_id = rec.resolve_item("ABC1", "Gloves")
    rec.link_site_item(site_id, item_id)
    rec.resolve_site("Skipped Site")

    root = tmp_path / "images"
    _write(root / "Main Campus (old)" / "PRO_abc1_product_abc1_usn.webp", b"gloves")
    _write(root / "Main Campus (old)" / "PRO_ZZZ9.png")
    _write(root / "Main Campus (old)" / "notes.txt")
    _write(root / "Main Campus (old)" / "IMG_0001.jpg")
    _write(root / "Unknown Place" / "PRO_ABC1.png")
    _write(root / "Skipped Site" / "PRO_ABC1.png")

    stats = sync_images(db, LocalImageSource(str(root)), store, skip_folders=["Skipped Site"])

    assert stats.uploaded == 2
    assert stats.linked == 1
    assert stats.unlinked == 1
    assert stats.skipped_files == 2
    assert sorted(stats.skipped_folders) == ["Skipped Site", "Unknown Place"]

    db.expire_all()
    link = db.get(SiteItem, (site_id, item_id))
    assert link.image_path == "item-images/MAIN CAMPUS/PRO_abc1_product_abc1_usn.webp"
    assert store.get(link.image_path) == b"gloves"


def test_sync_linked_only(db, store, tmp_path):
    Reconciler(db).resolve_site("Main Campus")
    _write(tmp_path / "images" / "Main Campus" / "PRO_ZZZ9.png")

    stats = sync_images(db, LocalImageSource(str(tmp_path / "images")), store, upload_unmatched=False)
    assert stats.uploaded == 0
    assert stats.skipped_files == 1
