import pytest

from app.db.models.catalog import Employee, Item, Site, SiteEmployee, SiteItem
from services.catalog.importer import import_file
from services.catalog.reconciler import CatalogValidationError, MatchPolicy, ReconcileCache, Reconciler


def test_resolve_site_serves_variants_from_cache(db, statements):
    rec = Reconciler(db)
    first = rec.resolve_site("Main Campus")
    statements.clear()

    assert rec.resolve_site("main-campus") == first
    assert rec.resolve_site("  MAIN   CAMPUS ") == first
    assert statements == []
    assert db.query(Site).count() == 1


def test_resolve_site_exact_lookup_keeps_case_variants_apart(db):
    a = Reconciler(db).resolve_site("Main Campus")
    b = Reconciler(db).resolve_site("MAIN CAMPUS")
    assert a != b
    assert db.query(Site).count() == 2


def test_resolve_site_ignore_case_reuses_row(db):
    a = Reconciler(db).resolve_site("Main Campus")
    b = Reconciler(db, policy=MatchPolicy(site_lookup="ignore_case")).resolve_site(" main campus ")
    assert a == b
    assert db.query(Site).count() == 1


def test_resolve_site_reuses_existing_row_on_new_run(db):
    a = Reconciler(db).resolve_site("North Yard")
    b = Reconciler(db).resolve_site("North Yard")
    assert a == b


def test_blank_names_are_rejected(db):
    rec = Reconciler(db)
    with pytest.raises(CatalogValidationError):
        rec.resolve_site("   ")
    with pytest.raises(CatalogValidationError):
        rec.resolve_employee("")
    with pytest.raises(CatalogValidationError):
        rec.resolve_item("SKU1", " ")


def test_resolve_employee_is_literal(db):
    rec = Reconciler(db)
    a = rec.resolve_employee("Ana Lopez")
    assert rec.resolve_employee("Ana Lopez") == a
    assert rec.resolve_employee("ana lopez") != a
    assert Reconciler(db).resolve_employee("Ana Lopez") == a
    assert db.query(Employee).count() == 2


def test_resolve_item_is_idempotent(db, statements):
    rec = Reconciler(db)
    first = rec.resolve_item("ABC1", "Gloves")
    statements.clear()

    assert rec.resolve_item("ABC1", "Gloves") == first
    assert statements == []
    assert Reconciler(db).resolve_item("ABC1", "Gloves") == first
    assert db.query(Item).count() == 1


def test_same_sku_different_name_is_a_different_item(db):
    rec = Reconciler(db)
    assert rec.resolve_item("X1", "Blue Mop") != rec.resolve_item("X1", "Red Mop")


def test_null_sku_matches_name_among_null_sku_items(db):
    rec = Reconciler(db)
    a = rec.resolve_item(None, "Squeegee")
    assert Reconciler(db).resolve_item("", "Squeegee") == a
    assert Reconciler(db).resolve_item("SQ1", "Squeegee") != a


def test_repairs_sku_stored_as_name(db):
    bad = Item(name="ABC123", sku=None, category=None)
    db.add(bad)
    db.commit()
    bad_id = bad.id

    item_id = Reconciler(db).resolve_item("ABC123", "Paper Towels")
    assert item_id == bad_id
    db.expire_all()
    row = db.get(Item, bad_id)
    assert (row.sku, row.name) == ("ABC123", "Paper Towels")

    # Second run matches on the pair; nothing left to repair.
    assert Reconciler(db, policy=MatchPolicy(repair_sku_as_name=False)).resolve_item("ABC123", "Paper Towels") == bad_id
    assert db.query(Item).count() == 1


def test_repair_can_be_disabled(db):
    db.add(Item(name="ABC123", sku=None))
    db.commit()
    Reconciler(db, policy=MatchPolicy(repair_sku_as_name=False)).resolve_item("ABC123", "Paper Towels")
    assert db.query(Item).count() == 2


def test_new_item_gets_inferred_category(db):
    item_id = Reconciler(db).resolve_item("AS100", "Auto-Scrubber")
    assert db.get(Item, item_id).category == "equipment"


def test_stored_category_is_never_replaced(db):
    item_id = Reconciler(db).resolve_item("T1", "Towels", "supply")
    Reconciler(db).resolve_item("T1", "Towels", "consumables")
    db.expire_all()
    assert db.get(Item, item_id).category == "supply"


def test_empty_category_is_filled(db):
    item = Item(name="Towels", sku="T1", category=None)
    db.add(item)
    db.commit()
    Reconciler(db).resolve_item("T1", "Towels", "consumables")
    db.expire_all()
    assert db.get(Item, item.id).category == "consumables"


def test_unknown_category_is_rejected(db):
    with pytest.raises(CatalogValidationError):
        Reconciler(db).resolve_item("T1", "Towels", "tools")


def test_update_item_overwrites_category(db):
    rec = Reconciler(db)
    item_id = rec.resolve_item("T1", "Towels", "supply")
    assert rec.update_item(item_id, category="consumables", sku="  ")
    db.expire_all()
    row = db.get(Item, item_id)
    assert row.category == "consumables"
    assert row.sku is None
    assert rec.update_item("missing", name="x") is False


def test_link_site_employee_twice_is_one_row(db):
    rec = Reconciler(db)
    site_id = rec.resolve_site("Main Campus")
    emp_id = rec.resolve_employee("Ana Lopez")
    assert rec.link_site_employee(site_id, emp_id) is True
    assert rec.link_site_employee(site_id, emp_id) is False
    assert db.query(SiteEmployee).count() == 1
    assert rec.unlink_site_employee(site_id, emp_id) is True
    assert rec.unlink_site_employee(site_id, emp_id) is False


def test_link_site_item_twice_is_one_row(db):
    rec = Reconciler(db)
    site_id = rec.resolve_site("Main Campus")
    item_id = rec.resolve_item("ABC1", "Gloves")
    assert rec.link_site_item(site_id, item_id) is True
    assert rec.link_site_item(site_id, item_id) is False
    assert db.query(SiteItem).count() == 1


def test_link_site_item_attrs_on_existing_link_use_explicit_update(db):
    rec = Reconciler(db)
    site_id = rec.resolve_site("Main Campus")
    item_id = rec.resolve_item("ABC1", "Gloves")
    rec.link_site_item(site_id, item_id, par=4)
    rec.link_site_item(site_id, item_id, image_path="item-images/a.png")

    db.expire_all()
    link = db.get(SiteItem, (site_id, item_id))
    assert link.par == 4
    assert link.image_path == "item-images/a.png"

    # No attrs leaves the stored ones alone.
    rec.link_site_item(site_id, item_id)
    db.expire_all()
    assert db.get(SiteItem, (site_id, item_id)).par == 4


def test_set_site_item_attrs(db):
    rec = Reconciler(db)
    site_id = rec.resolve_site("Main Campus")
    item_id = rec.resolve_item("ABC1", "Gloves")
    assert rec.set_site_item_attrs(site_id, item_id, par=2) is False

    rec.link_site_item(site_id, item_id, par=3)
    assert rec.set_site_item_attrs(site_id, item_id, par=None) is True
    db.expire_all()
    assert db.get(SiteItem, (site_id, item_id)).par is None

    with pytest.raises(CatalogValidationError):
        rec.set_site_item_attrs(site_id, item_id, par=-1)


def test_remove_site_item_deletes_orphaned_item(db):
    rec = Reconciler(db)
    a = rec.resolve_site("Site A")
    b = rec.resolve_site("Site B")
    item_id = rec.resolve_item("ABC1", "Gloves")
    rec.link_site_item(a, item_id)
    rec.link_site_item(b, item_id)

    assert rec.remove_site_item(a, item_id) is False
    assert db.get(Item, item_id) is not None

    assert rec.remove_site_item(b, item_id) is True
    db.expire_all()
    assert db.get(Item, item_id) is None


def test_removed_item_is_recreated_not_served_from_cache(db):
    rec = Reconciler(db)
    site_id = rec.resolve_site("Site A")
    item_id = rec.resolve_item("ABC1", "Gloves")
    rec.link_site_item(site_id, item_id)
    rec.remove_site_item(site_id, item_id)

    new_id = rec.resolve_item("ABC1", "Gloves")
    assert new_id != item_id
    assert db.get(Item, new_id) is not None


def test_delete_site_cascades_links_and_orphans(db):
    rec = Reconciler(db)
    a = rec.resolve_site("Site A")
    b = rec.resolve_site("Site B")
    only_a = rec.resolve_item("A1", "Mop")
    shared = rec.resolve_item("S1", "Bucket")
    emp = rec.resolve_employee("Ana Lopez")
    rec.link_site_item(a, only_a)
    rec.link_site_item(a, shared)
    rec.link_site_item(b, shared)
    rec.link_site_employee(a, emp)

    assert rec.delete_site(a) is True
    db.expire_all()
    assert db.get(Site, a) is None
    assert db.get(Item, only_a) is None
    assert db.get(Item, shared) is not None
    assert db.get(Employee, emp) is not None
    assert db.query(SiteEmployee).count() == 0
    assert db.query(SiteItem).count() == 1

    # The deleted site's cache entry is gone too.
    assert rec.resolve_site("Site A") != a


def test_shared_cache_across_reconcilers(db, statements):
    cache = ReconcileCache()
    site_id = Reconciler(db, cache=cache).resolve_site("Main Campus")
    statements.clear()
    assert Reconciler(db, cache=cache).resolve_site("MAIN CAMPUS") == site_id
    assert statements == []


def test_duplicate_import_rows_create_one_of_each(db):
    content = (
        "Site Location,Item SKU,Item Name,Type\n"
        "Main Campus,ABC1,Gloves,supply\n"
        "Main Campus,ABC1,Gloves,supply\n"
    ).encode()

    result = import_file(Reconciler(db), "rows.csv", content)

    assert result.applied == 2
    assert result.errors == []
    assert db.query(Site).count() == 1
    assert db.query(Item).count() == 1
    assert db.query(SiteItem).count() == 1


def test_repair_evicts_cached_old_identity(db):
    rec = Reconciler(db)
    bad_id = rec.resolve_item(None, "ABC123")
    assert rec.resolve_item("ABC123", "Paper Towels") == bad_id

    # The old (None, "ABC123") key no longer names the repaired row.
    fresh_id = rec.resolve_item(None, "ABC123")
    assert fresh_id != bad_id
    db.expire_all()
    row = db.get(Item, fresh_id)
    assert (row.sku, row.name) == (None, "ABC123")
    assert Reconciler(db).resolve_item(None, "ABC123") == fresh_id
