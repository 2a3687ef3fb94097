from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from app.db.models.catalog import Item, Site, SiteItem
from app.db.session import get_db
from services.catalog import queries
from services.catalog.importer import import_file
from services.catalog.reconciler import MatchPolicy, Reconciler
from services.catalog.storage import ImageStore, upload_key

router = APIRouter(prefix="/admin", tags=["admin"])

# Admin forms dedupe sites case-insensitively on the trimmed name.
ADMIN_POLICY = MatchPolicy(site_lookup="ignore_case")
IMAGE_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")


def get_image_store() -> ImageStore:
    return ImageStore()


def _reconciler(db: Session) -> Reconciler:
    return Reconciler(db, policy=ADMIN_POLICY)


def _site_or_404(db: Session, site_id: str) -> Site:
    site = db.get(Site, site_id)
    if not site:
        raise HTTPException(404, "Site not found")
    return site


def _check_image(upload: UploadFile) -> None:
    if (upload.content_type or "").lower() not in IMAGE_CONTENT_TYPES:
        raise HTTPException(400, "Only JPG, PNG, and WEBP images are supported")


# ---- Schemas ----
class SupplyIn(BaseModel):
    name: str = Field(default="", max_length=512)
    sku: str = Field(default="", max_length=128)
    category: str | None = None
    par: int | None = Field(default=None, ge=0)
    image: str | None = Field(default=None, max_length=256)  # uploaded file name


class SiteIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    employees: str = ""  # one name per line
    supplies: list[SupplyIn] = []


class EmployeeIn(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=256)


class SiteItemIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=512)
    sku: str | None = Field(default=None, max_length=128)
    category: str | None = None
    par: int | None = Field(default=None, ge=0)


class SiteItemPatch(BaseModel):
    image_path: str | None = Field(default=None, max_length=512)
    par: int | None = Field(default=None, ge=0)


class ItemPatch(BaseModel):
    name: str | None = Field(default=None, max_length=512)
    sku: str | None = Field(default=None, max_length=128)
    category: str | None = None


# ---- Sites ----
@router.get("/sites")
def list_sites(db: Session = Depends(get_db)):
    return queries.list_sites(db)


def _create_site(
    db: Session,
    payload: SiteIn,
    images: dict[str, UploadFile] | None = None,
    store: ImageStore | None = None,
) -> str:
    rows = [r for r in payload.supplies if r.sku.strip() and r.name.strip()]

    # Check every referenced image before writing anything.
    images = images or {}
    contents: dict[str, bytes] = {}
    for row in rows:
        if not row.image or row.image in contents:
            continue
        upload = images.get(row.image)
        if upload is None:
            raise HTTPException(400, f'Image "{row.image}" was not uploaded')
        _check_image(upload)
        contents[row.image] = upload.file.read()

    rec = _reconciler(db)
    site_id = rec.resolve_site(payload.name)

    for full_name in [s.strip() for s in payload.employees.splitlines() if s.strip()]:
        rec.link_site_employee(site_id, rec.resolve_employee(full_name))

    for row in rows:
        item_id = rec.resolve_item(row.sku, row.name, row.category)
        image_path = None
        if row.image:
            image_path = store.put(upload_key(row.sku.strip(), row.image), contents[row.image])
        rec.link_site_item(site_id, item_id, par=row.par, image_path=image_path)

    return site_id


@router.post("/sites")
def create_site(payload: SiteIn, db: Session = Depends(get_db)):
    return {"id": _create_site(db, payload)}


@router.post("/sites/form")
def create_site_with_images(
    site: str = Form(...),  # SiteIn as JSON; supplies[].image names a part in images
    images: list[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    try:
        payload = SiteIn.model_validate_json(site)
    except ValidationError as e:
        raise HTTPException(422, str(e))
    by_name = {img.filename: img for img in images if img.filename}
    return {"id": _create_site(db, payload, by_name, store)}


@router.get("/sites/{site_id}")
def get_site(site_id: str, db: Session = Depends(get_db)):
    site = _site_or_404(db, site_id)
    return {
        "id": site.id,
        "name": site.name,
        "employees": queries.site_employees(db, site_id),
        "items": queries.site_items(db, site_id),
    }


@router.delete("/sites/{site_id}")
def delete_site(site_id: str, db: Session = Depends(get_db)):
    _site_or_404(db, site_id)
    _reconciler(db).delete_site(site_id)
    return {"ok": True}


# ---- Site employees ----
@router.post("/sites/{site_id}/employees")
def add_employee(site_id: str, payload: EmployeeIn, db: Session = Depends(get_db)):
    _site_or_404(db, site_id)
    rec = _reconciler(db)
    employee_id = rec.resolve_employee(payload.full_name)
    rec.link_site_employee(site_id, employee_id)
    return {"id": employee_id, "full_name": payload.full_name.strip()}


@router.delete("/sites/{site_id}/employees/{employee_id}")
def remove_employee(site_id: str, employee_id: str, db: Session = Depends(get_db)):
    _site_or_404(db, site_id)
    if not _reconciler(db).unlink_site_employee(site_id, employee_id):
        raise HTTPException(404, "Employee is not linked to this site")
    return {"ok": True}


# ---- Site items ----
@router.post("/sites/{site_id}/items")
def add_item(site_id: str, payload: SiteItemIn, db: Session = Depends(get_db)):
    _site_or_404(db, site_id)
    rec = _reconciler(db)
    item_id = rec.resolve_item(payload.sku, payload.name, payload.category)
    rec.link_site_item(site_id, item_id, par=payload.par)
    item = db.get(Item, item_id)
    return {"id": item.id, "name": item.name, "sku": item.sku, "category": item.category}


@router.patch("/sites/{site_id}/items/{item_id}")
def update_site_item(site_id: str, item_id: str, payload: SiteItemPatch, db: Session = Depends(get_db)):
    changes = payload.model_dump(include=payload.model_fields_set)
    if not _reconciler(db).set_site_item_attrs(site_id, item_id, **changes):
        raise HTTPException(404, "Item is not linked to this site")
    link = db.get(SiteItem, (site_id, item_id))
    return {"site_id": site_id, "item_id": item_id, "image_path": link.image_path, "par": link.par}


@router.delete("/sites/{site_id}/items/{item_id}")
def remove_item(site_id: str, item_id: str, db: Session = Depends(get_db)):
    _site_or_404(db, site_id)
    item_deleted = _reconciler(db).remove_site_item(site_id, item_id)
    return {"ok": True, "item_deleted": item_deleted}


@router.post("/sites/{site_id}/items/{item_id}/image")
def upload_item_image(
    site_id: str,
    item_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    link = db.get(SiteItem, (site_id, item_id))
    if not link:
        raise HTTPException(404, "Item is not linked to this site")
    _check_image(file)
    item = db.get(Item, item_id)
    image_path = store.put(upload_key(item.sku or item.id, file.filename or "image"), file.file.read())
    _reconciler(db).set_site_item_attrs(site_id, item_id, image_path=image_path)
    return {"image_path": image_path}


# ---- Items ----
@router.patch("/items/{item_id}")
def update_item(item_id: str, payload: ItemPatch, db: Session = Depends(get_db)):
    changes = payload.model_dump(include=payload.model_fields_set)
    if not _reconciler(db).update_item(item_id, **changes):
        raise HTTPException(404, "Item not found")
    item = db.get(Item, item_id)
    return {"id": item.id, "name": item.name, "sku": item.sku, "category": item.category}


# ---- Bulk import ----
def _run_import(
    db: Session,
    store: ImageStore,
    file: UploadFile,
    images: list[UploadFile],
    require_clean: bool,
    site: Site | None = None,
):
    result = import_file(
        _reconciler(db),
        file.filename or "",
        file.file.read(),
        expected_site=site.name if site else None,
        image_files=[(img.filename or "", img.file.read()) for img in images],
        store=store,
        require_clean=require_clean,
        site_id=site.id if site else None,
    )
    return {
        "applied": result.applied,
        "skipped": result.skipped,
        "images_linked": result.images_linked,
        "errors": [
            {"row_number": e.row_number, "field": e.field, "message": e.message} for e in result.errors
        ],
        "image_errors": result.image_errors,
    }


@router.post("/import")
def bulk_import(
    file: UploadFile = File(...),
    images: list[UploadFile] = File(default=[]),
    require_clean: bool = Form(default=False),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    return _run_import(db, store, file, images, require_clean)


@router.post("/sites/{site_id}/import")
def bulk_import_into_site(
    site_id: str,
    file: UploadFile = File(...),
    images: list[UploadFile] = File(default=[]),
    require_clean: bool = Form(default=False),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    site = _site_or_404(db, site_id)
    return _run_import(db, store, file, images, require_clean, site)
