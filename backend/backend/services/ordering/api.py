from __future__ import annotations

import logging
import smtplib
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.db.models.catalog import Site
from app.db.session import get_db
from services.catalog import queries
from services.ordering.notify import SupplyRequest, send_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ordering", tags=["ordering"])


def _site_or_404(db: Session, site_id: str) -> Site:
    site = db.get(Site, site_id)
    if not site:
        raise HTTPException(404, "Site not found")
    return site


class RequestLineIn(BaseModel):
    category: str = ""
    name: str
    sku: str = ""
    on_hand: int = Field(default=0, ge=0)
    order_qty: int = Field(default=0, ge=0)


class SupplyRequestIn(BaseModel):
    site_name: str
    employee_name: str
    items: list[RequestLineIn]


@router.get("/sites")
def list_sites(db: Session = Depends(get_db)):
    return queries.list_sites(db)


@router.get("/sites/{site_id}/employees")
def list_employees(site_id: str, db: Session = Depends(get_db)):
    _site_or_404(db, site_id)
    return queries.site_employees(db, site_id)


@router.get("/sites/{site_id}/items")
def list_items(site_id: str, db: Session = Depends(get_db)):
    _site_or_404(db, site_id)
    return queries.group_by_category(queries.site_items(db, site_id))


@router.post("/requests")
def submit_request(payload: SupplyRequestIn):
    if not payload.site_name.strip() or not payload.employee_name.strip():
        raise HTTPException(400, "Missing required fields")

    req = SupplyRequest(
        site_name=payload.site_name.strip(),
        employee_name=payload.employee_name.strip(),
        items=[line.model_dump() for line in payload.items],
        submitted_at=datetime.now(),
    )
    try:
        sent = send_request(req)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("supply request email failed: %s", e)
        raise HTTPException(502, f"Failed to send supply request: {e}")
    return {"success": True, "message": "Supply request sent successfully", **sent}
