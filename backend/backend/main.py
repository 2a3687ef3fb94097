from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.db.base import Base
from app.db.session import engine

# Register models
from app.db import models  # noqa: F401

from services.catalog.api import router as admin_router
from services.catalog.reconciler import CatalogValidationError
from services.ordering.api import router as ordering_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Supply Ordering")

app.include_router(admin_router)
app.include_router(ordering_router)


@app.exception_handler(CatalogValidationError)
async def _validation_error(request: Request, exc: CatalogValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(SQLAlchemyError)
async def _store_error(request: Request, exc: SQLAlchemyError):
    logger.error("store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": f"Store unavailable: {exc}"})


@app.on_event("startup")
async def _startup():
    # Dev-friendly schema creation (migrations are available for real upgrades)
    Base.metadata.create_all(bind=engine)


@app.get("/health")
def health():
    return {"ok": True}
