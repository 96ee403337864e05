"""
General API routes.

Endpoints:
  GET  /api/health
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from vendor_oms.core.database import get_session
from vendor_oms.models.order import Order
from vendor_oms.schemas.responses import HealthResponse

router = APIRouter(prefix="/api")


@router.get("/health", response_model=HealthResponse)
def health(session: Session = Depends(get_session)):
    try:
        session.exec(select(Order).limit(1)).all()
        db_status = "ok"
    except SQLAlchemyError as exc:
        logger.error(f"Health check: database unavailable: {exc}")
        db_status = "error"
    return HealthResponse(status="ok", db=db_status)
