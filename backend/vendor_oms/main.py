"""
Vendor OMS – FastAPI application entry point.

Run with:
    uvicorn vendor_oms.main:app --reload --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from vendor_oms.api.routes import router
from vendor_oms.api.accounts_routes import accounts_router
from vendor_oms.api.assignment_routes import assignment_router
from vendor_oms.core.config import settings
from vendor_oms.core.database import create_db_and_tables
from vendor_oms.core.logging import setup_logging
from vendor_oms.services.aggregation import PlaceholderDocumentStatus
from vendor_oms.services.assignment_status import AssignmentStatusService
from vendor_oms.services.order_lifecycle import ReceivedToProcessingLifecycle
from vendor_oms.services.vendor_orders import VendorOrderService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown hooks."""
    setup_logging()
    logger.info("Starting Vendor OMS backend …")
    create_db_and_tables()
    logger.info("Database tables ready")
    app.state.assignment_service = AssignmentStatusService(
        lifecycle=ReceivedToProcessingLifecycle()
    )
    app.state.vendor_order_service = VendorOrderService(
        documents=PlaceholderDocumentStatus(),
        max_page_size=settings.MAX_PAGE_SIZE,
    )
    yield
    logger.info("Vendor OMS backend shut down")


app = FastAPI(
    title="Vendor OMS API",
    description="Vendor assignment confirmation and vendor-order reconciliation",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS – allow frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(accounts_router)
app.include_router(assignment_router)


@app.get("/")
def root():
    return {"message": "Vendor OMS API", "docs": "/docs"}
