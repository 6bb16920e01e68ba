"""
FastAPI Application Entry Point.

This is the main application file for the Waste Tracker Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.api.v1.router import router as api_v1_router
from backend.app.core.observability import ObservabilityMiddleware, configure_logging
from backend.app.db.session import engine, Base, get_db
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from backend.app.models.coupon_account import CouponAccount
from backend.app.models.coupon_transaction import CouponTransaction
from backend.app.models.inventory_item import InventoryItem
from backend.app.models.redemption import Redemption
from backend.app.models.waste_record import WasteRecord
from backend.app.models.audit_log import AuditLog

logger = logging.getLogger("wastetrack")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    1. Configures logging.
    2. Creates database tables on startup.
    3. Disposes the engine pool on shutdown.
    """
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s started (%s)", settings.app_name, settings.environment)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Waste tracking backend: coupon ledger, rewards shop and waste submissions",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.
    
    Returns:
        200 with status healthy when the database answers, 503 otherwise
    """
    try:
        await db.execute(text("SELECT 1"))
        database = {"healthy": True, "message": "Database connection is healthy"}
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Database health check failed: %s", exc)
        database = {"healthy": False, "message": "Database connection failed"}
    
    body = {
        "status": "healthy" if database["healthy"] else "unhealthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "database": database,
    }
    return JSONResponse(status_code=200 if database["healthy"] else 503, content=body)


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Waste Tracker Backend API",
        "docs": "/docs",
        "health": "/health",
    }
