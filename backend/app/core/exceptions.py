"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

from backend.app.core.config import settings

logger = logging.getLogger("wastetrack.errors")


class AppException(Exception):
    """Base application exception."""
    
    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""
    
    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""
    
    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""
    
    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Coupon ledger errors

class InvalidAmountError(AppException):
    """Raised when a coupon amount or quantity fails validation."""
    
    def __init__(self, message: str = "Amount must be a positive number", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_COUPON_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class MissingReasonError(AppException):
    """Raised when a manual adjustment has no reason."""
    
    def __init__(self):
        super().__init__(
            message="Reason is required for manual adjustments",
            error_code="ERR_COUPON_002",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class InsufficientBalanceError(AppException):
    """Raised when a debit would drive the coupon balance below zero."""
    
    def __init__(self, balance: int, required: int, message: str = None):
        super().__init__(
            message=message or "Not enough coupons for this operation",
            error_code="ERR_COUPON_003",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"balance": balance, "required": required}
        )


class InvalidQueryError(AppException):
    """Raised for malformed list/filter query parameters."""
    
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_QUERY_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ConstraintViolationError(AppException):
    """
    Raised by the ledger store when a write would break a storage invariant.
    
    Callers validate first; this is the last line of defence and is never retried.
    """
    
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_LEDGER_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


# Inventory errors

class ItemNotFoundError(ResourceNotFoundError):
    """Raised when an inventory item does not exist."""
    
    def __init__(self, item_id: Any = None):
        super().__init__("Item", item_id)


class ItemInactiveError(AppException):
    def __init__(self, item_id: int):
        super().__init__(
            message="This item is not available for redemption",
            error_code="ERR_INVENTORY_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"id": item_id}
        )


class InsufficientStockError(AppException):
    def __init__(self, item_id: int, stock: int, requested: int):
        super().__init__(
            message="Not enough items in stock",
            error_code="ERR_INVENTORY_002",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"id": item_id, "stock": stock, "requested": requested}
        )


class DuplicateItemError(AppException):
    def __init__(self, name: str):
        super().__init__(
            message="An item with this name already exists",
            error_code="ERR_INVENTORY_003",
            status_code=status.HTTP_409_CONFLICT,
            details={"name": name}
        )


class ItemInUseError(AppException):
    """Raised when deleting an item that already has redemption history."""
    
    def __init__(self, item_id: int):
        super().__init__(
            message="Item has redemption history and cannot be deleted; deactivate it instead",
            error_code="ERR_INVENTORY_004",
            status_code=status.HTTP_409_CONFLICT,
            details={"id": item_id}
        )


class InvalidStockError(AppException):
    def __init__(self, message: str = "Stock cannot be negative", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_INVENTORY_005",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }
    
    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")
    
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=422,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry raw exception objects that JSONResponse cannot encode
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    
    details = {}
    if not settings.is_production:
        details = {"error": str(exc), "type": type(exc).__name__}
    
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": details
        }
    )
