"""
Custom exception classes and error handling for the test case tree service.

Tree operations raise these directly; the HTTP layer turns them into
consistent error responses.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response format."""
    detail: str
    error_code: str | None = None


class APIException(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str | None = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail)


class TreeError(APIException):
    """Base class for every error raised by tree operations."""


class NotFoundError(TreeError):
    """Exception raised when a referenced project, folder or test case does not exist."""

    def __init__(self, resource_type: str, resource_id: Any):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            detail=f"{resource_type} with id {resource_id} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND"
        )


class InvalidNameError(TreeError):
    """Exception raised for an empty name or one containing the path separator."""

    def __init__(self, name: Any, reason: str):
        self.name = name
        super().__init__(
            detail=f"Invalid name {name!r}: {reason}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="INVALID_NAME"
        )


class CycleError(TreeError):
    """Exception raised when a folder would become its own ancestor."""

    def __init__(self, folder_id: str, target_id: str):
        self.folder_id = folder_id
        self.target_id = target_id
        super().__init__(
            detail=f"Cannot move folder {folder_id} under {target_id}: "
                   "target is the folder itself or one of its descendants",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="CYCLE"
        )


class CrossProjectError(TreeError):
    """Exception raised when a parent or target belongs to another project."""

    def __init__(self, resource_type: str, resource_id: str, project_id: str):
        super().__init__(
            detail=f"{resource_type} {resource_id} does not belong to project {project_id}",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="CROSS_PROJECT"
        )


class MaxDepthExceededError(TreeError):
    """Exception raised when an operation would nest folders beyond the configured depth."""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(
            detail=f"Maximum nesting depth of {max_depth} exceeded",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="MAX_DEPTH_EXCEEDED"
        )


class ConflictError(TreeError):
    """Exception raised when a write collides with existing rows, e.g. a duplicate sibling name."""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code
        )


class FolderNotEmptyError(ConflictError):
    """Exception raised when deleting a non-empty folder with the reject policy."""

    def __init__(self, folder_id: str, folder_count: int, test_case_count: int):
        self.folder_id = folder_id
        self.folder_count = folder_count
        self.test_case_count = test_case_count
        super().__init__(
            detail=f"Folder {folder_id} contains {folder_count} sub-folder(s) and "
                   f"{test_case_count} test case(s); use a cascade or reparent policy",
            error_code="FOLDER_NOT_EMPTY"
        )


class PrefixMismatchError(TreeError):
    """
    Exception raised when a descendant path does not start with its ancestor's path.

    Never caused by user input while the tree invariants hold; it means the
    stored paths are corrupt and the running transaction must be abandoned.
    """

    def __init__(self, path: str, old_prefix: str):
        self.path = path
        self.old_prefix = old_prefix
        super().__init__(
            detail=f"Path {path!r} is not under prefix {old_prefix!r}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="PREFIX_MISMATCH"
        )


class TransientStoreError(TreeError):
    """Exception raised for store failures a caller may retry with backoff (locks, serialization)."""

    def __init__(self, detail: str = "Storage temporarily unavailable"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="TRANSIENT_STORE_ERROR"
        )


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handler for custom API exceptions."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code}
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    errors = exc.errors()
    # Format validation errors into a readable message
    error_messages = []
    for error in errors:
        loc = " -> ".join(str(l) for l in error["loc"])
        msg = error["msg"]
        error_messages.append(f"{loc}: {msg}")

    detail = "; ".join(error_messages) if error_messages else "Validation error"

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": detail, "error_code": "VALIDATION_ERROR"}
    )


async def sqlalchemy_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Handler for SQLAlchemy database errors."""
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error occurred", "error_code": "DATABASE_ERROR"}
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
