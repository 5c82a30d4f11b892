# flashcart/core/errors.py
"""
Business-level exceptions raised by the cart and sale services.

Services raise these after rolling back their transaction, so a caller that
catches one never sees half-applied state. The HTTP layer converts them into
JSON error responses via `register_exception_handlers`.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class FlashcartError(Exception):
    """Base exception for all business logic errors."""

    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Request could not be processed"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(FlashcartError):
    """Cart, cart line, product or listing does not exist."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidQuantityError(FlashcartError):
    """Quantity is missing, non-numeric or below 1."""

    kind = "invalid_quantity"

    def __init__(self, value=None):
        super().__init__(f"Quantity must be a whole number >= 1 (got {value!r})")
        self.value = value


class InsufficientStockError(FlashcartError):
    """Requested quantity exceeds what is available right now."""

    kind = "insufficient_stock"

    def __init__(self, requested: int, available: int, name: str = ""):
        label = f" for {name}" if name else ""
        super().__init__(
            f"Not enough stock available{label}. "
            f"Requested: {requested}, Available: {available}"
        )
        self.requested = requested
        self.available = available


class ConcurrentModificationError(FlashcartError):
    """An atomic update lost its race; the caller may retry once."""

    kind = "concurrent_modification"
    status_code = status.HTTP_409_CONFLICT


async def flashcart_error_handler(request: Request, exc: FlashcartError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable, retry later", "error": "storage"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map business errors to client errors and storage errors to 503."""
    app.add_exception_handler(FlashcartError, flashcart_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
