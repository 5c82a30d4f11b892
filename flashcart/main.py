# flashcart/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from flashcart.core.config import get_settings
from flashcart.core.errors import register_exception_handlers
from flashcart.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from flashcart.models import cart as _cart_models  # noqa: F401
from flashcart.models import flash_listing as _listing_models  # noqa: F401
from flashcart.models import product as _product_models  # noqa: F401
from flashcart.models import sale_transaction as _ledger_models  # noqa: F401

# Routers
from flashcart.routers.cart import router as cart_router
from flashcart.routers.sales import router as sales_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Versioned API prefix, e.g. /api/v1
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(sales_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "flashcart"}
