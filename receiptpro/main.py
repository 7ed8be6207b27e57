from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from receiptpro.config import get_settings
from receiptpro.dependencies.services import get_email_client_cached
from receiptpro.services.store import get_store

# Import routers directly from submodules
from receiptpro.health import router as health_router
from receiptpro.overview import router as overview_router
from receiptpro.routes.data import router as data_router
from receiptpro.routes.invoices import router as invoices_router
from receiptpro.routes.profiles import router as profiles_router
from receiptpro.routes.receipts import router as receipts_router
from receiptpro.routes.settings import router as settings_router


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)

# Configure logging as soon as the module is loaded
configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    # --- Startup Logic ---
    settings = get_settings()

    settings_snapshot = settings.model_dump(mode="json")
    logger.info("Application settings on startup: %s", settings_snapshot)

    # Initialize shared resources
    get_store()
    client = get_email_client_cached()
    logger.info("Application startup complete.")

    try:
        yield  # The application is now running
    finally:
        # --- Shutdown Logic ---
        logger.info("Closing e-mail client connection.")
        await client.close()
        logger.info("Application shutdown complete.")


# --- Application Setup ---

settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include Routers ---

app.include_router(profiles_router, prefix="/profiles")
app.include_router(receipts_router, prefix="/receipts")
app.include_router(invoices_router, prefix="/invoices")
app.include_router(settings_router, prefix="/settings")
app.include_router(data_router, prefix="/data")
app.include_router(health_router)
app.include_router(overview_router)
