# pizzeria/main.py
from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI
from sqlmodel import Session

from pizzeria.core.config import get_settings
from pizzeria.core.dependencies import get_order_service
from pizzeria.database import create_db_and_tables, engine
from pizzeria.services.sweeper import sweep_forever

# Import models so SQLModel metadata is populated before create_all()
from pizzeria.models import user as _user_models  # noqa: F401
from pizzeria.models import product as _product_models  # noqa: F401
from pizzeria.models import order as _order_models  # noqa: F401
from pizzeria.models import settings as _settings_models  # noqa: F401

# Routers
from pizzeria.routers.orders import router as orders_router
from pizzeria.routers.cart import router as cart_router
from pizzeria.routers.settings import router as settings_router
from pizzeria.routers.admin_stats import router as admin_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Start the automatic transition sweep when enabled.

    Shutdown:
      - Cancel the sweep task.
    """
    logger.info("Startup: connecting to the database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise

    sweeper: asyncio.Task | None = None
    if settings.AUTO_TRANSITIONS_ENABLED:
        sweeper = asyncio.create_task(
            sweep_forever(
                get_order_service(),
                lambda: Session(engine),
                settings.AUTO_TRANSITION_INTERVAL_SECONDS,
            )
        )

    yield

    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title=settings.PROJECT_NAME or "Bella Pizza API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:3001",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(settings_router, prefix=settings.API_V1_STR)
app.include_router(admin_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "pizzeria-backend"}
