"""Application entrypoint and configuration for FastAPI.

Sets up lifespan (startup/shutdown), database initialization, and applies
project-wide settings including CORS and routers.
"""

from fastapi import FastAPI
from contextlib import asynccontextmanager
from src.database.database import get_db_manager
from src.settings import configure_app
import logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle handler.

    On startup, initialize database tables; on shutdown, release the engine's pool.
    """
    db_manager = app.dependency_overrides.get(get_db_manager, get_db_manager)()
    await db_manager.init_db()
    yield
    await db_manager.dispose()

# Configure root logger to show INFO in CLI
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

app = FastAPI(lifespan=lifespan)

configure_app(app)
