from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
import logging

from fastapi import FastAPI

from plastic_bridge.api.routes import router
from plastic_bridge.core.config import settings
from plastic_bridge.core.errors import register_exception_handlers
from plastic_bridge.services.version_service import tool_version_cache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _app_lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "plastic-bridge starting cm=%s repository=%s branch=%s workspaces=%s",
        settings.cm_executable,
        settings.repository_name or settings.workspace_name,
        settings.branch_name,
        settings.workspace_root_dir,
    )
    yield
    tool_version_cache.clear()


app = FastAPI(
    title="plastic-bridge",
    version="0.1.0",
    lifespan=_app_lifespan,
)
register_exception_handlers(app)
app.include_router(router)
