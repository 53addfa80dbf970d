from fastapi import FastAPI
import logging

from player.api.routes import router
from player.config import settings_from_env
from player.registry import registry
from player.services import close_services, init_services

settings = settings_from_env()

app = FastAPI(title="exploration-player", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    init_services(settings)
    registry.max_idle_s = settings.session_idle_s or None


@app.on_event("shutdown")
async def _shutdown() -> None:
    await close_services()


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "exploration-player", "version": "0.1.0"}
