import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from botlist.api.errors import register_error_handlers
from botlist.api.v1.router import router as v1_router
from botlist.core.config import settings
from botlist.core.telemetry import setup_telemetry
from botlist.services.discord_client import DiscordHttpClient


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level)
    app.state.discord_client = DiscordHttpClient(
        base_url=settings.discord_api_base,
        bot_token=settings.discord_bot_token.get_secret_value(),
        timeout_seconds=settings.http_timeout_seconds,
    )
    try:
        yield
    finally:
        await app.state.discord_client.aclose()


app = FastAPI(title="Botlist API", version="0.1.0", lifespan=lifespan)

setup_telemetry(app)
register_error_handlers(app)
app.include_router(v1_router)
