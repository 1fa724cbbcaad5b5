import time
import uuid
import asyncio
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# .env must be loaded before curalink.core.config builds its settings
load_dotenv()

from fastapi import FastAPI, Request

from curalink.core.config import settings
from curalink.core.db import init_models
from curalink.core.errors import register_error_handlers
from curalink.core.logging import setup_logging, request_id_ctx
from curalink.api.router import api_router
from curalink.modules.events.outbox import run_outbox_relay
from curalink.platform.provider_registry import registry

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    relay = asyncio.create_task(run_outbox_relay()) if settings.OUTBOX_RELAY_ENABLED else None
    yield
    if relay:
        relay.cancel()
        try:
            await relay
        except asyncio.CancelledError:
            pass
    await registry.close()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
register_error_handlers(app)


@app.middleware("http")
async def request_context(request: Request, call_next):
    rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
    token = request_id_ctx.set(rid)
    started = time.perf_counter()
    try:
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_ms:.1f}ms")
        response.headers["x-request-id"] = rid
        return response
    finally:
        request_id_ctx.reset(token)


app.include_router(api_router, prefix=settings.API_PREFIX)
