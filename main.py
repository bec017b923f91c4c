"""
EVA WhatsApp bridge - ASGI entry point

Wires:
  - WhatsApp webhook router (GET challenge, POST events)
  - Liveness/readiness probes
  - Background workers started in the lifespan (inactivity reaper, queue consumers)

Run: uvicorn main:app --host 0.0.0.0 --port 8080
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from config import Config
from infra.bootstrap import InfraBootstrap, bootstrap_infrastructure
from transport.whatsapp.webhook import router as whatsapp_router

logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the infrastructure, run background workers, close clients on exit."""
    bootstrap = bootstrap_infrastructure()
    logger.info("=" * 60)
    logger.info("EVA WhatsApp bridge starting up...")
    logger.info(f"Environment: {Config.ENVIRONMENT}")
    logger.info(f"Infrastructure: {bootstrap!r}")
    for key in Config.missing():
        logger.warning(f"Missing setting: {key}")
    logger.info("=" * 60)
    await bootstrap.start()

    yield

    logger.info("EVA WhatsApp bridge shutting down...")
    await bootstrap.stop()


app = FastAPI(
    title="EVA WhatsApp Bridge",
    description="Relays WhatsApp conversations to the EVA assistant",
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log each request with its status and latency."""
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.debug(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response


app.include_router(whatsapp_router)


@app.get("/", response_class=PlainTextResponse)
async def root():
    """Plain-text page shown while setting up the webhook."""
    return "hello this is webhook setup"


@app.get("/health/live")
async def health_live():
    """Process is up."""
    return {"status": "alive"}


@app.get("/health/ready")
async def health_ready():
    """Required settings are present; reports the active wiring."""
    missing = Config.missing()
    if missing:
        return {"status": "not_ready", "reason": f"missing settings: {', '.join(missing)}"}

    bootstrap = InfraBootstrap._instance
    return {
        "status": "ready",
        "infrastructure": repr(bootstrap) if bootstrap else "not started",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=Config.PORT,
        reload=Config.ENVIRONMENT == "development",
    )
