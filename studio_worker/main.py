import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import config, metrics
from .auth_middleware import WorkerAuthMiddleware
from .jobs import generate_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Generation worker starting up...")
    if not config.get_kie_api_key():
        logger.error("KIEAI_API_KEY is not configured, every generation call will fail")
    if not config.storage_configured():
        logger.warning("Object store not configured, inline reference images will be dropped")
    yield
    logger.info("Generation worker shutting down...")


app = FastAPI(lifespan=lifespan)
app.add_middleware(WorkerAuthMiddleware)
app.include_router(generate_router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Keep the { success, error } shape for malformed request bodies."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    error = f"{field}: {message}" if field else message
    logger.info(f"Rejected {request.url.path}: {error}")
    return JSONResponse(status_code=422, content={"success": False, "error": error})


@app.get("/health")
def health_check():
    """Verify the worker is running and report which settings are present."""
    return {
        "status": "ok",
        "kie_api_key_set": bool(config.get_kie_api_key()),
        "storage_configured": config.storage_configured(),
    }


@app.get("/metrics")
def metrics_endpoint():
    """Return a snapshot of all worker metrics."""
    return metrics.get_snapshot()


if __name__ == "__main__":
    uvicorn.run("studio_worker.main:app", host="0.0.0.0", port=config.PORT)
