from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger

from gameplan.api.calendar import router as calendar_router
from gameplan.config.settings import settings
from gameplan.core.logger import setup_logger
from gameplan.db.session import init_db

# Initialize logger
setup_logger(level=settings.log_level, log_file=settings.log_file)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Ensure database tables exist before serving requests."""
    init_db()
    yield


app = FastAPI(title="Game Plan", lifespan=lifespan)

app.include_router(calendar_router)

logger.info("FastAPI application initialized")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.debug(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
    return response
