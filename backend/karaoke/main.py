"""FastAPI application entry point."""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from karaoke.api.v1.endpoints import health
from karaoke.api.v1.router import api_router
from karaoke.core.config import settings
from karaoke.core.errors import KaraokeError, RequestTimeoutError
from karaoke.core.logging import setup_logging
from karaoke.core.redis import close_redis_client
from karaoke.db.session import init_db
from karaoke.services.change_feed import change_feed, RedisChangeFeed

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})")
    await init_db()
    yield
    logger.info(f"Shutting down {settings.PROJECT_NAME}")
    if isinstance(change_feed, RedisChangeFeed):
        await change_feed.close()
    await close_redis_client()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(KaraokeError)
async def karaoke_error_handler(request: Request, exc: KaraokeError):
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(level, f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(asyncio.TimeoutError)
async def timeout_handler(request: Request, exc: asyncio.TimeoutError):
    logger.error(f"{request.method} {request.url.path} timed out")
    err = RequestTimeoutError()
    return JSONResponse(status_code=err.status_code, content={"detail": err.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Something went wrong"})


app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(health.router)
