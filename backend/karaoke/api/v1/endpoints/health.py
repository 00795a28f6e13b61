"""Health check endpoint."""
import logging
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from karaoke.core.config import settings
from karaoke.db.session import engine
from karaoke.utils.datetime_helpers import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

NO_STORE = {"Cache-Control": "no-store, max-age=0"}


def _environment_checks() -> dict:
    return {
        "databaseUrl": bool(settings.DATABASE_URL),
        "redisUrl": bool(settings.REDIS_URL),
        "youtubeApiKey": bool(settings.YOUTUBE_API_KEY),
        "appUrl": bool(settings.APP_URL),
    }


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    timestamp = utcnow().isoformat().replace("+00:00", "Z")
    try:
        env = _environment_checks()
        all_present = all(env.values())

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check failed")
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "timestamp": timestamp,
                "environment": settings.ENVIRONMENT,
                "version": settings.VERSION,
                "checks": {"database": "fail"},
                "details": {"message": "Database connection failed"},
            },
            headers=NO_STORE,
        )

    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "timestamp": timestamp,
            "environment": settings.ENVIRONMENT,
            "version": settings.VERSION,
            "checks": {
                "environmentVariables": "pass" if all_present else "warn",
                "database": "pass",
                "api": "pass",
            },
            "details": {
                "environmentVariables": env,
                "message": (
                    "All required environment variables are set"
                    if all_present
                    else "Some environment variables are missing"
                ),
            },
        },
        headers=NO_STORE,
    )
