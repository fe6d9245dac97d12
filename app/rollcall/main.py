from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import redis.asyncio as redis
import asyncpg
from apscheduler.schedulers.asyncio import AsyncIOScheduler as Scheduler
import logging

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config.config import settings
from .logging.logging_config import setup_logging
from .api import attendance, auth, courses, sessions
from .db.db_client import AsyncPostgresClient
from .tasks.cron import deactivate_expired_sessions_task
from .api.utilities.limiter import limiter

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates the shared connection pools and the session sweeper on startup
    and releases them on shutdown.
    """
    logger.info("Starting application...")

    postgres_pool = await asyncpg.create_pool(
        dsn=settings.DATABASE_URL, min_size=5, max_size=20
    )
    redis_pool = redis.ConnectionPool.from_url(
        settings.APPLICATION_REDIS_URL, decode_responses=True
    )
    app.state.postgres_pool = postgres_pool
    app.state.redis_pool = redis_pool
    logger.info("PostgreSQL and Redis connection pools created.")

    db_client = AsyncPostgresClient(pool=postgres_pool)
    if settings.APPLY_SCHEMA_ON_STARTUP:
        await db_client.apply_schema()
        logger.info("Database schema applied.")

    scheduler = Scheduler()
    scheduler.add_job(
        deactivate_expired_sessions_task,
        "interval",
        minutes=settings.SESSION_SWEEP_INTERVAL_MINUTES,
        args=[db_client],
        id="deactivate_expired_sessions",
    )
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info("Session sweeper scheduled.")

    try:
        yield
    finally:
        logger.info("Shutting down application...")
        scheduler.shutdown(wait=False)
        await postgres_pool.close()
        await redis_pool.disconnect()
        logger.info("Scheduler stopped and connection pools closed.")


app = FastAPI(
    title="Rollcall API",
    description="Code-based classroom attendance: instructors open sessions, students redeem codes.",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are client errors like any other bad input: 400."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


app.include_router(auth.router, prefix="/api/v1")
app.include_router(sessions.router, prefix="/api/v1")
app.include_router(attendance.router, prefix="/api/v1")
app.include_router(courses.router, prefix="/api/v1")
app.include_router(courses.students_router, prefix="/api/v1")


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok", "message": "Rollcall API is running."}
