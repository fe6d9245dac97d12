#app/rollcall/api/dependencies.py
from fastapi import Request, Depends
import redis.asyncio as redis
import asyncpg

from ..db.redis_client import RedisClient
from ..db.db_client import AsyncPostgresClient
from ..services.session_service import SessionService
from ..services.redemption_service import RedemptionService
from ..services.course_service import CourseService


def get_redis_pool(request: Request) -> redis.ConnectionPool:
    """Redis connection pool created by the lifespan handler."""
    return request.app.state.redis_pool

def get_postgres_pool(request: Request) -> asyncpg.Pool:
    """PostgreSQL connection pool created by the lifespan handler."""
    return request.app.state.postgres_pool


def get_db_client(postgres_pool: asyncpg.Pool = Depends(get_postgres_pool)) -> AsyncPostgresClient:
    return AsyncPostgresClient(pool=postgres_pool)

def get_redis_client(redis_pool: redis.ConnectionPool = Depends(get_redis_pool)) -> RedisClient:
    return RedisClient(pool=redis_pool)


def get_session_service(db_client: AsyncPostgresClient = Depends(get_db_client)) -> SessionService:
    """
    Builds a fresh SessionService for each request.

    Clients are cheap wrappers around the shared pools created at startup,
    so nothing is carried from one request to the next.
    """
    return SessionService(db_client=db_client)

def get_redemption_service(db_client: AsyncPostgresClient = Depends(get_db_client)) -> RedemptionService:
    return RedemptionService(db_client=db_client)

def get_course_service(db_client: AsyncPostgresClient = Depends(get_db_client)) -> CourseService:
    return CourseService(db_client=db_client)
