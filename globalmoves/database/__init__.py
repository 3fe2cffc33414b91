import logging
from .mysql import init_db, close_db, check_db_connection, get_async_session
from .redis import init_redis, close_redis, check_redis_connection, is_redis_enabled

logger = logging.getLogger(__name__)


async def init_databases():
    """Initialize SQL database and (optionally) Redis"""
    try:
        await init_db()
        logger.info("SQL database initialization completed")

        if is_redis_enabled():
            await init_redis()
            logger.info("Redis initialization completed")

        logger.info("All databases initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


async def close_databases():
    """Close all database connections"""
    try:
        await close_db()
        if is_redis_enabled():
            await close_redis()
        logger.info("All database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")


async def check_database_health():
    """Check health of all database connections"""
    db_status = await check_db_connection()
    health = {"database": db_status}

    if is_redis_enabled():
        health["redis"] = await check_redis_connection()

    health["overall"] = all(health.values())
    return health

__all__ = [
    "init_databases",
    "close_databases",
    "check_database_health",
    "get_async_session",
]
