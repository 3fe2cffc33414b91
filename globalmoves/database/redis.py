"""
Redis 연결 설정 및 관리

여러 워커 프로세스 간 룸 이벤트 중계(Pub/Sub)를 위한 Redis 연결을 제공합니다.
redis_url 이 설정되지 않은 경우 사용되지 않습니다.
"""

from typing import Optional
import redis.asyncio as redis
from redis.asyncio import ConnectionPool
from redis.exceptions import ConnectionError

from globalmoves.core.config import settings
from globalmoves.core.logging import get_logger

logger = get_logger(__name__)

# Redis 연결 인스턴스들
redis_client: Optional[redis.Redis] = None
redis_pool: Optional[ConnectionPool] = None


def is_redis_enabled() -> bool:
    return bool(settings.redis_url)


async def init_redis():
    """Redis 연결 초기화"""
    global redis_client, redis_pool

    try:
        redis_pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            decode_responses=True,
            encoding='utf-8'
        )
        redis_client = redis.Redis(connection_pool=redis_pool)

        # 연결 테스트
        await redis_client.ping()
        logger.info("Redis connection initialized successfully")

    except ConnectionError as e:
        logger.error(f"Redis connection failed: {e}")
        raise
    except Exception as e:
        logger.error(f"Redis initialization failed: {e}")
        raise


async def close_redis():
    """Redis 연결 종료"""
    global redis_client, redis_pool

    try:
        if redis_client:
            await redis_client.aclose()
            logger.info("Redis client closed")

        if redis_pool:
            await redis_pool.aclose()
            logger.info("Redis connection pool closed")

    except Exception as e:
        logger.error(f"Error closing Redis connections: {e}")
    finally:
        redis_client = None
        redis_pool = None


async def get_redis() -> redis.Redis:
    """Redis 클라이언트 인스턴스 반환"""
    if redis_client is None:
        await init_redis()

    return redis_client


async def check_redis_connection() -> bool:
    """Redis 연결 상태 확인"""
    try:
        if redis_client:
            return await redis_client.ping()
        return False
    except Exception as e:
        logger.error(f"Redis connection check failed: {e}")
        return False
