"""
Redis client used for best-effort realtime fan-out of notifications.
"""
import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis

from kamleen.core.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[Redis] = None


async def get_redis() -> Optional[Redis]:
    """
    Singleton async Redis connection.
    Returns None when REDIS_URL is empty (realtime fan-out disabled).
    """
    global _redis_client

    if not settings.REDIS_URL:
        return None

    if _redis_client is None:
        client = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=2,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        try:
            await client.ping()
        except Exception as e:
            logger.error(f"✗ Redis connection failed: {e}")
            await client.close()
            raise
        _redis_client = client
        logger.info(f"✓ Redis connected: {settings.REDIS_URL.split('@')[-1]}")

    return _redis_client


async def close_redis():
    """Close Redis connection on shutdown"""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None
        logger.info("✓ Redis connection closed")


async def publish(channel: str, payload: Any) -> int:
    """Publish a JSON payload; returns the number of receivers (0 when disabled)."""
    client = await get_redis()
    if client is None:
        return 0
    return await client.publish(channel, json.dumps(payload, default=str))
