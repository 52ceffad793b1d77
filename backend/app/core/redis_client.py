"""
Redis connection for the token store.

Only authentication state lives in Redis (revoked tokens and per-user
"revoked before" markers). Billing data never does, so the API keeps
serving when Redis is unreachable; revocation checks then fail open.
"""

import logging
import redis.asyncio as redis
from backend.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def token_store_available() -> bool:
    """True when the token store answers a PING (reported by /health)."""
    try:
        return bool(await redis_client.ping())
    except Exception as e:
        logger.warning("Token store unreachable: %s", e)
        return False


async def close_token_store() -> None:
    """Release the connection pool on shutdown."""
    await redis_client.aclose()
