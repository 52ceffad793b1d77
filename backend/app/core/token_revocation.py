"""
Revoked-token store (Redis).

Two kinds of entries:

    revoked:jti:<jti>          one token, written on logout
    revoked:user:<id>:before   issue-time marker, written on block and
                               logout-all; covers every older token

Entries expire with the tokens they cover. Every operation fails open: a
Redis outage lets still-valid tokens through instead of locking the desk
out of billing.
"""

import logging
import time
from typing import Any, Dict, Optional
from backend.app.core import redis_client as redis_module
from backend.app.core.config import settings
from backend.app.core.jwt import token_seconds_left

logger = logging.getLogger(__name__)

REVOKED_JTI_PREFIX = "revoked:jti:"
REVOKED_USER_PREFIX = "revoked:user:"


def _user_marker_key(user_id: int) -> str:
    return f"{REVOKED_USER_PREFIX}{user_id}:before"


async def revoke_token(payload: Dict[str, Any]) -> bool:
    """Revoke the single token described by its decoded claims."""
    jti = payload.get("jti")
    if not jti:
        return False
    try:
        await redis_module.redis_client.setex(
            f"{REVOKED_JTI_PREFIX}{jti}",
            token_seconds_left(payload),
            str(payload.get("user_id")),
        )
        return True
    except Exception as e:
        logger.error("Could not revoke token of user %s: %s", payload.get("user_id"), e)
        return False


async def is_token_revoked(payload: Dict[str, Any]) -> bool:
    jti = payload.get("jti")
    if not jti:
        return False
    try:
        return await redis_module.redis_client.exists(f"{REVOKED_JTI_PREFIX}{jti}") > 0
    except Exception as e:
        logger.error("Token store lookup failed: %s", e)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Reject every token the user holds right now.

    A later login issues a token with a newer iat_ts and is accepted again.
    """
    try:
        await redis_module.redis_client.setex(
            _user_marker_key(user_id),
            settings.access_token_expire_minutes * 60,
            str(time.time()),
        )
        return True
    except Exception as e:
        logger.error("Could not revoke tokens of user %s: %s", user_id, e)
        return False


async def are_user_tokens_revoked(user_id: int, issued_at: Optional[float] = None) -> bool:
    """True when the token was issued at or before the user's revocation marker."""
    try:
        marker = await redis_module.redis_client.get(_user_marker_key(user_id))
    except Exception as e:
        logger.error("Token store lookup failed for user %s: %s", user_id, e)
        return False
    if marker is None:
        return False
    # Tokens without an issue time predate the marker scheme
    if issued_at is None:
        return True
    return float(issued_at) <= float(marker)


async def clear_user_token_revocation(user_id: int) -> bool:
    """Drop the revocation marker (unblock)."""
    try:
        await redis_module.redis_client.delete(_user_marker_key(user_id))
        return True
    except Exception as e:
        logger.error("Could not clear revocation marker of user %s: %s", user_id, e)
        return False
