"""
Access tokens for desk staff.

Tokens are HS256-signed JWTs. Besides the identity claims each token
carries a random jti (so a single token can be revoked on logout) and the
float issue time iat_ts (compared with the per-user "revoked before"
marker written by block and logout-all).
"""

import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backend.app.core.config import settings


def build_token_payload(user) -> Dict[str, Any]:
    """Identity claims for a user: sub, user_id, role and display name."""
    return {
        "sub": user.username,
        "user_id": user.id,
        "role": user.role.value,
        "name": user.display_name,
    }


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = dict(data)
    claims["exp"] = datetime.now(timezone.utc) + lifetime
    claims["jti"] = uuid.uuid4().hex
    claims["iat_ts"] = time.time()
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verified claims of a token, or None when the signature or expiry is bad."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def token_seconds_left(payload: Dict[str, Any]) -> int:
    """Seconds until the token expires; used as the TTL of its revocation entry."""
    exp = payload.get("exp")
    if exp is None:
        return settings.access_token_expire_minutes * 60
    return max(int(exp - time.time()), 1)
