"""
Authentication dependencies.

Every billing endpoint runs behind get_current_user: the bearer token must
decode, must not be revoked (logout, block, logout-all) and must belong to
an account that is still active.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from backend.app.db.session import get_db
from backend.app.models.user import User

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    Resolve the signed-in staff member.

    Returns the token claims (sub, user_id, role, name). "name" is refreshed
    from the account so documents always carry the creator's current name.

    Raises:
        HTTPException 401: bad/expired/revoked token or unknown account
        HTTPException 403: account blocked
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    if await is_token_revoked(payload):
        raise _unauthorized("Token has been revoked")

    # Block and logout-all revoke every token issued before the marker
    if await are_user_tokens_revoked(user_id, payload.get("iat_ts")):
        raise _unauthorized("User access has been revoked")

    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    payload["name"] = user.display_name
    return payload
