"""
Role guards for the billing endpoints.

Counter staff (STAFF) issue invoices, tickets, receipts and manual ledger
postings. Deleting documents or parties, resets and account management
are reserved for the superadmin (ADMIN).
"""

from typing import Iterable
from fastapi import Depends, HTTPException, status
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user


def _token_role(current_user: dict) -> UserRole:
    """Role claim of a decoded token; malformed claims are a 403."""
    role = current_user.get("role")
    if not role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Role information missing from token"
        )
    try:
        return UserRole(role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid role in token"
        )


def require_role(allowed_roles: Iterable[UserRole]):
    """
    Build a dependency that admits only the given roles.

    Usage:
        @router.delete("/invoices/{invoice_id}")
        async def delete_invoice(admin: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Returns:
        FastAPI dependency returning the token payload
    """
    allowed = frozenset(allowed_roles)

    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if _token_role(current_user) not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Required role: " + ", ".join(sorted(r.value for r in allowed))
            )
        return current_user

    return role_checker


# Destructive operations: document/party deletion, resets, staff accounts
require_admin = require_role([UserRole.ADMIN])

# Any signed-in counter user
require_staff = require_role([UserRole.ADMIN, UserRole.STAFF])
