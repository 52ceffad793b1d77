"""
Bodies of the /admin endpoints: desk accounts, activity log, resets and
reports.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List, Literal, Dict
from backend.app.models.enums import UserRole
from backend.app.schemas.metrics import DashboardMetrics

PIN_PATTERN = r"^\d+$"


class UserCreateRequest(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    password_hint: Optional[str] = Field(default=None, max_length=255)
    role: UserRole = UserRole.STAFF
    # Needed to sign off documents as bill creator
    pin: Optional[str] = Field(default=None, min_length=4, max_length=6, pattern=PIN_PATTERN)


class UserListItem(BaseModel):
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    role: UserRole
    is_active: bool
    is_superuser: bool
    has_pin: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: List[UserListItem]
    total: int
    page: int
    page_size: int


class _ReasonRequest(BaseModel):
    # Stored in the activity log entry
    reason: Optional[str] = Field(default=None, max_length=500)


class BlockUserRequest(_ReasonRequest):
    pass


class UnblockUserRequest(_ReasonRequest):
    pass


class PinUpdateRequest(BaseModel):
    """New bill creator PIN; null removes it."""
    pin: Optional[str] = Field(default=None, min_length=4, max_length=6, pattern=PIN_PATTERN)


class AdminActionResponse(BaseModel):
    success: bool
    message: str
    user_id: int
    action: str
    audit_log_id: int


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[int]
    actor_username: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    entity_name: Optional[str]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int


class ResetDataRequest(BaseModel):
    """
    users    - every non-admin account
    finance  - all ledger rows; every balance back to zero
    invoices - all invoices
    tickets  - all tickets
    all      - everything above plus parties, receipts and counters
    """
    type: Literal["users", "finance", "invoices", "tickets", "all"]


class ResetDataResponse(BaseModel):
    success: bool
    message: str
    type: str
    # Rows deleted per table
    deleted: Dict[str, int]
    audit_log_id: int


class LogoutAllResponse(BaseModel):
    success: bool
    message: str
    users_logged_out: int
    audit_log_id: int


class ReportResponse(BaseModel):
    """Report snapshot; delivery (email) happens outside this service."""
    success: bool
    message: str
    metrics: DashboardMetrics
    audit_log_id: int
