"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import BlockReason, RentalStatus


# ============================================================================
# ITEM AVAILABILITY SCHEMAS
# ============================================================================

class CreateBlockedDateRangeRequest(BaseModel):
    """Create blocked date range request DTO"""
    item_id: str
    blocked_start_date: datetime
    blocked_end_date: datetime
    reason: BlockReason = BlockReason.PERSONAL_USE


class BlockedDateRangeResponse(BaseModel):
    """Blocked date range response DTO"""
    id: UUID
    item_id: str
    blocked_start_date: datetime
    blocked_end_date: datetime
    reason: str
    request_id: Optional[UUID] = None
    created_at: datetime


class ValidateDatesRequest(BaseModel):
    """Validate dates request DTO; a date range or a set of individual days"""
    item_id: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    selected_dates: Optional[List[datetime]] = None


class AvailabilityResponse(BaseModel):
    """Availability response DTO"""
    available: bool
    verification_required: Optional[bool] = None


# ============================================================================
# RENTAL REQUEST SCHEMAS
# ============================================================================

class CreateRentalRequestRequest(BaseModel):
    """Create rental request DTO"""
    item_id: str
    renter_id: Optional[str] = Field(default=None, description="Defaults to the caller")
    owner_id: Optional[str] = Field(default=None, description="Resolved from the item; must match when given")
    start_date: datetime
    end_date: datetime
    total_amount: Decimal
    message: Optional[str] = None
    status: RentalStatus = Field(default=RentalStatus.PENDING, description="Initial status; approved means instant booking")


class UpdateRentalRequestRequest(BaseModel):
    """Update rental request DTO"""
    status: Optional[RentalStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    total_amount: Optional[Decimal] = None
    message: Optional[str] = None


class TransitionRequest(BaseModel):
    """Status transition DTO"""
    status: RentalStatus


class RentalRequestResponse(BaseModel):
    """Rental request response DTO"""
    id: UUID
    item_id: str
    renter_id: str
    owner_id: str
    status: str
    start_date: datetime
    end_date: datetime
    total_amount: Decimal
    message: Optional[str] = None
    created_date: datetime
    updated_date: datetime
    version: int


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: str
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str
    verification_status: str
    disabled: bool
