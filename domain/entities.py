"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, timezone
from typing import Optional
from decimal import Decimal

from domain.enums import RentalStatus, BlockReason, ACTIVE_STATUSES
from domain.exceptions import InvalidRangeError
from domain.state_machine import validate_transition
from domain.value_objects import DateRange


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class BlockedDateRange(BaseModel):
    """Blocked calendar entry for one item"""

    block_id: UUID = Field(default_factory=uuid4)
    item_id: str
    date_range: DateRange
    reason: BlockReason = BlockReason.PERSONAL_USE

    # Set on rented blocks materialized by an approval
    request_id: Optional[UUID] = None

    created_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True

    @staticmethod
    def create(
        item_id: str,
        date_range: DateRange,
        reason: BlockReason = BlockReason.PERSONAL_USE,
        request_id: Optional[UUID] = None
    ) -> "BlockedDateRange":
        """Create new block; the range must be strictly ordered"""
        if not date_range.is_ordered():
            raise InvalidRangeError("blocked_start_date must be before blocked_end_date")
        return BlockedDateRange(
            item_id=item_id,
            date_range=date_range,
            reason=reason,
            request_id=request_id
        )

    def covers(self, other: DateRange) -> bool:
        return self.date_range.overlaps(other)


class RentalRequest(BaseModel):
    """Rental Request Aggregate Root Entity"""

    # Identity
    request_id: UUID = Field(default_factory=uuid4)

    # References to other contexts
    item_id: str
    renter_id: str
    owner_id: str

    # Value Objects
    date_range: DateRange
    total_amount: Decimal = Field(ge=0)
    message: Optional[str] = None

    status: RentalStatus = RentalStatus.PENDING

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    modified_at: datetime = Field(default_factory=utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        item_id: str,
        renter_id: str,
        owner_id: str,
        date_range: DateRange,
        total_amount: Decimal,
        message: Optional[str] = None,
        status: RentalStatus = RentalStatus.PENDING
    ) -> "RentalRequest":
        """Create new rental request with validation"""
        RentalRequest._validate_date_range(date_range)
        RentalRequest._validate_amount(total_amount)

        return RentalRequest(
            item_id=item_id,
            renter_id=renter_id,
            owner_id=owner_id,
            date_range=date_range,
            total_amount=_to_decimal(total_amount),
            message=RentalRequest._clean_message(message),
            status=status
        )

    # ==================== STATE TRANSITION METHODS ====================
    def transition_to(self, new_status: RentalStatus, enforce: bool = True) -> None:
        """Change status, checking the transition table when enforce is set"""
        if enforce:
            validate_transition(self.status, new_status)

        self.status = new_status
        self._touch()

    # ==================== MODIFICATION METHODS ====================
    def apply_changes(
        self,
        date_range: Optional[DateRange] = None,
        total_amount: Optional[Decimal] = None,
        message: Optional[str] = None,
        status: Optional[RentalStatus] = None,
        enforce: bool = True
    ) -> None:
        """Update mutable fields; availability is not re-checked"""
        if date_range is not None:
            RentalRequest._validate_date_range(date_range)
        if total_amount is not None:
            RentalRequest._validate_amount(total_amount)
        if status is not None and enforce:
            validate_transition(self.status, status)

        if date_range is not None:
            self.date_range = date_range
        if total_amount is not None:
            self.total_amount = _to_decimal(total_amount)
        if message is not None:
            self.message = RentalRequest._clean_message(message)
        if status is not None:
            self.status = status

        self._touch()

    # ==================== QUERY METHODS ====================
    def is_active(self) -> bool:
        """Active requests occupy their dates"""
        return self.status in ACTIVE_STATUSES

    # ==================== PRIVATE VALIDATION METHODS ====================
    @staticmethod
    def _validate_date_range(date_range: DateRange) -> None:
        if not date_range.is_ordered():
            raise InvalidRangeError("start_date must be before end_date")

    @staticmethod
    def _validate_amount(amount) -> None:
        if _to_decimal(amount) < 0:
            raise InvalidRangeError("total_amount must not be negative")

    @staticmethod
    def _clean_message(message: Optional[str]) -> Optional[str]:
        if message is None:
            return None
        return message.strip()

    def _touch(self) -> None:
        self.modified_at = utcnow()
        self.version += 1
