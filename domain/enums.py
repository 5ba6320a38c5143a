"""Domain Enums"""
from enum import Enum


class RentalStatus(str, Enum):
    INQUIRY = "inquiry"
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BlockReason(str, Enum):
    PERSONAL_USE = "personal_use"
    MAINTENANCE = "maintenance"
    REPAIR = "repair"
    RENTED = "rented"
    OTHER = "other"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


# Statuses that occupy their date range for conflict purposes
ACTIVE_STATUSES = frozenset({
    RentalStatus.PENDING,
    RentalStatus.APPROVED,
    RentalStatus.PAID,
})

TERMINAL_STATUSES = frozenset({
    RentalStatus.DECLINED,
    RentalStatus.COMPLETED,
    RentalStatus.CANCELLED,
})
