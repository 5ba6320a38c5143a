"""Application Services - Business use cases"""
import logging
from uuid import UUID
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel

from domain.auth import CallerIdentity
from domain.entities import BlockedDateRange, RentalRequest
from domain.enums import RentalStatus, BlockReason
from domain.exceptions import (
    ConflictError, NotFoundError, PermissionDeniedError,
    StoreUnavailableError, VerificationRequiredError
)
from domain.policies import AdmissionPolicy, ItemDirectory
from domain.repositories import BlockedDateRangeRepository, RentalRequestRepository
from domain.state_machine import validate_transition
from domain.value_objects import DateRange, DayLike, to_day
from infrastructure.config import EngineSettings

logger = logging.getLogger(__name__)

Candidate = Union[DateRange, Iterable[DayLike]]

# Statuses that already hold the dates for the approval re-check
COMMITTED_STATUSES = frozenset({RentalStatus.APPROVED, RentalStatus.PAID})

SORT_FIELDS = {
    "created_at": lambda r: r.created_at,
    "created_date": lambda r: r.created_at,
    "updated_at": lambda r: r.modified_at,
    "updated_date": lambda r: r.modified_at,
    "modified_at": lambda r: r.modified_at,
    "start_date": lambda r: r.date_range.start,
    "end_date": lambda r: r.date_range.end,
    "total_amount": lambda r: r.total_amount,
    "status": lambda r: r.status.value,
}


class AvailabilityResult(BaseModel):
    """Answer of an availability check; advisory only"""
    available: bool
    verification_required: Optional[bool] = None


class BlockedCalendarService:
    """Explicit blocked intervals per item"""

    def __init__(self, repository: BlockedDateRangeRepository):
        self.repository = repository

    async def list_blocks(self, item_id: str) -> List[BlockedDateRange]:
        """Blocks of an item, ascending by start"""
        return await self.repository.find_by_item(item_id)

    async def get_block(self, block_id: UUID) -> Optional[BlockedDateRange]:
        return await self.repository.find_by_id(block_id)

    async def has_conflict(self, item_id: str, date_range: DateRange) -> bool:
        """Check whether any stored block of the item overlaps the range"""
        blocks = await self.repository.find_by_item(item_id)
        return any(block.covers(date_range) for block in blocks)

    async def add_block(
        self,
        item_id: str,
        date_range: DateRange,
        reason: BlockReason = BlockReason.PERSONAL_USE,
        request_id: Optional[UUID] = None
    ) -> BlockedDateRange:
        """Create a block unless it is unordered or overlaps an existing one.

        The overlap check and the insert are two separate store calls, so two
        concurrent callers can still both pass the check.
        """
        block = BlockedDateRange.create(
            item_id=item_id,
            date_range=date_range,
            reason=reason,
            request_id=request_id
        )

        if await self.has_conflict(item_id, date_range):
            raise ConflictError(item_id)

        saved = await self.repository.save(block)
        logger.info(
            "Created blocked date range %s for item %s (%s to %s, %s)",
            saved.block_id, item_id, date_range.start_day, date_range.end_day, reason.value
        )
        return saved

    async def remove_block(self, block_id: UUID) -> bool:
        """Delete a block; removing an absent block also succeeds"""
        deleted = await self.repository.delete(block_id)
        if deleted:
            logger.info("Deleted blocked date range %s", block_id)
        else:
            logger.debug("Blocked date range %s already absent", block_id)
        return True

    async def remove_blocks_for_item(self, item_id: str) -> int:
        """Drop the whole calendar of an item, e.g. when the item is deleted"""
        count = await self.repository.delete_by_item(item_id)
        logger.info("Deleted %d blocked date ranges for item %s", count, item_id)
        return count

    async def remove_blocks_for_request(self, request_id: UUID) -> int:
        """Drop the rented blocks materialized for one request"""
        count = 0
        for block in await self.repository.find_by_request(request_id):
            if block.reason == BlockReason.RENTED and await self.repository.delete(block.block_id):
                count += 1
        logger.info("Released %d rented blocks for request %s", count, request_id)
        return count


class RentalRequestLedgerService:
    """Booking requests and their lifecycle status"""

    def __init__(self, repository: RentalRequestRepository, settings: Optional[EngineSettings] = None):
        self.repository = repository
        self.settings = settings or EngineSettings()

    async def create(
        self,
        item_id: str,
        renter_id: str,
        owner_id: str,
        date_range: DateRange,
        total_amount: Decimal,
        message: Optional[str] = None,
        status: RentalStatus = RentalStatus.PENDING
    ) -> RentalRequest:
        """Store a new request; overlapping requests are not rejected here"""
        rental_request = RentalRequest.create(
            item_id=item_id,
            renter_id=renter_id,
            owner_id=owner_id,
            date_range=date_range,
            total_amount=total_amount,
            message=message,
            status=status
        )
        saved = await self.repository.save(rental_request)
        logger.info(
            "Created rental request %s for item %s (%s, %s to %s)",
            saved.request_id, item_id, saved.status.value,
            date_range.start_day, date_range.end_day
        )
        return saved

    async def get(self, request_id: UUID) -> Optional[RentalRequest]:
        return await self.repository.find_by_id(request_id)

    async def require(self, request_id: UUID) -> RentalRequest:
        rental_request = await self.repository.find_by_id(request_id)
        if rental_request is None:
            raise NotFoundError("Rental request", request_id)
        return rental_request

    async def list_active(self, item_id: str) -> List[RentalRequest]:
        """Requests of an item that occupy their dates"""
        return [r for r in await self.repository.find_by_item(item_id) if r.is_active()]

    async def list_for_item(self, item_id: str, sort: Optional[str] = None) -> List[RentalRequest]:
        return self._sorted(await self.repository.find_by_item(item_id), sort)

    async def list_for_renter(self, renter_id: str, sort: Optional[str] = None) -> List[RentalRequest]:
        return self._sorted(await self.repository.find_by_renter(renter_id), sort)

    async def list_for_owner(self, owner_id: str, sort: Optional[str] = None) -> List[RentalRequest]:
        return self._sorted(await self.repository.find_by_owner(owner_id), sort)

    async def transition(self, request_id: UUID, new_status: RentalStatus) -> RentalRequest:
        """Move a request to a new status"""
        rental_request = await self.require(request_id)
        previous = rental_request.status
        rental_request.transition_to(new_status, enforce=self.settings.enforce_status_transitions)
        updated = await self.repository.update(rental_request)
        logger.info("Rental request %s: %s -> %s", request_id, previous.value, new_status.value)
        return updated

    async def update(
        self,
        request_id: UUID,
        date_range: Optional[DateRange] = None,
        total_amount: Optional[Decimal] = None,
        message: Optional[str] = None,
        status: Optional[RentalStatus] = None
    ) -> RentalRequest:
        """Change dates, amount, message or status without re-checking availability"""
        rental_request = await self.require(request_id)
        rental_request.apply_changes(
            date_range=date_range,
            total_amount=total_amount,
            message=message,
            status=status,
            enforce=self.settings.enforce_status_transitions
        )
        return await self.repository.update(rental_request)

    async def delete(self, request_id: UUID) -> bool:
        if not await self.repository.delete(request_id):
            raise NotFoundError("Rental request", request_id)
        logger.info("Deleted rental request %s", request_id)
        return True

    @staticmethod
    def _sorted(requests: List[RentalRequest], sort: Optional[str]) -> List[RentalRequest]:
        """Sort by field name, '-' prefix for descending; newest update first by default"""
        if not sort:
            sort = "-modified_at"
        descending = sort.startswith("-")
        field = sort.lstrip("-")
        if field not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field: {field}")
        return sorted(requests, key=SORT_FIELDS[field], reverse=descending)


class AvailabilityChecker:
    """Answers whether every candidate day of an item is free"""

    def __init__(
        self,
        calendar: BlockedCalendarService,
        ledger: RentalRequestLedgerService,
        admission: Optional[AdmissionPolicy] = None
    ):
        self.calendar = calendar
        self.ledger = ledger
        self.admission = admission

    async def is_available(self, item_id: str, candidate: Candidate) -> AvailabilityResult:
        days = self._candidate_days(candidate)

        # Both sources are read once, not per day
        blocks = await self.calendar.list_blocks(item_id)
        active_requests = await self.ledger.list_active(item_id)

        for day in days:
            if any(block.date_range.contains(day) for block in blocks):
                return AvailabilityResult(available=False)
            if any(request.date_range.contains(day) for request in active_requests):
                return AvailabilityResult(available=False)

        return AvailabilityResult(available=True)

    async def check_for_caller(
        self,
        caller: CallerIdentity,
        item_id: str,
        candidate: Candidate
    ) -> AvailabilityResult:
        """Availability as seen by a caller who has not necessarily been verified"""
        if self.admission is not None and not await self.admission.can_book(caller):
            return AvailabilityResult(available=False, verification_required=True)
        return await self.is_available(item_id, candidate)

    @staticmethod
    def _candidate_days(candidate: Candidate) -> List[date]:
        if isinstance(candidate, DateRange):
            return candidate.days_between()
        return sorted({to_day(day) for day in candidate})


class ItemAccessGuard:
    """Ownership and verification checks in front of the engine"""

    def __init__(self, admission: AdmissionPolicy, items: ItemDirectory):
        self.admission = admission
        self.items = items

    async def ensure_can_manage(self, caller: CallerIdentity, item_id: str) -> str:
        """Return the owner id if caller may block or unblock dates of the item"""
        owner_id = await self.items.get_owner_id(item_id)
        if owner_id is None:
            raise NotFoundError("Item", item_id)
        if not await self.admission.can_manage_item(caller, owner_id):
            raise PermissionDeniedError("Only the item owner or admin can manage blocked dates")
        return owner_id

    async def ensure_can_book(self, caller: CallerIdentity) -> None:
        if not await self.admission.can_book(caller):
            raise VerificationRequiredError(
                "Verification is required to book items. Please connect your payment account."
            )

    async def resolve_booking_parties(
        self,
        caller: CallerIdentity,
        item_id: str,
        renter_id: Optional[str] = None,
        owner_id: Optional[str] = None
    ) -> Tuple[str, str]:
        """Return (renter_id, owner_id) for a new request on an existing item.

        The owner always comes from the item directory. Only admins may book
        on behalf of another renter.
        """
        item_owner = await self.items.get_owner_id(item_id)
        if item_owner is None:
            raise NotFoundError("Item", item_id)
        if owner_id is not None and owner_id != item_owner:
            raise ValueError("owner_id does not match the item owner")

        renter_id = renter_id or caller.id
        if renter_id != caller.id and not caller.is_admin:
            raise PermissionDeniedError("Rental requests can only be created for yourself")
        return renter_id, item_owner

    async def ensure_can_decide(self, caller: CallerIdentity, rental_request: RentalRequest) -> None:
        """Approve, decline and other status moves belong to the owner or an admin"""
        if not await self.admission.can_manage_item(caller, rental_request.owner_id):
            raise PermissionDeniedError("Only the item owner or admin can change this rental request")

    async def ensure_is_party(self, caller: CallerIdentity, rental_request: RentalRequest) -> None:
        if caller.id == rental_request.renter_id:
            return
        if not await self.admission.can_manage_item(caller, rental_request.owner_id):
            raise PermissionDeniedError("Only the renter, the item owner or admin can access this rental request")


class BookingLifecycleController:
    """Request creation, status changes and calendar auto-blocking"""

    def __init__(
        self,
        ledger: RentalRequestLedgerService,
        calendar: BlockedCalendarService,
        settings: Optional[EngineSettings] = None
    ):
        self.ledger = ledger
        self.calendar = calendar
        self.settings = settings or EngineSettings()

    async def request_booking(
        self,
        item_id: str,
        renter_id: str,
        owner_id: str,
        date_range: DateRange,
        total_amount: Decimal,
        message: Optional[str] = None,
        requested_status: Optional[RentalStatus] = None
    ) -> RentalRequest:
        """Create a request; callers check availability beforehand"""
        return await self.ledger.create(
            item_id=item_id,
            renter_id=renter_id,
            owner_id=owner_id,
            date_range=date_range,
            total_amount=total_amount,
            message=message,
            status=requested_status or RentalStatus.PENDING
        )

    async def create_with_auto_approve(
        self,
        item_id: str,
        renter_id: str,
        owner_id: str,
        date_range: DateRange,
        total_amount: Decimal,
        message: Optional[str] = None,
        requested_status: Optional[RentalStatus] = None
    ) -> RentalRequest:
        """Create a request and, for instant bookings, block its dates right away"""
        rental_request = await self.request_booking(
            item_id=item_id,
            renter_id=renter_id,
            owner_id=owner_id,
            date_range=date_range,
            total_amount=total_amount,
            message=message,
            requested_status=requested_status
        )
        if rental_request.status == RentalStatus.APPROVED:
            return await self.approve(rental_request.request_id)
        return rental_request

    async def approve(self, request_id: UUID) -> RentalRequest:
        """Approve a request, then block each of its days with reason rented.

        The status change is authoritative. Blocking is best effort: days that
        are already covered are skipped and per-day failures are logged, so a
        repeated approval converges on the same calendar.
        """
        if self.settings.revalidate_on_approve:
            await self._ensure_still_free(await self.ledger.require(request_id))

        rental_request = await self.ledger.transition(request_id, RentalStatus.APPROVED)
        await self._auto_block(rental_request)
        return rental_request

    async def cancel(self, request_id: UUID) -> RentalRequest:
        """Cancel a request; rented blocks stay unless release_blocks_on_cancel is set"""
        rental_request = await self.ledger.transition(request_id, RentalStatus.CANCELLED)
        if self.settings.release_blocks_on_cancel:
            await self.calendar.remove_blocks_for_request(request_id)
        return rental_request

    async def decline(self, request_id: UUID) -> RentalRequest:
        return await self.ledger.transition(request_id, RentalStatus.DECLINED)

    async def mark_paid(self, request_id: UUID) -> RentalRequest:
        return await self.ledger.transition(request_id, RentalStatus.PAID)

    async def complete(self, request_id: UUID) -> RentalRequest:
        return await self.ledger.transition(request_id, RentalStatus.COMPLETED)

    async def transition(self, request_id: UUID, new_status: RentalStatus) -> RentalRequest:
        """Generic status change, keeping the approval and cancel side effects"""
        if new_status == RentalStatus.APPROVED:
            return await self.approve(request_id)
        if new_status == RentalStatus.CANCELLED:
            return await self.cancel(request_id)
        return await self.ledger.transition(request_id, new_status)

    async def update(
        self,
        request_id: UUID,
        date_range: Optional[DateRange] = None,
        total_amount: Optional[Decimal] = None,
        message: Optional[str] = None,
        status: Optional[RentalStatus] = None
    ) -> RentalRequest:
        """Field update; a status change runs through transition for its side effects.

        Every check that can reject the status change runs before the fields
        are written, so a failed call leaves the stored request as it was.
        """
        if status is not None:
            current = await self.ledger.require(request_id)
            if self.settings.enforce_status_transitions:
                validate_transition(current.status, status)
            if status == RentalStatus.APPROVED and self.settings.revalidate_on_approve:
                proposed = current.model_copy(update={"date_range": date_range}) if date_range else current
                await self._ensure_still_free(proposed)

        rental_request = await self.ledger.update(
            request_id,
            date_range=date_range,
            total_amount=total_amount,
            message=message
        )
        if status is not None and status != rental_request.status:
            rental_request = await self.transition(request_id, status)
        return rental_request

    async def _auto_block(self, rental_request: RentalRequest) -> int:
        item_id = rental_request.item_id
        created = 0
        for day in rental_request.date_range.days_between():
            day_range = DateRange.for_day(day)
            try:
                await self.calendar.add_block(
                    item_id,
                    day_range,
                    BlockReason.RENTED,
                    request_id=rental_request.request_id
                )
                created += 1
            except ConflictError:
                logger.debug("Item %s already blocked on %s, skipping", item_id, day)
            except StoreUnavailableError as e:
                logger.warning(
                    "Could not block %s for item %s (request %s): %s",
                    day, item_id, rental_request.request_id, e
                )
        logger.info(
            "Auto-blocked %d day(s) for item %s from request %s",
            created, item_id, rental_request.request_id
        )
        return created

    async def _ensure_still_free(self, rental_request: RentalRequest) -> None:
        date_range = rental_request.date_range
        for block in await self.calendar.list_blocks(rental_request.item_id):
            if block.request_id != rental_request.request_id and block.covers(date_range):
                raise ConflictError(rental_request.item_id, "Requested dates are no longer available")
        for other in await self.ledger.list_for_item(rental_request.item_id):
            if (
                other.request_id != rental_request.request_id
                and other.status in COMMITTED_STATUSES
                and other.date_range.overlaps(date_range)
            ):
                raise ConflictError(rental_request.item_id, "Requested dates are no longer available")
