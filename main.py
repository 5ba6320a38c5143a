import logging

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.responses import JSONResponse
from uuid import UUID
from datetime import timedelta
from typing import List, Optional
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Item availability
    CreateBlockedDateRangeRequest, BlockedDateRangeResponse,
    ValidateDatesRequest, AvailabilityResponse,
    # Rental requests
    CreateRentalRequestRequest, UpdateRentalRequestRequest, TransitionRequest,
    RentalRequestResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, get_caller_identity, fake_users_db, get_user
from infrastructure.security import verify_password, create_access_token
from infrastructure.config import ACCESS_TOKEN_EXPIRE_MINUTES, LOG_LEVEL, EngineSettings
from domain.auth import CallerIdentity, User

from application.services import (
    BlockedCalendarService, RentalRequestLedgerService, AvailabilityChecker,
    BookingLifecycleController, ItemAccessGuard
)
from infrastructure.admission import VerificationAdmissionPolicy, InMemoryItemDirectory
from infrastructure.store import InMemoryDocumentStore
from infrastructure.repositories.in_memory_repositories import (
    InMemoryBlockedDateRangeRepository, InMemoryRentalRequestRepository
)
from domain.enums import RentalStatus, BlockReason
from domain.exceptions import (
    NotFoundError, PermissionDeniedError, StoreUnavailableError, VerificationRequiredError
)
from domain.value_objects import DateRange

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, LOG_LEVEL, logging.INFO)
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Rental Availability API",
    description="Availability and booking consistency engine for a peer-to-peer rental marketplace",
    version="1.0.0"
)

# Store client and collaborators, built once and handed to each component
store = InMemoryDocumentStore()
engine_settings = EngineSettings.from_env()
item_directory = InMemoryItemDirectory({
    "item-001": "user_owner",
    "item-002": "user_owner",
})
admission_policy = VerificationAdmissionPolicy()

block_repo = InMemoryBlockedDateRangeRepository(store)
request_repo = InMemoryRentalRequestRepository(store)


# Dependency injection
def get_calendar_service() -> BlockedCalendarService:
    return BlockedCalendarService(block_repo)


def get_ledger_service() -> RentalRequestLedgerService:
    return RentalRequestLedgerService(request_repo, engine_settings)


def get_availability_checker() -> AvailabilityChecker:
    return AvailabilityChecker(get_calendar_service(), get_ledger_service(), admission_policy)


def get_booking_controller() -> BookingLifecycleController:
    return BookingLifecycleController(get_ledger_service(), get_calendar_service(), engine_settings)


def get_access_guard() -> ItemAccessGuard:
    return ItemAccessGuard(admission_policy, item_directory)


# ============================================================================
# ERROR MAPPING
# ============================================================================

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(VerificationRequiredError)
async def verification_required_handler(request: Request, exc: VerificationRequiredError):
    return JSONResponse(status_code=403, content={"detail": str(exc), "verification_required": True})


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error("Store unavailable while handling %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy" if store.is_connected() else "degraded",
        "database": "connected" if store.is_connected() else "disconnected"
    }


@app.get("/api/enums/rental-status", tags=["Enum Reference"])
async def get_rental_statuses():
    """Get all RentalStatus enum values"""
    return {
        "values": [item.value for item in RentalStatus],
        "description": "Rental request status values: inquiry, pending, approved, declined, paid, completed, cancelled"
    }


@app.get("/api/enums/block-reason", tags=["Enum Reference"])
async def get_block_reasons():
    """Get all BlockReason enum values"""
    return {
        "values": [item.value for item in BlockReason],
        "description": "Blocked date reasons: personal_use, maintenance, repair, rented, other"
    }

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(
        data={"sub": user.username}, expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return UserResponse(
        user_id=current_user.user_id,
        username=current_user.username,
        email=current_user.email,
        full_name=current_user.full_name,
        role=current_user.role.value,
        verification_status=current_user.verification_status,
        disabled=current_user.disabled
    )

# ============================================================================
# ITEM AVAILABILITY ENDPOINTS
# ============================================================================

@app.get("/api/item-availability", response_model=List[BlockedDateRangeResponse], tags=["Item Availability"])
async def list_blocked_dates(
    item_id: Optional[str] = None,
    calendar: BlockedCalendarService = Depends(get_calendar_service)
):
    """Get blocked date ranges for an item"""
    if not item_id:
        raise HTTPException(status_code=400, detail="item_id query parameter is required")
    blocks = await calendar.list_blocks(item_id)
    return [_block_to_response(b) for b in blocks]


@app.post("/api/item-availability", response_model=BlockedDateRangeResponse, status_code=201, tags=["Item Availability"])
async def create_blocked_dates(
    request: CreateBlockedDateRangeRequest,
    calendar: BlockedCalendarService = Depends(get_calendar_service),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Block a date range for an item (owner or admin)"""
    await guard.ensure_can_manage(caller, request.item_id)
    try:
        block = await calendar.add_block(
            item_id=request.item_id,
            date_range=DateRange(start=request.blocked_start_date, end=request.blocked_end_date),
            reason=request.reason
        )
        return _block_to_response(block)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/api/item-availability/{block_id}", tags=["Item Availability"])
async def delete_blocked_dates(
    block_id: UUID,
    calendar: BlockedCalendarService = Depends(get_calendar_service),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Delete a blocked date range; deleting an absent one succeeds"""
    block = await calendar.get_block(block_id)
    if block is not None:
        await guard.ensure_can_manage(caller, block.item_id)
    await calendar.remove_block(block_id)
    return {"success": True}


@app.delete("/api/items/{item_id}/availability", tags=["Item Availability"])
async def clear_item_calendar(
    item_id: str,
    calendar: BlockedCalendarService = Depends(get_calendar_service),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Remove every blocked date range of an item"""
    await guard.ensure_can_manage(caller, item_id)
    deleted = await calendar.remove_blocks_for_item(item_id)
    return {"success": True, "deleted": deleted}

# ============================================================================
# RENTAL REQUEST ENDPOINTS
# ============================================================================

@app.post("/api/rental-requests/validate", response_model=AvailabilityResponse, response_model_exclude_none=True, tags=["Rental Requests"])
async def validate_rental_dates(
    request: ValidateDatesRequest,
    checker: AvailabilityChecker = Depends(get_availability_checker),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Check whether dates are free for an item; supports a range or individual days"""
    if request.selected_dates:
        candidate = request.selected_dates
    elif request.start_date and request.end_date:
        candidate = DateRange(start=request.start_date, end=request.end_date)
    else:
        raise HTTPException(
            status_code=400,
            detail="Either start_date/end_date or selected_dates array is required"
        )
    result = await checker.check_for_caller(caller, request.item_id, candidate)
    return AvailabilityResponse(**result.model_dump())


@app.post("/api/rental-requests", response_model=RentalRequestResponse, status_code=201, tags=["Rental Requests"])
async def create_rental_request(
    request: CreateRentalRequestRequest,
    controller: BookingLifecycleController = Depends(get_booking_controller),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Create a rental request; status approved books instantly"""
    await guard.ensure_can_book(caller)
    try:
        renter_id, owner_id = await guard.resolve_booking_parties(
            caller, request.item_id, request.renter_id, request.owner_id
        )
        rental_request = await controller.create_with_auto_approve(
            item_id=request.item_id,
            renter_id=renter_id,
            owner_id=owner_id,
            date_range=DateRange(start=request.start_date, end=request.end_date),
            total_amount=request.total_amount,
            message=request.message,
            requested_status=request.status
        )
        return _rental_request_to_response(rental_request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/rental-requests", response_model=List[RentalRequestResponse], tags=["Rental Requests"])
async def list_rental_requests(
    renter_id: Optional[str] = None,
    owner_id: Optional[str] = None,
    item_id: Optional[str] = None,
    sort: Optional[str] = None,
    ledger: RentalRequestLedgerService = Depends(get_ledger_service),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """List rental requests by renter, owner or item; defaults to the caller's own requests"""
    try:
        if renter_id:
            requests = await ledger.list_for_renter(renter_id, sort)
        elif owner_id:
            requests = await ledger.list_for_owner(owner_id, sort)
        elif item_id:
            requests = await ledger.list_for_item(item_id, sort)
        else:
            requests = await ledger.list_for_renter(caller.id, sort)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [_rental_request_to_response(r) for r in requests]


@app.get("/api/rental-requests/{request_id}", response_model=RentalRequestResponse, tags=["Rental Requests"])
async def get_rental_request(
    request_id: UUID,
    ledger: RentalRequestLedgerService = Depends(get_ledger_service),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Get rental request by ID"""
    rental_request = await ledger.get(request_id)
    if not rental_request:
        raise HTTPException(status_code=404, detail="Rental request not found")
    await guard.ensure_is_party(caller, rental_request)
    return _rental_request_to_response(rental_request)


@app.put("/api/rental-requests/{request_id}", response_model=RentalRequestResponse, tags=["Rental Requests"])
async def update_rental_request(
    request_id: UUID,
    request: UpdateRentalRequestRequest,
    controller: BookingLifecycleController = Depends(get_booking_controller),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Update dates, amount, message or status of a rental request"""
    current = await controller.ledger.require(request_id)
    await guard.ensure_is_party(caller, current)
    if request.status is not None and request.status != RentalStatus.CANCELLED:
        await guard.ensure_can_decide(caller, current)
    try:
        date_range = None
        if request.start_date is not None or request.end_date is not None:
            date_range = DateRange(
                start=request.start_date or current.date_range.start,
                end=request.end_date or current.date_range.end
            )
        rental_request = await controller.update(
            request_id,
            date_range=date_range,
            total_amount=request.total_amount,
            message=request.message,
            status=request.status
        )
        return _rental_request_to_response(rental_request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/api/rental-requests/{request_id}", tags=["Rental Requests"])
async def delete_rental_request(
    request_id: UUID,
    ledger: RentalRequestLedgerService = Depends(get_ledger_service),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Delete a rental request"""
    await guard.ensure_is_party(caller, await ledger.require(request_id))
    await ledger.delete(request_id)
    return {"success": True, "message": "Rental request deleted successfully"}


@app.post("/api/rental-requests/{request_id}/approve", response_model=RentalRequestResponse, tags=["Rental Requests"])
async def approve_rental_request(
    request_id: UUID,
    controller: BookingLifecycleController = Depends(get_booking_controller),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Approve a rental request and block its dates (owner or admin)"""
    await guard.ensure_can_decide(caller, await controller.ledger.require(request_id))
    try:
        return _rental_request_to_response(await controller.approve(request_id))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/rental-requests/{request_id}/cancel", response_model=RentalRequestResponse, tags=["Rental Requests"])
async def cancel_rental_request(
    request_id: UUID,
    controller: BookingLifecycleController = Depends(get_booking_controller),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Cancel a rental request (renter, owner or admin)"""
    await guard.ensure_is_party(caller, await controller.ledger.require(request_id))
    try:
        return _rental_request_to_response(await controller.cancel(request_id))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/rental-requests/{request_id}/decline", response_model=RentalRequestResponse, tags=["Rental Requests"])
async def decline_rental_request(
    request_id: UUID,
    controller: BookingLifecycleController = Depends(get_booking_controller),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Decline a rental request (owner or admin)"""
    await guard.ensure_can_decide(caller, await controller.ledger.require(request_id))
    try:
        return _rental_request_to_response(await controller.decline(request_id))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/rental-requests/{request_id}/transition", response_model=RentalRequestResponse, tags=["Rental Requests"])
async def transition_rental_request(
    request_id: UUID,
    request: TransitionRequest,
    controller: BookingLifecycleController = Depends(get_booking_controller),
    guard: ItemAccessGuard = Depends(get_access_guard),
    caller: CallerIdentity = Depends(get_caller_identity)
):
    """Move a rental request to any status allowed from its current one"""
    current = await controller.ledger.require(request_id)
    if request.status == RentalStatus.CANCELLED:
        await guard.ensure_is_party(caller, current)
    else:
        await guard.ensure_can_decide(caller, current)
    try:
        return _rental_request_to_response(await controller.transition(request_id, request.status))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _block_to_response(block) -> BlockedDateRangeResponse:
    """Convert BlockedDateRange entity to BlockedDateRangeResponse"""
    return BlockedDateRangeResponse(
        id=block.block_id,
        item_id=block.item_id,
        blocked_start_date=block.date_range.start,
        blocked_end_date=block.date_range.end,
        reason=block.reason.value,
        request_id=block.request_id,
        created_at=block.created_at
    )


def _rental_request_to_response(rental_request) -> RentalRequestResponse:
    """Convert RentalRequest entity to RentalRequestResponse"""
    return RentalRequestResponse(
        id=rental_request.request_id,
        item_id=rental_request.item_id,
        renter_id=rental_request.renter_id,
        owner_id=rental_request.owner_id,
        status=rental_request.status.value,
        start_date=rental_request.date_range.start,
        end_date=rental_request.date_range.end,
        total_amount=rental_request.total_amount,
        message=rental_request.message,
        created_date=rental_request.created_at,
        updated_date=rental_request.modified_at,
        version=rental_request.version
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
