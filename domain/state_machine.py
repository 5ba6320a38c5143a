"""Rental request status transitions"""
from typing import Dict, FrozenSet

from domain.enums import RentalStatus
from domain.exceptions import InvalidTransitionError

S = RentalStatus

# Target statuses reachable from each status. Same-status moves are always
# accepted so that retried calls converge.
ALLOWED_TRANSITIONS: Dict[RentalStatus, FrozenSet[RentalStatus]] = {
    S.INQUIRY: frozenset({S.PENDING, S.APPROVED, S.DECLINED, S.CANCELLED}),
    S.PENDING: frozenset({S.APPROVED, S.DECLINED, S.CANCELLED, S.PAID}),
    S.APPROVED: frozenset({S.PAID, S.COMPLETED, S.CANCELLED, S.DECLINED}),
    S.PAID: frozenset({S.COMPLETED, S.CANCELLED}),
    S.DECLINED: frozenset(),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}


def is_allowed(current: RentalStatus, target: RentalStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS.get(current, frozenset())


def validate_transition(current: RentalStatus, target: RentalStatus) -> None:
    """Raise InvalidTransitionError if current -> target is not in the table"""
    if not is_allowed(current, target):
        raise InvalidTransitionError(current=current, target=target)
