"""Domain Exceptions"""


class BookingEngineError(Exception):
    """Base error for the availability engine"""


class InvalidRangeError(BookingEngineError, ValueError):
    """Start is not before end, or amount is negative"""


class ConflictError(BookingEngineError, ValueError):
    """Requested dates overlap an existing block or booking"""

    def __init__(self, item_id: str, message: str = "Date range overlaps with existing blocked dates"):
        super().__init__(message)
        self.item_id = item_id


class NotFoundError(BookingEngineError):
    """Referenced request, block or item does not exist"""

    def __init__(self, kind: str, identifier):
        super().__init__(f"{kind} not found")
        self.kind = kind
        self.identifier = identifier


class InvalidTransitionError(BookingEngineError, ValueError):
    """Status change is not present in the transition table"""

    def __init__(self, current, target):
        super().__init__(f"Invalid rental status transition: {current.value} -> {target.value}")
        self.current = current
        self.target = target


class PermissionDeniedError(BookingEngineError):
    """Caller is neither the item owner nor an admin"""


class VerificationRequiredError(BookingEngineError):
    """Caller must complete verification before booking"""


class StoreUnavailableError(BookingEngineError):
    """Persistence layer cannot be reached; retry later"""
