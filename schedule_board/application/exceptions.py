from __future__ import annotations


class MalformedBookingError(ValueError):
    """Raised when a raw booking record cannot be turned into a ServiceBooking."""
    pass


class BookingStoreError(RuntimeError):
    """Raised when the remote booking store fails a request."""

    def __init__(self, message: str, reason: str = "unavailable") -> None:
        super().__init__(message)
        self.reason = reason


class MutationRejectedError(BookingStoreError):
    """Raised when the store refuses a mutation (validation, conflict, permission, not_found)."""
    pass


class BookingStoreUnavailableError(BookingStoreError):
    """Raised on transport failures and 5xx responses."""

    def __init__(self, message: str) -> None:
        super().__init__(message, reason="unavailable")


class ScheduleFetchError(BookingStoreError):
    """Raised when the day schedule cannot be fetched."""
    pass


class MutationInFlightError(RuntimeError):
    """Raised when an entry already has a pending mutation."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Entry {entry_id} already has a change in progress")
        self.entry_id = entry_id


class MutationFailedError(RuntimeError):
    """Raised after a failed mutation has been rolled back; the message is user-facing."""

    def __init__(self, message: str, entry_id: str, domain: str | None = None, reason: str = "unavailable") -> None:
        super().__init__(message)
        self.entry_id = entry_id
        self.domain = domain
        self.reason = reason


class UnknownEntryError(LookupError):
    """Raised when an intent targets an entry that is not on the board."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"No schedule entry with id {entry_id}")
        self.entry_id = entry_id
