"""Error taxonomy for the scheduling core.

Every error below is an expected condition surfaced to the caller; the HTTP layer
maps ``code`` and ``status_code`` straight into the response.
"""

from fastapi import status


class SchedulingError(Exception):
    code = "scheduling_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidConfiguration(SchedulingError):
    """Slot catalog parameters are malformed (setup-time)."""

    code = "invalid_configuration"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InvalidRequest(SchedulingError):
    code = "invalid_request"
    status_code = 422


class InvalidDate(SchedulingError):
    code = "invalid_date"
    status_code = 422


class UnknownSlot(SchedulingError):
    code = "unknown_slot"
    status_code = 422


class SlotConflict(SchedulingError):
    """The (resource, date, slot) key is already held by an active appointment."""

    code = "slot_conflict"
    status_code = status.HTTP_409_CONFLICT


class InvalidTransition(SchedulingError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class NotFound(SchedulingError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class StorageUnavailable(SchedulingError):
    """Lower-level storage failure. Not retried here; the caller decides."""

    code = "storage_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
