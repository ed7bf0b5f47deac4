"""Typed errors raised by the registration core.

Every error is a DRF ``APIException`` so views let them propagate and
``core.exceptions.custom_exception_handler`` renders them. ``code`` is the
stable machine-readable reason; ``extra`` is merged into the response body.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class FestError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be completed."
    default_code = "error"

    def __init__(self, message=None, code=None, extra=None):
        self.code = code or self.default_code
        self.message = message or self.default_detail
        self.extra = extra or {}
        super().__init__(detail=self.message, code=self.code)

    def __str__(self):
        return f"{self.code}: {self.message}"


# ---- 400 -----------------------------------------------------------------

class FestValidationError(FestError):
    default_detail = "Invalid input."
    default_code = "invalid"


# ---- 400 / 409 -----------------------------------------------------------

class ConflictError(FestError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with the current state."
    default_code = "conflict"


class AlreadyRegistered(ConflictError):
    default_detail = "You are already registered for this event."
    default_code = "already_registered"


class EventFull(ConflictError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Event is full."
    default_code = "event_full"


class DeadlinePassed(ConflictError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Registration deadline has passed."
    default_code = "deadline_passed"


class EventNotOpen(ConflictError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Event is not open for registration."
    default_code = "event_not_open"


class TeamFull(ConflictError):
    default_detail = "This team is already full."
    default_code = "team_full"


class TeamNotForming(ConflictError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "This team is no longer accepting changes."
    default_code = "team_not_forming"


class AlreadyInTeam(ConflictError):
    default_detail = "You are already in a forming team for this event."
    default_code = "already_in_team"


class AlreadyIssued(ConflictError):
    default_detail = "A ticket was already issued for this registration."
    default_code = "already_issued"


class AlreadyScanned(ConflictError):
    default_detail = "Ticket already scanned."
    default_code = "already_scanned"

    def __init__(self, scanned_at, message=None):
        super().__init__(message=message, extra={"scanned_at": scanned_at})
        self.scanned_at = scanned_at


class RegistrationInactive(ConflictError):
    default_detail = "This registration is no longer active."
    default_code = "registration_inactive"


# ---- 404 -----------------------------------------------------------------

class NotFoundError(FestError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


# ---- 403 -----------------------------------------------------------------

class AuthorizationError(FestError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action."
    default_code = "forbidden"


class WrongEvent(AuthorizationError):
    default_detail = "This ticket is not for this event."
    default_code = "wrong_event"


# ---- 503 -----------------------------------------------------------------

class TransientStorageConflict(FestError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The resource is busy. Please retry."
    default_code = "retry_later"


class CodeAllocationExhausted(TransientStorageConflict):
    default_detail = "Could not allocate a unique invite code. Please retry."
    default_code = "code_allocation_exhausted"
