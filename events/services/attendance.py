# events/services/attendance.py
"""
Attendance Recorder.

The Attendance row is the only source of truth for "this ticket was used".
Its one-to-one index on ``ticket`` decides between concurrent scans; the
loser gets AlreadyScanned with the winner's timestamp. ``Ticket.is_scanned``
and ``Ticket.scanned_at`` are refreshed afterwards as a cache.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from core.constants import ACTIVITY_ATTENDANCE_DUPLICATE, ACTIVITY_ATTENDANCE_RECORDED
from events import policies
from events.exceptions import (
    AlreadyScanned,
    AuthorizationError,
    FestValidationError,
    NotFoundError,
    RegistrationInactive,
    WrongEvent,
)
from events.models import Attendance, Registration, Ticket
from events.services.registrations import get_event

logger = logging.getLogger('fest.attendance')

User = get_user_model()

EXPORT_HEADER = ["Name", "Email", "Ticket", "Scanned At", "Scan Method", "Scanned By", "Remarks"]


def _authorize(staff, event):
    if not policies.can_manage_attendance(staff, event):
        raise AuthorizationError("Access denied", code="not_event_staff")


def is_ticket_used(ticket) -> bool:
    return Attendance.objects.filter(ticket=ticket).exists()


def _refresh_ticket_cache(ticket, scanned_at):
    try:
        with transaction.atomic():
            Ticket.objects.filter(pk=ticket.pk).update(is_scanned=True, scanned_at=scanned_at)
    except DatabaseError as e:
        logger.warning(f"Could not refresh scan cache for ticket={ticket.ticket_id}: {e}")
        return
    ticket.is_scanned = True
    ticket.scanned_at = scanned_at


def record_attendance(event, ticket, scanned_by, method=Attendance.METHOD_SCAN, remarks="", now=None):
    """
    Mark `ticket` as used at `event`. Exactly one call per ticket succeeds.
    """
    _authorize(scanned_by, event)

    registration = ticket.registration
    if registration.event_id != event.id:
        raise WrongEvent()
    if not registration.is_active:
        raise RegistrationInactive()

    now = now or timezone.now()
    try:
        with transaction.atomic():
            attendance = Attendance.objects.create(
                event=event,
                ticket=ticket,
                registration=registration,
                participant_id=registration.participant_id,
                scanned_at=now,
                scanned_by=scanned_by,
                method=method,
                remarks=(remarks or "").strip(),
            )
    except IntegrityError:
        existing = Attendance.objects.filter(ticket=ticket).first()
        if existing is None:
            raise
        logger.warning(
            f"{ACTIVITY_ATTENDANCE_DUPLICATE}: ticket={ticket.ticket_id}, "
            f"first_scanned_at={existing.scanned_at.isoformat()}, by={scanned_by.id}"
        )
        raise AlreadyScanned(existing.scanned_at)

    _refresh_ticket_cache(ticket, attendance.scanned_at)

    logger.info(
        f"{ACTIVITY_ATTENDANCE_RECORDED}: event={event.id}, ticket={ticket.ticket_id}, "
        f"participant={registration.participant_id}, method={method}, by={scanned_by.id}"
    )
    return attendance


def scan(event_id, qr_code, staff, now=None):
    """Check-in from a scanned QR payload, matched verbatim."""
    event = get_event(event_id)
    _authorize(staff, event)

    qr_code = (qr_code or "").strip()
    if not qr_code:
        raise FestValidationError("qr_code is required", code="missing_field")

    ticket = (
        Ticket.objects
        .select_related("registration__participant")
        .filter(qr_code=qr_code)
        .first()
    )
    if ticket is None:
        raise NotFoundError("Invalid QR code", code="ticket_not_found")

    return record_attendance(event, ticket, staff, method=Attendance.METHOD_SCAN, now=now)


def manual(event_id, participant_email, staff, remarks="", now=None):
    """Staff override when the participant cannot present the QR code."""
    event = get_event(event_id)
    _authorize(staff, event)

    email = (participant_email or "").strip()
    if not email:
        raise FestValidationError("participant_email is required", code="missing_field")

    # emails are not unique across accounts, so match the registration itself
    matches = Registration.objects.filter(event=event, participant__email__iexact=email).order_by("created_at")
    registration = matches.filter(status=Registration.STATUS_REGISTERED).first() or matches.first()
    if registration is None:
        if not User.objects.filter(email__iexact=email).exists():
            raise NotFoundError("Participant not found", code="participant_not_found")
        raise NotFoundError("Participant not registered for this event", code="registration_not_found")

    ticket = Ticket.objects.select_related("registration__participant").filter(registration=registration).first()
    if ticket is None:
        raise NotFoundError("No ticket found for this registration", code="ticket_not_found")

    return record_attendance(
        event,
        ticket,
        staff,
        method=Attendance.METHOD_MANUAL,
        remarks=remarks,
        now=now,
    )


def attendance_records(event):
    return (
        Attendance.objects
        .filter(event=event)
        .select_related("participant", "scanned_by", "ticket")
        .order_by("-scanned_at")
    )


def attendance_summary(event_id, staff) -> dict:
    event = get_event(event_id)
    _authorize(staff, event)

    records = list(attendance_records(event))
    total = Registration.objects.filter(event=event, status=Registration.STATUS_REGISTERED).count()
    count = len(records)
    rate = round(count / total * 100, 2) if total else 0

    return {
        "event": event,
        "stats": {
            "total_registrations": total,
            "attendance_count": count,
            "attendance_rate": rate,
        },
        "records": records,
    }


def export_rows(event_id, staff):
    """Header plus one row per attendance record, oldest first."""
    event = get_event(event_id)
    _authorize(staff, event)

    rows = [EXPORT_HEADER]
    for record in attendance_records(event).order_by("scanned_at"):
        rows.append([
            record.participant.display_name,
            record.participant.email,
            record.ticket.ticket_id,
            record.scanned_at.strftime("%Y-%m-%d %H:%M:%S"),
            record.method,
            record.scanned_by.display_name,
            record.remarks,
        ])
    return event, rows
