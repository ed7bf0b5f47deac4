# events/services/tickets.py
"""
Ticket Issuer: exactly one ticket per registration.

Exactly-once is enforced by the one-to-one index on ``Ticket.registration``;
the issuer never checks for an existing ticket before inserting.
"""
import logging
import secrets
from io import BytesIO

import qrcode
from django.db import IntegrityError, transaction

from core.conf import fest_setting
from core.constants import ACTIVITY_TICKET_ISSUED
from events.exceptions import AlreadyIssued, TransientStorageConflict
from events.models import Ticket

logger = logging.getLogger('fest.events')


def generate_ticket_id() -> str:
    """Human-readable id: prefix + 16 uppercase hex chars (64 bits)."""
    return f"{fest_setting('TICKET_PREFIX')}-{secrets.token_hex(8).upper()}"


def generate_qr_payload() -> str:
    """Opaque scan payload with 128 bits of entropy."""
    return secrets.token_urlsafe(16)


def issue(registration) -> Ticket:
    """
    Mint the ticket for `registration`.

    Raises AlreadyIssued if the registration already holds one.
    """
    attempts = fest_setting("TICKET_ID_MAX_ATTEMPTS")
    for _ in range(attempts):
        try:
            with transaction.atomic():
                ticket = Ticket.objects.create(
                    registration=registration,
                    ticket_id=generate_ticket_id(),
                    qr_code=generate_qr_payload(),
                )
        except IntegrityError:
            if Ticket.objects.filter(registration=registration).exists():
                raise AlreadyIssued()
            # ticket_id / qr_code collision, draw again
            continue

        logger.info(
            f"{ACTIVITY_TICKET_ISSUED}: ticket={ticket.ticket_id} "
            f"registration={registration.id} participant={registration.participant_id}"
        )
        return ticket

    raise TransientStorageConflict("Could not allocate a unique ticket id. Please retry.")


def issue_many(registrations) -> list:
    """
    Issue tickets for a batch. Registrations that already hold a ticket are
    skipped, not treated as failures. Returns the newly minted tickets.
    """
    issued = []
    for registration in registrations:
        try:
            issued.append(issue(registration))
        except AlreadyIssued:
            logger.info(f"Ticket already issued for registration={registration.id}, skipping")
    return issued


def render_qr_png(ticket) -> bytes:
    """PNG image of the ticket's scan payload, scanned verbatim at the door."""
    image = qrcode.make(ticket.qr_code)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
