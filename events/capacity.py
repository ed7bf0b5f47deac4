# events/capacity.py
"""
Capacity Gate.

Admission is a single conditional UPDATE on ``Event.registered_count``:
the row is only incremented when the limit still has room for the requested
seats, so concurrent callers can never both observe the last slot. Callers
must run the gate inside the same ``transaction.atomic`` block as the
registration insert it guards; rolling that block back gives the seats back.
"""
import logging

from django.db.models import F, Q

from .exceptions import EventFull
from .models import Event

logger = logging.getLogger('fest.events')


class Admitted:
    __slots__ = ("event_id", "seats")

    def __init__(self, event_id, seats):
        self.event_id = event_id
        self.seats = seats

    def __bool__(self):
        return True

    def __repr__(self):
        return f"Admitted(event_id={self.event_id}, seats={self.seats})"


def try_admit(event_id, seats=1):
    """
    Reserve `seats` registrations on the event or raise EventFull.
    """
    if seats < 1:
        return Admitted(event_id, 0)

    has_room = Q(registration_limit__isnull=True) | Q(
        registration_limit__gte=F("registered_count") + seats
    )
    updated = (
        Event.objects
        .filter(pk=event_id)
        .filter(has_room)
        .update(registered_count=F("registered_count") + seats)
    )
    if updated == 0:
        logger.warning(f"Capacity gate rejected event={event_id} seats={seats}")
        raise EventFull()
    return Admitted(event_id, seats)


def release(event_id, seats=1):
    """Give back seats after a registration leaves the confirmed set."""
    Event.objects.filter(pk=event_id, registered_count__gte=seats).update(
        registered_count=F("registered_count") - seats
    )


def remaining(event):
    """Seats left, or None for unlimited events. Informational only."""
    if event.registration_limit is None:
        return None
    return max(0, event.registration_limit - event.registered_count)
