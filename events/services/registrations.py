# events/services/registrations.py
"""
Registration Ledger.

One registration per (event, participant), enforced by the unique index on
``Registration``. The insert comes first and the capacity gate second, both
inside one transaction: a duplicate is reported as AlreadyRegistered even on
a full event, and an EventFull rejection rolls the insert back.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from core.constants import (
    ACTIVITY_LIMIT_RAISED,
    ACTIVITY_REGISTRATION_CANCELLED,
    ACTIVITY_REGISTRATION_CREATED,
    ACTIVITY_REGISTRATION_REJECTED,
)
from events import capacity, policies
from events.exceptions import (
    AlreadyRegistered,
    AuthorizationError,
    DeadlinePassed,
    EventNotOpen,
    FestValidationError,
    NotFoundError,
    RegistrationInactive,
)
from events.models import Event, Registration, Team, TeamMember
from events.services import tickets
from events.tasks import notify_registered

logger = logging.getLogger('fest.events')


def get_event(event_id) -> Event:
    try:
        return Event.objects.get(pk=event_id)
    except Event.DoesNotExist:
        raise NotFoundError("Event not found", code="event_not_found")


def get_registration(registration_id) -> Registration:
    try:
        return Registration.objects.select_related("event", "participant").get(pk=registration_id)
    except Registration.DoesNotExist:
        raise NotFoundError("Registration not found", code="registration_not_found")


def ensure_accepting(event: Event, now) -> None:
    """Event must be published and before its deadline at `now`."""
    if not event.is_open:
        raise EventNotOpen()
    if event.deadline_passed(now):
        raise DeadlinePassed()


def in_forming_team(event_id, user) -> bool:
    return TeamMember.objects.filter(
        event_id=event_id,
        user=user,
        is_active=True,
        team__status=Team.STATUS_FORMING,
    ).exists()


def insert_registration(event_id, participant, kind, team=None) -> Registration:
    """
    Constraint-guarded insert. Raises AlreadyRegistered on a duplicate pair.
    Must be called inside an outer transaction.
    """
    try:
        with transaction.atomic():
            return Registration.objects.create(
                event_id=event_id,
                participant=participant,
                kind=kind,
                team=team,
            )
    except IntegrityError:
        raise AlreadyRegistered()


def register(event_id, participant, kind=Registration.KIND_INDIVIDUAL, now=None):
    """
    Register `participant` for the event and mint the ticket.

    Returns (registration, ticket).
    """
    now = now or timezone.now()
    event = get_event(event_id)

    if kind == Registration.KIND_INDIVIDUAL and event.event_type == Event.TYPE_MERCHANDISE:
        raise FestValidationError(
            "Use the purchase flow for merchandise events",
            code="wrong_event_type",
        )

    ensure_accepting(event, now)

    if in_forming_team(event.id, participant):
        raise AlreadyRegistered("You are already in a team for this event.")

    with transaction.atomic():
        registration = insert_registration(event.id, participant, kind)
        capacity.try_admit(event.id)
        ticket = tickets.issue(registration)
        notify_registered(registration.id)

    logger.info(
        f"{ACTIVITY_REGISTRATION_CREATED}: user={participant.id}, event={event.id}, "
        f"kind={kind}, ticket={ticket.ticket_id}"
    )
    return registration, ticket


def _close(registration_id, actor, new_status, allowed, verb, now=None):
    now = now or timezone.now()
    registration = get_registration(registration_id)

    if not allowed(actor, registration):
        raise AuthorizationError(code="not_owner")

    with transaction.atomic():
        updated = (
            Registration.objects
            .filter(pk=registration.pk, status=Registration.STATUS_REGISTERED)
            .update(status=new_status, closed_at=now)
        )
        if not updated:
            raise RegistrationInactive()
        capacity.release(registration.event_id)

    registration.status = new_status
    registration.closed_at = now
    logger.info(
        f"{verb}: registration={registration.id}, event={registration.event_id}, "
        f"actor={getattr(actor, 'id', 'unknown')}"
    )
    return registration


def cancel(registration_id, actor, now=None) -> Registration:
    """
    registered -> cancelled. Frees one capacity seat; the (event, participant)
    slot stays taken, so the participant cannot register again.
    """
    return _close(
        registration_id,
        actor,
        Registration.STATUS_CANCELLED,
        lambda user, reg: (
            policies.owns_registration(user, reg)
            or policies.can_manage_registrations(user, reg.event)
        ),
        ACTIVITY_REGISTRATION_CANCELLED,
        now=now,
    )


def reject(registration_id, actor, now=None) -> Registration:
    """Organizer-side registered -> rejected."""
    return _close(
        registration_id,
        actor,
        Registration.STATUS_REJECTED,
        lambda user, reg: policies.can_manage_registrations(user, reg.event),
        ACTIVITY_REGISTRATION_REJECTED,
        now=now,
    )


def raise_registration_limit(event_id, actor, new_limit) -> Event:
    """
    Organizer-side limit increase. `new_limit=None` lifts the limit.
    Decreases are refused so confirmed registrations never exceed the limit.
    """
    event = get_event(event_id)
    if not policies.can_manage_registrations(actor, event):
        raise AuthorizationError(code="not_organizer")

    if new_limit is not None:
        try:
            new_limit = int(new_limit)
        except (TypeError, ValueError):
            raise FestValidationError("registration_limit must be a positive integer", code="invalid_limit")
        if new_limit < 1:
            raise FestValidationError("registration_limit must be a positive integer", code="invalid_limit")

    current = event.registration_limit
    if current is None and new_limit is not None:
        raise FestValidationError("The limit can only be raised", code="limit_decrease")
    if current is not None and new_limit is not None and new_limit < current:
        raise FestValidationError("The limit can only be raised", code="limit_decrease")

    # re-checked against the row so a concurrent raise is never undone
    if new_limit is None:
        raised = Q()
    else:
        raised = Q(registration_limit__lte=new_limit, registered_count__lte=new_limit)
    try:
        with transaction.atomic():
            updated = Event.objects.filter(raised, pk=event.pk).update(registration_limit=new_limit)
    except IntegrityError:
        updated = 0
    if not updated:
        raise FestValidationError("The limit can only be raised", code="limit_decrease")

    event.registration_limit = new_limit
    logger.info(f"{ACTIVITY_LIMIT_RAISED}: event={event.id}, from={current}, to={new_limit}")
    return event


def registrations_for(participant):
    return (
        Registration.objects
        .filter(participant=participant)
        .select_related("event", "ticket")
        .order_by("-created_at")
    )
