# fest-backend/events/policies.py
"""
Centralized capability checks for the registration core.

Every check takes an explicit actor and resource and returns a bool.
Services call these and raise AuthorizationError themselves.
"""
from typing import Optional

from .models import Event, EventStaff, Team, TeamMember, Registration


def _authenticated(user) -> bool:
    return bool(user) and getattr(user, "is_authenticated", False)


def is_system_admin(user) -> bool:
    """Check if user is a system-level admin."""
    if not _authenticated(user):
        return False
    return user.is_superuser or getattr(user, "role", None) == "admin"


def is_event_organizer(user, event: Optional[Event]) -> bool:
    """Check if user is the event creator/organizer."""
    if not _authenticated(user) or event is None:
        return False
    return event.organizer_id == user.id


def is_event_staff(user, event: Optional[Event]) -> bool:
    if not _authenticated(user) or event is None:
        return False
    return EventStaff.objects.filter(event=event, user=user, is_active=True).exists()


def can_manage_registrations(user, event: Optional[Event]) -> bool:
    """Organizer-side actions: reject registrations, raise the limit."""
    return is_system_admin(user) or is_event_organizer(user, event)


def can_manage_attendance(user, event: Optional[Event]) -> bool:
    """Scanning, manual check-in, attendance list and export."""
    return (
        is_system_admin(user)
        or is_event_organizer(user, event)
        or is_event_staff(user, event)
    )


def owns_registration(user, registration: Registration) -> bool:
    if not _authenticated(user):
        return False
    return registration.participant_id == user.id


def is_team_leader(user, team: Team) -> bool:
    if not _authenticated(user):
        return False
    return team.leader_id == user.id


def is_team_member(user, team: Team) -> bool:
    if not _authenticated(user):
        return False
    return TeamMember.objects.filter(team=team, user=user).exists()
