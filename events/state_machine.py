# fest-backend/events/state_machine.py
"""
Team lifecycle state machine.

forming → complete
forming → cancelled

complete and cancelled are terminal. Transitions are applied with a
conditional UPDATE on the current status, so two racing transitions of the
same team cannot both succeed.
"""
from typing import Tuple
import logging

from django.utils import timezone

from .models import Team

logger = logging.getLogger('fest.teams')


# Valid state transitions: from_status -> list of allowed to_statuses
VALID_TRANSITIONS = {
    Team.STATUS_FORMING: [Team.STATUS_COMPLETE, Team.STATUS_CANCELLED],
    Team.STATUS_COMPLETE: [],
    Team.STATUS_CANCELLED: [],
}

_TIMESTAMP_FIELDS = {
    Team.STATUS_COMPLETE: "completed_at",
    Team.STATUS_CANCELLED: "cancelled_at",
}


def can_transition(team: Team, new_status: str) -> Tuple[bool, str]:
    """
    Check if a team can transition to a new status.

    Returns (can_transition: bool, reason: str)
    """
    current_status = team.status

    if new_status not in dict(Team.STATUS_CHOICES):
        return False, f"Invalid status: {new_status}"

    allowed = VALID_TRANSITIONS.get(current_status, [])

    if new_status not in allowed:
        return False, f"Cannot transition from '{current_status}' to '{new_status}'"

    return True, ""


def transition(team: Team, new_status: str, actor=None, now=None) -> Tuple[bool, str]:
    """
    Attempt to move a team to a new status.

    The write only lands if the stored status is still the one `team` was
    read with. On success `team` is updated in place.

    Returns (success: bool, message: str)
    """
    can, reason = can_transition(team, new_status)

    if not can:
        logger.warning(
            f"Invalid team transition attempted: team={team.id}, "
            f"from={team.status}, to={new_status}, actor={getattr(actor, 'id', 'unknown')}. "
            f"Reason: {reason}"
        )
        return False, reason

    now = now or timezone.now()
    old_status = team.status
    changes = {"status": new_status}
    stamp_field = _TIMESTAMP_FIELDS.get(new_status)
    if stamp_field:
        changes[stamp_field] = now

    updated = Team.objects.filter(pk=team.pk, status=old_status).update(**changes)
    if not updated:
        team.refresh_from_db(fields=["status"])
        reason = f"Team is already '{team.status}'"
        logger.warning(f"Lost team transition race: team={team.id}, to={new_status}. {reason}")
        return False, reason

    for field, value in changes.items():
        setattr(team, field, value)

    logger.info(
        f"Team state transition: team={team.id}, "
        f"from={old_status}, to={new_status}, actor={getattr(actor, 'id', 'unknown')}"
    )

    return True, f"Transitioned from '{old_status}' to '{new_status}'"


def get_allowed_transitions(team: Team) -> list:
    return VALID_TRANSITIONS.get(team.status, [])


def is_terminal_status(status: str) -> bool:
    """Check if a status is a terminal state (no further transitions)."""
    return status in VALID_TRANSITIONS and len(VALID_TRANSITIONS[status]) == 0
