# events/services/teams.py
"""
Team formation.

Joining is a conditional UPDATE of ``Team.member_count`` that only lands while
the team is forming and below ``max_size``; the member row is inserted in the
same transaction. The join that fills the last seat completes the team and
issues every member's registration and ticket before it commits, so a
capacity rejection during completion rolls the join back as a whole.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.conf import fest_setting
from core.constants import (
    ACTIVITY_TEAM_CANCELLED,
    ACTIVITY_TEAM_COMPLETED,
    ACTIVITY_TEAM_CREATED,
    ACTIVITY_TEAM_JOINED,
    ACTIVITY_TEAM_LEFT,
)
from events import capacity, invite_codes, policies, state_machine
from events.exceptions import (
    AlreadyInTeam,
    AlreadyRegistered,
    AuthorizationError,
    DeadlinePassed,
    EventNotOpen,
    FestValidationError,
    NotFoundError,
    TeamFull,
    TeamNotForming,
    TransientStorageConflict,
)
from events.models import Registration, Team, TeamMember
from events.services import tickets
from events.services.registrations import get_event
from events.tasks import notify_team_completed

logger = logging.getLogger('fest.teams')


# ---- lookups -------------------------------------------------------------

def get_team(team_id) -> Team:
    try:
        return Team.objects.select_related("event").get(pk=team_id)
    except Team.DoesNotExist:
        raise NotFoundError("Team not found", code="team_not_found")


def _join_rejection(team):
    # A complete team is by definition full.
    if team.status == Team.STATUS_COMPLETE:
        return TeamFull()
    return TeamNotForming("This team is no longer accepting members")


def _has_active_membership(event_id, user, exclude_team=None) -> bool:
    qs = TeamMember.objects.filter(
        event_id=event_id,
        user=user,
        is_active=True,
        team__status=Team.STATUS_FORMING,
    )
    if exclude_team is not None:
        qs = qs.exclude(team=exclude_team)
    return qs.exists()


def _validate_size(event, requested_size) -> int:
    try:
        size = int(requested_size)
    except (TypeError, ValueError):
        size = 0

    low = max(event.team_min_size, fest_setting("TEAM_MIN_SIZE_FLOOR"))
    high = min(event.team_max_size, fest_setting("TEAM_MAX_SIZE_CEILING"))
    if size < low or size > high:
        raise FestValidationError(
            f"Team size must be between {low} and {high}",
            code="invalid_team_size",
        )
    return size


# ---- create --------------------------------------------------------------

def create_team(event_id, leader, name, requested_size, now=None) -> Team:
    now = now or timezone.now()
    name = (name or "").strip()
    if not name:
        raise FestValidationError("Team name is required", code="missing_field")

    event = get_event(event_id)
    if not event.is_open:
        raise EventNotOpen()
    if not event.team_registration_enabled:
        raise FestValidationError(
            "This event does not support team registration",
            code="team_registration_disabled",
        )
    if event.deadline_passed(now):
        raise DeadlinePassed()

    size = _validate_size(event, requested_size)

    if Registration.objects.filter(event=event, participant=leader).exists():
        raise AlreadyRegistered()
    if _has_active_membership(event.id, leader):
        raise AlreadyInTeam()

    with transaction.atomic():
        team = invite_codes.allocate(
            lambda code: Team.objects.create(
                event=event,
                leader=leader,
                name=name[:60],
                invite_code=code,
                max_size=size,
                member_count=1,
            )
        )
        try:
            with transaction.atomic():
                TeamMember.objects.create(team=team, event=event, user=leader)
        except IntegrityError:
            raise AlreadyInTeam()

    logger.info(
        f"{ACTIVITY_TEAM_CREATED}: team={team.id}, event={event.id}, "
        f"leader={leader.id}, max_size={size}"
    )
    return team


# ---- join ----------------------------------------------------------------

def _take_seat(team) -> None:
    """
    Reserve one seat on the team or raise TeamFull / TeamNotForming.

    A zero-row update is re-read to decide why; if the team is still forming
    with room (a concurrent leave moved the count) the update is retried a
    bounded number of times.
    """
    attempts = fest_setting("OPTIMISTIC_RETRY_ATTEMPTS")
    for _ in range(attempts):
        updated = (
            Team.objects
            .filter(
                pk=team.pk,
                status=Team.STATUS_FORMING,
                member_count__lt=F("max_size"),
            )
            .update(member_count=F("member_count") + 1, version=F("version") + 1)
        )
        if updated:
            return

        team.refresh_from_db(fields=["status", "member_count", "max_size", "version"])
        if not team.is_forming:
            raise _join_rejection(team)
        if team.member_count >= team.max_size:
            raise TeamFull()

    raise TransientStorageConflict()


def join_by_code(invite_code, user, now=None) -> Team:
    """
    Join the forming team holding `invite_code`.

    Returns the refreshed team; `team.status` is 'complete' when this join
    filled the last seat.
    """
    now = now or timezone.now()
    code = invite_codes.normalize(invite_code)
    if not code:
        raise FestValidationError("Invite code is required", code="missing_field")
    if not invite_codes.is_well_formed(code):
        raise NotFoundError("Invalid invite code", code="team_not_found")

    team = (
        Team.objects
        .select_related("event")
        .filter(invite_code=code)
        .first()
    )
    if team is None:
        raise NotFoundError("Invalid invite code", code="team_not_found")

    event = team.event
    if not team.is_forming:
        raise _join_rejection(team)
    if event.deadline_passed(now):
        raise DeadlinePassed()

    if TeamMember.objects.filter(team=team, user=user).exists():
        raise AlreadyInTeam("You are already in this team")
    if _has_active_membership(event.id, user, exclude_team=team):
        raise AlreadyInTeam("You are already in another team for this event")
    if Registration.objects.filter(event=event, participant=user).exists():
        raise AlreadyRegistered()

    with transaction.atomic():
        _take_seat(team)
        try:
            with transaction.atomic():
                TeamMember.objects.create(team=team, event=event, user=user)
        except IntegrityError:
            raise AlreadyInTeam()

        team.refresh_from_db()
        if team.member_count >= team.max_size:
            _complete(team, actor=user, now=now)

    logger.info(
        f"{ACTIVITY_TEAM_JOINED}: team={team.id}, user={user.id}, "
        f"size={team.member_count}/{team.max_size}"
    )
    return team


def _complete(team, actor=None, now=None):
    ok, reason = state_machine.transition(team, Team.STATUS_COMPLETE, actor=actor, now=now)
    if not ok:
        raise TeamNotForming(reason)

    issued = issue_team_tickets(team)
    notify_team_completed(team.id)
    logger.info(
        f"{ACTIVITY_TEAM_COMPLETED}: team={team.id}, event={team.event_id}, "
        f"tickets_issued={len(issued)}"
    )
    return issued


def issue_team_tickets(team) -> list:
    """
    Register and ticket every member of a complete team.

    Idempotent: members who already hold a registration for the event (by
    race, or from an earlier run) are skipped, and existing tickets are left
    alone. The seats for the newly inserted registrations go through the
    capacity gate in one step, so either the whole batch fits or EventFull
    aborts the caller's transaction.
    """
    if team.status != Team.STATUS_COMPLETE:
        logger.warning(f"Refusing to issue tickets for team={team.id} in status={team.status}")
        return []

    members = list(team.members.select_related("user"))

    with transaction.atomic():
        inserted = []
        for member in members:
            try:
                with transaction.atomic():
                    inserted.append(
                        Registration.objects.create(
                            event_id=team.event_id,
                            participant=member.user,
                            kind=Registration.KIND_TEAM,
                            team=team,
                        )
                    )
            except IntegrityError:
                logger.info(
                    f"Member user={member.user_id} of team={team.id} already registered, skipping"
                )

        capacity.try_admit(team.event_id, seats=len(inserted))

        team_registrations = Registration.objects.filter(
            team=team,
            status=Registration.STATUS_REGISTERED,
        ).order_by("id")
        return tickets.issue_many(team_registrations)


# ---- leave / cancel ------------------------------------------------------

def leave(team_id, user) -> Team:
    team = get_team(team_id)

    if not policies.is_team_member(user, team):
        raise AuthorizationError("You are not in this team", code="not_member")
    if policies.is_team_leader(user, team):
        raise FestValidationError(
            "Leaders cannot leave; cancel the team instead",
            code="leader_cannot_leave",
        )
    if not team.is_forming:
        raise TeamNotForming()

    with transaction.atomic():
        updated = (
            Team.objects
            .filter(pk=team.pk, status=Team.STATUS_FORMING, member_count__gt=1)
            .update(member_count=F("member_count") - 1, version=F("version") + 1)
        )
        if not updated:
            team.refresh_from_db()
            if team.is_forming:
                raise AuthorizationError("You are not in this team", code="not_member")
            raise TeamNotForming()

        deleted, _ = TeamMember.objects.filter(team=team, user=user).delete()
        if not deleted:
            raise AuthorizationError("You are not in this team", code="not_member")

    team.refresh_from_db()
    logger.info(f"{ACTIVITY_TEAM_LEFT}: team={team.id}, user={user.id}")
    return team


def cancel(team_id, leader, now=None) -> Team:
    """Leader-only terminal transition forming -> cancelled."""
    team = get_team(team_id)

    if not policies.is_team_leader(leader, team):
        raise AuthorizationError("Only the team leader can cancel the team", code="not_leader")

    with transaction.atomic():
        ok, reason = state_machine.transition(team, Team.STATUS_CANCELLED, actor=leader, now=now)
        if not ok:
            raise TeamNotForming(reason)
        # Frees members to form or join other teams for the event.
        TeamMember.objects.filter(team=team).update(is_active=False)

    logger.info(f"{ACTIVITY_TEAM_CANCELLED}: team={team.id}, leader={leader.id}")
    return team


# ---- reads ---------------------------------------------------------------

def team_detail(team_id, user) -> Team:
    team = get_team(team_id)
    if not policies.is_team_member(user, team):
        raise AuthorizationError("Access denied", code="not_member")
    return team


def teams_for(user):
    return (
        Team.objects
        .filter(members__user=user)
        .select_related("event", "leader")
        .prefetch_related("members__user")
        .order_by("-created_at")
        .distinct()
    )
