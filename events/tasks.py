# events/tasks.py
"""
Notification dispatch.

Notifications run after the surrounding transaction commits and never
propagate failures back into the registration core.
"""
import logging

from celery import shared_task
from django.db import transaction

from .models import Registration, Team
from .emails import send_registration_email, send_team_complete_email

logger = logging.getLogger('fest.notifications')


@shared_task
def send_registration_email_task(registration_id: int):
    """
    Async wrapper for sending registration confirmation email.
    """
    try:
        reg = (
            Registration.objects
            .select_related("event", "participant", "ticket")
            .get(id=registration_id)
        )
    except Registration.DoesNotExist:
        return "registration_not_found"

    try:
        send_registration_email(reg)
    except Exception as e:
        logger.warning(f"Failed to send registration email for reg {registration_id}: {e}")
        return "failed"
    return "sent"


@shared_task
def send_team_complete_email_task(team_id: int):
    """
    Async wrapper for the team completion email.
    """
    try:
        team = Team.objects.select_related("event").get(id=team_id)
    except Team.DoesNotExist:
        return "team_not_found"

    try:
        send_team_complete_email(team)
    except Exception as e:
        logger.warning(f"Failed to send team completion email for team {team_id}: {e}")
        return "failed"
    return "sent"


def _enqueue(task, *args):
    try:
        task.delay(*args)
    except Exception as e:
        # Broker down etc. The registration is already committed.
        logger.warning(f"Could not enqueue {task.name}{args}: {e}")


def notify_registered(registration_id: int):
    transaction.on_commit(lambda: _enqueue(send_registration_email_task, registration_id))


def notify_team_completed(team_id: int):
    transaction.on_commit(lambda: _enqueue(send_team_complete_email_task, team_id))
