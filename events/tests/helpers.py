# events/tests/helpers.py
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from events.models import Event

User = get_user_model()


def make_user(username, role="participant", **extra):
    return User.objects.create_user(
        username=username,
        email=extra.pop("email", f"{username}@example.com"),
        password="pass1234",
        role=role,
        **extra,
    )


def make_event(organizer, **overrides):
    now = timezone.now()
    fields = {
        "title": "Hack Night",
        "description": "Annual hackathon",
        "status": Event.STATUS_PUBLISHED,
        "start_time": now + timedelta(days=2),
        "end_time": now + timedelta(days=2, hours=6),
        "registration_deadline": now + timedelta(days=1),
    }
    fields.update(overrides)
    return Event.objects.create(organizer=organizer, **fields)
