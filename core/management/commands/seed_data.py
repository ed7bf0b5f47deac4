from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.utils import timezone

from events.exceptions import FestError
from events.models import Event, EventStaff, Registration, Team
from events.services import registrations as ledger
from events.services import teams as team_service

User = get_user_model()


class Command(BaseCommand):
    help = "Seeds the database with a sample fest: events, staff, registrations and a team"

    def _user(self, username, role="participant", password="password"):
        user, _ = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com", "role": role},
        )
        if not user.check_password(password):
            user.set_password(password)
            user.save()
        return user

    def handle(self, *args, **options):
        self.stdout.write("Seeding data...")

        # 1. Users
        admin = self._user("admin", role="admin", password="admin")
        organizer = self._user("organizer", role="organizer")
        volunteer = self._user("volunteer")
        participants = [self._user(name) for name in ("alice", "bob", "carol", "dave")]

        # 2. Events
        now = timezone.now()
        events_data = [
            {
                "title": "Code Sprint",
                "description": "Six-hour team hackathon.",
                "registration_limit": 60,
                "team_registration_enabled": True,
                "team_min_size": 2,
                "team_max_size": 3,
            },
            {
                "title": "Keynote: Building for Scale",
                "description": "Opening keynote. Seats are limited.",
                "registration_limit": 2,
            },
            {
                "title": "Fest T-Shirt",
                "description": "Limited edition merchandise.",
                "event_type": Event.TYPE_MERCHANDISE,
                "registration_limit": 100,
            },
        ]

        events = []
        for data in events_data:
            evt, created = Event.objects.get_or_create(
                title=data["title"],
                defaults={
                    "organizer": organizer,
                    "status": Event.STATUS_PUBLISHED,
                    "start_time": now + timezone.timedelta(days=7),
                    "end_time": now + timezone.timedelta(days=7, hours=6),
                    "registration_deadline": now + timezone.timedelta(days=6),
                    **{k: v for k, v in data.items() if k != "title"},
                },
            )
            if created:
                self.stdout.write(f"Created Event: {evt.title}")
            EventStaff.objects.get_or_create(event=evt, user=volunteer)
            events.append(evt)

        hackathon, keynote, _ = events

        # 3. Individual registrations (the third one hits the limit)
        for user in participants[:3]:
            if Registration.objects.filter(event=keynote, participant=user).exists():
                continue
            try:
                _, ticket = ledger.register(keynote.id, user)
                self.stdout.write(f"  {user.username} -> {keynote.title} ({ticket.ticket_id})")
            except FestError as e:
                self.stdout.write(self.style.WARNING(f"  {user.username} -> {keynote.title}: {e.message}"))

        # 4. A team that fills up and gets its tickets
        if not Team.objects.filter(event=hackathon).exists():
            alice, bob, carol = participants[:3]
            team = team_service.create_team(hackathon.id, alice, "Null Pointers", 3)
            team_service.join_by_code(team.invite_code, bob)
            team = team_service.join_by_code(team.invite_code, carol)
            self.stdout.write(f"Created Team: {team.name} [{team.invite_code}] -> {team.status}")

        self.stdout.write(self.style.SUCCESS(f"Seeding Complete! Log in as {admin.username}/admin"))
