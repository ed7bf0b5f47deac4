"""
Thread-level races against a real database.

SQLite serialises writers at the file level, so these only run on
PostgreSQL (set DATABASE_URL).
"""
import threading
import unittest
from unittest import mock

from django.db import close_old_connections, connection
from django.test import TransactionTestCase

from events.exceptions import AlreadyScanned, EventFull, TeamFull
from events.models import Attendance, Registration, Team, TeamMember, Ticket
from events.services import attendance as recorder
from events.services import registrations as ledger
from events.services import teams as team_service
from events.tasks import send_registration_email_task, send_team_complete_email_task
from events.tests.helpers import make_event, make_user


def run_concurrently(calls):
    """Start every call at once; return (results, errors) in call order."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)
    errors = [None] * len(calls)

    def worker(index, fn):
        try:
            barrier.wait()
            results[index] = fn()
        except Exception as exc:
            errors[index] = exc
        finally:
            close_old_connections()
            connection.close()

    threads = [threading.Thread(target=worker, args=(i, fn)) for i, fn in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


@unittest.skipUnless(connection.vendor == "postgresql", "row-level races need PostgreSQL")
class ConcurrencyTests(TransactionTestCase):
    def setUp(self):
        patcher_reg = mock.patch.object(send_registration_email_task, "delay")
        patcher_team = mock.patch.object(send_team_complete_email_task, "delay")
        patcher_reg.start()
        patcher_team.start()
        self.addCleanup(patcher_reg.stop)
        self.addCleanup(patcher_team.stop)

        self.organizer = make_user("org", role="organizer")

    def test_last_seat_goes_to_exactly_one_registrant(self):
        event = make_event(self.organizer, registration_limit=1)
        users = [make_user(f"p{i}") for i in range(10)]

        results, errors = run_concurrently(
            [lambda u=u: ledger.register(event.id, u) for u in users]
        )

        self.assertEqual(sum(1 for r in results if r is not None), 1)
        self.assertEqual(sum(1 for e in errors if isinstance(e, EventFull)), 9)
        self.assertEqual(Registration.objects.filter(event=event).count(), 1)
        event.refresh_from_db()
        self.assertEqual(event.registered_count, 1)

    def test_concurrent_joins_never_overfill(self):
        event = make_event(self.organizer, registration_limit=50, team_registration_enabled=True)
        leader = make_user("leader")
        team = team_service.create_team(event.id, leader, "Rush", 4)
        joiners = [make_user(f"j{i}") for i in range(6)]

        results, errors = run_concurrently(
            [lambda u=u: team_service.join_by_code(team.invite_code, u) for u in joiners]
        )

        self.assertEqual(sum(1 for r in results if r is not None), 3)
        self.assertEqual(sum(1 for e in errors if isinstance(e, TeamFull)), 3)

        team.refresh_from_db()
        self.assertEqual(team.status, Team.STATUS_COMPLETE)
        self.assertEqual(team.member_count, 4)
        self.assertEqual(TeamMember.objects.filter(team=team).count(), 4)
        self.assertEqual(Ticket.objects.filter(registration__team=team).count(), 4)

    def test_double_scan_records_once(self):
        event = make_event(self.organizer)
        participant = make_user("alice")
        _, ticket = ledger.register(event.id, participant)

        results, errors = run_concurrently([
            lambda: recorder.scan(event.id, ticket.qr_code, self.organizer),
            lambda: recorder.scan(event.id, ticket.qr_code, self.organizer),
        ])

        winners = [r for r in results if r is not None]
        losers = [e for e in errors if isinstance(e, AlreadyScanned)]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), 1)
        self.assertEqual(losers[0].scanned_at, winners[0].scanned_at)
        self.assertEqual(Attendance.objects.filter(ticket=ticket).count(), 1)
