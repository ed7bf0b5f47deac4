# events/tests/test_flow.py
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from events.models import Attendance, Registration, Ticket
from events.tests.helpers import make_event, make_user


class EventFlowTest(TestCase):
    """Limit of two, individual registrations, one ticket scanned twice."""

    def setUp(self):
        self.organizer = make_user("org", role="organizer")
        self.event = make_event(
            self.organizer,
            registration_limit=2,
            team_registration_enabled=False,
        )
        self.client_org = APIClient()
        self.client_org.force_authenticate(self.organizer)

    def register(self, user):
        client = APIClient()
        client.force_authenticate(user)
        return client.post(reverse("event-register", args=[self.event.id]))

    def test_full_event_flow(self):
        a, b, c = make_user("a"), make_user("b"), make_user("c")

        # 1) A and B get in
        ra = self.register(a)
        rb = self.register(b)
        self.assertEqual(ra.status_code, 201, ra.content)
        self.assertEqual(rb.status_code, 201, rb.content)

        # 2) C is turned away
        rc = self.register(c)
        self.assertEqual(rc.status_code, 400)
        self.assertEqual(rc.data["code"], "event_full")
        self.assertEqual(Registration.objects.filter(event=self.event).count(), 2)

        # 3) A's ticket is scanned at the door
        ticket = Ticket.objects.get(ticket_id=ra.data["ticket_id"])
        scan_url = reverse("attendance-scan", args=[self.event.id])

        first = self.client_org.post(scan_url, {"qr_code": ticket.qr_code}, format="json")
        self.assertEqual(first.status_code, 200, first.content)

        # 4) and a second scan is refused with the first scan's time
        second = self.client_org.post(scan_url, {"qr_code": ticket.qr_code}, format="json")
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.data["code"], "already_scanned")
        self.assertEqual(second.data["scanned_at"], Attendance.objects.get(ticket=ticket).scanned_at)

        self.event.refresh_from_db()
        self.assertEqual(self.event.registered_count, 2)
