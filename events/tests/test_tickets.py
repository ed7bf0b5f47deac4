import re
from unittest import mock

from django.test import TestCase, override_settings

from events.exceptions import AlreadyIssued, TransientStorageConflict
from events.models import Registration, Ticket
from events.services import tickets
from events.tests.helpers import make_event, make_user


class TicketIssuerTests(TestCase):
    def setUp(self):
        self.organizer = make_user("org", role="organizer")
        self.event = make_event(self.organizer)
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.reg_a = Registration.objects.create(event=self.event, participant=self.alice)
        self.reg_b = Registration.objects.create(event=self.event, participant=self.bob)

    def test_ticket_id_format(self):
        self.assertRegex(tickets.generate_ticket_id(), r"^TKT-[0-9A-F]{16}$")

    @override_settings(FEST={"TICKET_PREFIX": "FEST"})
    def test_ticket_prefix_is_configurable(self):
        self.assertTrue(tickets.generate_ticket_id().startswith("FEST-"))

    def test_issue_once_per_registration(self):
        ticket = tickets.issue(self.reg_a)

        self.assertEqual(ticket.registration, self.reg_a)
        self.assertGreaterEqual(len(ticket.qr_code), 20)

        with self.assertRaises(AlreadyIssued):
            tickets.issue(self.reg_a)
        self.assertEqual(Ticket.objects.filter(registration=self.reg_a).count(), 1)

    def test_issue_many_skips_existing(self):
        tickets.issue(self.reg_a)

        issued = tickets.issue_many([self.reg_a, self.reg_b])

        self.assertEqual([t.registration_id for t in issued], [self.reg_b.id])
        self.assertEqual(Ticket.objects.count(), 2)

    def test_ticket_id_collision_draws_again(self):
        first = tickets.issue(self.reg_a)

        with mock.patch(
            "events.services.tickets.generate_ticket_id",
            side_effect=[first.ticket_id, "TKT-00000000000000AB"],
        ):
            second = tickets.issue(self.reg_b)

        self.assertEqual(second.ticket_id, "TKT-00000000000000AB")

    @override_settings(FEST={"TICKET_ID_MAX_ATTEMPTS": 2})
    def test_collision_retries_are_bounded(self):
        first = tickets.issue(self.reg_a)

        with mock.patch("events.services.tickets.generate_ticket_id", return_value=first.ticket_id):
            with self.assertRaises(TransientStorageConflict):
                tickets.issue(self.reg_b)

        self.assertFalse(Ticket.objects.filter(registration=self.reg_b).exists())

    def test_qr_png(self):
        ticket = tickets.issue(self.reg_a)

        png = tickets.render_qr_png(ticket)

        self.assertTrue(png.startswith(b"\x89PNG\r\n\x1a\n"))

    def test_qr_payload_is_url_safe(self):
        payload = tickets.generate_qr_payload()
        self.assertTrue(re.fullmatch(r"[A-Za-z0-9_\-]+", payload))
