from django.core.cache import cache

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from events.models import Attendance, EventStaff, Ticket
from events.services import registrations as ledger
from events.services import attendance as recorder
from events.tests.helpers import make_event, make_user


class AttendanceTestCase(APITestCase):
    def setUp(self):
        # throttle history lives in the cache
        cache.clear()
        self.client = APIClient()
        self.organizer = make_user("org", role="organizer")
        self.volunteer = make_user("vol")
        self.alice = make_user("alice", first_name="Alice", last_name="Rao")
        self.outsider = make_user("outsider")

        self.event = make_event(self.organizer)
        EventStaff.objects.create(event=self.event, user=self.volunteer, role=EventStaff.ROLE_VOLUNTEER)
        self.reg, self.ticket = ledger.register(self.event.id, self.alice)

    def scan(self, user, qr_code, event=None):
        self.client.force_authenticate(user=user)
        return self.client.post(
            f"/api/events/{(event or self.event).id}/attendance/scan/",
            {"qr_code": qr_code},
            format="json",
        )


class ScanTests(AttendanceTestCase):
    def test_first_scan_records_attendance(self):
        resp = self.scan(self.organizer, self.ticket.qr_code)

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["participant"], "Alice Rao")
        self.assertEqual(resp.data["method"], Attendance.METHOD_SCAN)

        record = Attendance.objects.get(ticket=self.ticket)
        self.assertEqual(record.participant, self.alice)
        self.assertTrue(recorder.is_ticket_used(self.ticket))
        self.assertEqual(record.scanned_by, self.organizer)

        self.ticket.refresh_from_db()
        self.assertTrue(self.ticket.is_scanned)
        self.assertEqual(self.ticket.scanned_at, record.scanned_at)

    def test_second_scan_reports_first_timestamp(self):
        self.scan(self.organizer, self.ticket.qr_code)
        first = Attendance.objects.get(ticket=self.ticket)

        resp = self.scan(self.volunteer, self.ticket.qr_code)

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "already_scanned")
        self.assertEqual(resp.data["scanned_at"], first.scanned_at)
        self.assertEqual(Attendance.objects.filter(ticket=self.ticket).count(), 1)

    def test_event_staff_can_scan(self):
        resp = self.scan(self.volunteer, self.ticket.qr_code)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_inactive_staff_cannot_scan(self):
        EventStaff.objects.filter(user=self.volunteer).update(is_active=False)
        resp = self.scan(self.volunteer, self.ticket.qr_code)

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "not_event_staff")

    def test_outsider_cannot_scan(self):
        resp = self.scan(self.outsider, self.ticket.qr_code)

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Attendance.objects.exists())

    def test_unknown_qr(self):
        resp = self.scan(self.organizer, "no-such-ticket")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "ticket_not_found")

    def test_missing_qr(self):
        self.client.force_authenticate(user=self.organizer)
        resp = self.client.post(f"/api/events/{self.event.id}/attendance/scan/", {}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_ticket_for_another_event(self):
        other_org = make_user("other_org", role="organizer")
        other_event = make_event(other_org, title="Robo Wars")

        resp = self.scan(other_org, self.ticket.qr_code, event=other_event)

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "wrong_event")
        self.assertFalse(Attendance.objects.exists())

    def test_cancelled_registration_cannot_check_in(self):
        ledger.cancel(self.reg.id, self.alice)

        resp = self.scan(self.organizer, self.ticket.qr_code)

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "registration_inactive")

    def test_attendance_row_decides_even_if_cache_is_stale(self):
        self.scan(self.organizer, self.ticket.qr_code)
        Ticket.objects.filter(pk=self.ticket.pk).update(is_scanned=False, scanned_at=None)

        resp = self.scan(self.organizer, self.ticket.qr_code)

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_cache_flag_alone_does_not_block_check_in(self):
        Ticket.objects.filter(pk=self.ticket.pk).update(is_scanned=True)

        resp = self.scan(self.organizer, self.ticket.qr_code)

        self.assertEqual(resp.status_code, status.HTTP_200_OK)


class ManualAttendanceTests(AttendanceTestCase):
    def manual(self, user, email, remarks=""):
        self.client.force_authenticate(user=user)
        return self.client.post(
            f"/api/events/{self.event.id}/attendance/manual/",
            {"participant_email": email, "remarks": remarks},
            format="json",
        )

    def test_manual_check_in(self):
        resp = self.manual(self.volunteer, "ALICE@example.com", remarks="phone died")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["method"], Attendance.METHOD_MANUAL)
        record = Attendance.objects.get(ticket=self.ticket)
        self.assertEqual(record.remarks, "phone died")

    def test_manual_after_scan_is_duplicate(self):
        self.scan(self.organizer, self.ticket.qr_code)

        resp = self.manual(self.organizer, "alice@example.com")

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "already_scanned")

    def test_unknown_participant(self):
        resp = self.manual(self.organizer, "ghost@example.com")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "participant_not_found")

    def test_shared_email_finds_the_registered_account(self):
        make_user("dana_old", email="Dana@example.com")
        dana = make_user("dana", email="dana@example.com")
        _, ticket = ledger.register(self.event.id, dana)

        record = recorder.manual(self.event.id, "dana@example.com", self.organizer)

        self.assertEqual(record.ticket, ticket)
        self.assertEqual(record.participant, dana)
        self.assertEqual(record.method, Attendance.METHOD_MANUAL)

    def test_participant_not_registered(self):
        resp = self.manual(self.organizer, "outsider@example.com")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "registration_not_found")


class AttendanceReportTests(AttendanceTestCase):
    def setUp(self):
        super().setUp()
        self.bob = make_user("bob")
        ledger.register(self.event.id, self.bob)
        self.scan(self.organizer, self.ticket.qr_code)

    def test_list_with_stats(self):
        self.client.force_authenticate(user=self.volunteer)
        resp = self.client.get(f"/api/events/{self.event.id}/attendance/")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["stats"]["total_registrations"], 2)
        self.assertEqual(resp.data["stats"]["attendance_count"], 1)
        self.assertEqual(resp.data["stats"]["attendance_rate"], 50.0)
        self.assertEqual(resp.data["records"][0]["participant"]["email"], "alice@example.com")
        self.assertEqual(resp.data["records"][0]["ticket_id"], self.ticket.ticket_id)

    def test_list_requires_staff(self):
        self.client.force_authenticate(user=self.alice)
        resp = self.client.get(f"/api/events/{self.event.id}/attendance/")

        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_csv_export(self):
        self.client.force_authenticate(user=self.organizer)
        resp = self.client.get(f"/api/events/{self.event.id}/attendance/export/")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp["Content-Type"].startswith("text/csv"))
        self.assertIn(f"attendance_event_{self.event.id}.csv", resp["Content-Disposition"])

        lines = resp.content.decode().strip().splitlines()
        self.assertEqual(lines[0], "Name,Email,Ticket,Scanned At,Scan Method,Scanned By,Remarks")
        self.assertEqual(len(lines), 2)
        self.assertIn(self.ticket.ticket_id, lines[1])
        self.assertIn("Alice Rao", lines[1])
