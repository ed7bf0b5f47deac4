from django.test import TestCase

from events import capacity
from events.exceptions import EventFull
from events.models import Event
from events.tests.helpers import make_event, make_user


class CapacityGateTests(TestCase):
    def setUp(self):
        self.organizer = make_user("org", role="organizer")

    def test_admit_within_limit_increments_count(self):
        event = make_event(self.organizer, registration_limit=2)

        admitted = capacity.try_admit(event.id)

        self.assertTrue(admitted)
        event.refresh_from_db()
        self.assertEqual(event.registered_count, 1)

    def test_full_event_rejects_and_leaves_count_alone(self):
        event = make_event(self.organizer, registration_limit=1)
        capacity.try_admit(event.id)

        with self.assertRaises(EventFull):
            capacity.try_admit(event.id)

        event.refresh_from_db()
        self.assertEqual(event.registered_count, 1)

    def test_unlimited_event_never_rejects(self):
        event = make_event(self.organizer, registration_limit=None)
        for _ in range(25):
            capacity.try_admit(event.id)

        event.refresh_from_db()
        self.assertEqual(event.registered_count, 25)
        self.assertIsNone(capacity.remaining(event))

    def test_batch_admission_is_all_or_nothing(self):
        event = make_event(self.organizer, registration_limit=3)
        capacity.try_admit(event.id, seats=2)

        with self.assertRaises(EventFull):
            capacity.try_admit(event.id, seats=2)

        event.refresh_from_db()
        self.assertEqual(event.registered_count, 2)

        capacity.try_admit(event.id, seats=1)
        event.refresh_from_db()
        self.assertEqual(event.registered_count, 3)

    def test_stale_read_cannot_oversell(self):
        event = make_event(self.organizer, registration_limit=1)
        stale = Event.objects.get(pk=event.pk)
        self.assertEqual(capacity.remaining(stale), 1)

        # someone else takes the last seat after our read
        capacity.try_admit(event.id)

        with self.assertRaises(EventFull):
            capacity.try_admit(stale.id)

    def test_release_gives_seat_back_and_never_goes_negative(self):
        event = make_event(self.organizer, registration_limit=1)
        capacity.try_admit(event.id)

        capacity.release(event.id)
        capacity.release(event.id)

        event.refresh_from_db()
        self.assertEqual(event.registered_count, 0)
        self.assertEqual(capacity.remaining(event), 1)

    def test_zero_seats_is_a_no_op(self):
        event = make_event(self.organizer, registration_limit=1)
        capacity.try_admit(event.id)

        capacity.try_admit(event.id, seats=0)

        event.refresh_from_db()
        self.assertEqual(event.registered_count, 1)
