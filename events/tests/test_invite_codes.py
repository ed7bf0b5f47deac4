from unittest import mock

from django.test import TestCase, override_settings

from events import invite_codes
from events.exceptions import CodeAllocationExhausted
from events.models import Team
from events.tests.helpers import make_event, make_user


class InviteCodeTests(TestCase):
    def setUp(self):
        self.organizer = make_user("org", role="organizer")
        self.leader = make_user("leader")
        self.event = make_event(self.organizer, team_registration_enabled=True)

    def make_team(self, code):
        return Team.objects.create(
            event=self.event,
            leader=self.leader,
            name="Crew",
            invite_code=code,
            max_size=3,
        )

    def test_generated_codes_are_well_formed(self):
        for _ in range(20):
            code = invite_codes.generate_invite_code()
            self.assertTrue(invite_codes.is_well_formed(code), code)

    def test_normalize(self):
        self.assertEqual(invite_codes.normalize("  ab12cd "), "AB12CD")
        self.assertEqual(invite_codes.normalize(None), "")
        self.assertFalse(invite_codes.is_well_formed("AB12C"))
        self.assertFalse(invite_codes.is_well_formed("GHIJKL"))

    def test_collision_is_retried(self):
        self.make_team("ABC123")

        with mock.patch(
            "events.invite_codes.generate_invite_code",
            side_effect=["ABC123", "DEF456"],
        ):
            team = invite_codes.allocate(self.make_team)

        self.assertEqual(team.invite_code, "DEF456")

    @override_settings(FEST={"INVITE_CODE_MAX_ATTEMPTS": 3})
    def test_exhaustion(self):
        self.make_team("ABC123")

        with mock.patch("events.invite_codes.generate_invite_code", return_value="ABC123") as gen:
            with self.assertRaises(CodeAllocationExhausted):
                invite_codes.allocate(self.make_team)

        self.assertEqual(gen.call_count, 3)
        self.assertEqual(Team.objects.count(), 1)
