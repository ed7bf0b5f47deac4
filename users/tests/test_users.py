from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase, APIClient
from rest_framework import status

User = get_user_model()


class UserApiTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.alice = User.objects.create_user(
            username="alice",
            email="alice@example.com",
            password="pass1234",
            first_name="Alice",
        )
        self.bob = User.objects.create_user(username="bob", password="pass1234")

    def test_defaults(self):
        self.assertEqual(self.bob.role, User.ROLE_PARTICIPANT)
        self.assertEqual(self.bob.display_name, "bob")
        self.assertEqual(self.alice.display_name, "Alice")

    def test_me(self):
        self.client.force_authenticate(user=self.alice)
        resp = self.client.get("/api/users/me/")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["username"], "alice")
        self.assertEqual(resp.data["role"], "participant")

    def test_cannot_read_other_users(self):
        self.client.force_authenticate(user=self.alice)
        resp = self.client.get(f"/api/users/{self.bob.id}/")

        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_token_obtain(self):
        resp = self.client.post(
            "/api/auth/token/",
            {"username": "alice", "password": "pass1234"},
            format="json",
        )

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertIn("access", resp.data)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")
        me = self.client.get("/api/users/me/")
        self.assertEqual(me.data["id"], self.alice.id)


class HealthCheckTests(APITestCase):
    def test_health(self):
        resp = self.client.get("/api/health/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["db"])
