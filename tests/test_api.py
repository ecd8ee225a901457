"""HTTP-level tests: routing, auth guards and error mapping, with an in-memory database."""

import re
import unittest

from fastapi.testclient import TestClient

from membership.core.config import get_settings
from membership.core.database import get_db
from membership.core.security import create_access_token, verify_password
from membership.main import app
from membership.models import Enrollment, User
from membership.services.notifications import get_dispatcher
from tests.helpers import (
    RecordingSender,
    add_user,
    make_dispatcher,
    make_session_factory,
    make_settings,
)

PREFIX = "/api/v1"

AMINA = {
    "firstName": "Amina",
    "lastName": "Diallo",
    "email": "amina@x.com",
    "phone": "+221 77 000 00 00",
    "country": "Senegal",
    "city": "Dakar",
    "companyName": "Amina Textiles",
    "interests": ["formations"],
}


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        factory = make_session_factory()
        self.db = factory()
        self.sender = RecordingSender()
        dispatcher = make_dispatcher(self.sender)
        settings = make_settings(JWT_SECRET="api-test-secret")
        self.settings = settings

        def override_get_db():
            db = factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        app.dependency_overrides[get_settings] = lambda: settings
        self.client = TestClient(app)

        self.admin = add_user(self.db, email="admin@x.com", role="admin", first_name="Awa")
        self.member = add_user(self.db, email="fatou@x.com", first_name="Fatou")

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.db.close()

    def auth(self, user: User) -> dict[str, str]:
        token = create_access_token(sub=user.id, role=user.role, settings=self.settings)
        return {"Authorization": f"Bearer {token}"}

    def submit(self, **overrides: object):
        return self.client.post(f"{PREFIX}/enrollments", json={**AMINA, **overrides})


class TestEnrollmentFlow(ApiTestCase):
    def test_submit_then_approve(self) -> None:
        resp = self.submit()
        self.assertEqual(resp.status_code, 201)
        enrollment_id = resp.json()["enrollmentId"]

        resp = self.client.get(f"{PREFIX}/enrollments/{enrollment_id}", headers=self.auth(self.admin))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "pending")
        self.assertIsNone(resp.json()["userId"])
        self.assertEqual(self.sender.kinds(), ["enrollment.received", "admin.alert"])

        resp = self.client.put(
            f"{PREFIX}/enrollments/{enrollment_id}",
            json={"status": "approved"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "approved")
        self.assertIsNotNone(body["userId"])

        account = self.db.query(User).filter(User.email == "amina@x.com").one()
        self.assertEqual(account.id, body["userId"])
        self.assertEqual(account.role, "member")
        self.assertEqual(self.sender.kinds()[-1], "enrollment.welcome")

        resp = self.client.get(f"{PREFIX}/enrollments/mine", headers=self.auth(account))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([e["id"] for e in resp.json()], [enrollment_id])

    def test_duplicate_pending_submission(self) -> None:
        self.assertEqual(self.submit().status_code, 201)
        resp = self.submit(email="  AMINA@x.com ")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("pending", resp.json()["detail"])
        self.assertEqual(self.db.query(Enrollment).count(), 1)

    def test_existing_account_is_rejected(self) -> None:
        resp = self.submit(email="fatou@x.com")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.db.query(Enrollment).count(), 0)

    def test_missing_field(self) -> None:
        resp = self.submit(phone="")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("phone", resp.json()["detail"])

    def test_members_cannot_see_other_applications(self) -> None:
        enrollment_id = self.submit().json()["enrollmentId"]
        resp = self.client.get(f"{PREFIX}/enrollments/{enrollment_id}", headers=self.auth(self.member))
        self.assertEqual(resp.status_code, 403)

    def test_admin_guards(self) -> None:
        self.assertEqual(self.client.get(f"{PREFIX}/enrollments").status_code, 401)
        resp = self.client.get(f"{PREFIX}/enrollments", headers=self.auth(self.member))
        self.assertEqual(resp.status_code, 403)
        resp = self.client.get(f"{PREFIX}/admin/stats", headers=self.auth(self.member))
        self.assertEqual(resp.status_code, 403)

    def test_invalid_token(self) -> None:
        resp = self.client.get(
            f"{PREFIX}/enrollments/mine", headers={"Authorization": "Bearer not-a-jwt"}
        )
        self.assertEqual(resp.status_code, 401)

    def test_review_unknown_enrollment(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/enrollments/999", json={"status": "approved"}, headers=self.auth(self.admin)
        )
        self.assertEqual(resp.status_code, 404)

    def test_list_with_status_filter(self) -> None:
        self.submit()
        self.submit(email="binta@x.com", firstName="Binta")
        resp = self.client.get(
            f"{PREFIX}/enrollments",
            params={"status": "pending", "limit": 1},
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["total"], 2)
        self.assertEqual(len(resp.json()["enrollments"]), 1)


class TestEvents(ApiTestCase):
    def create_event(self) -> str:
        resp = self.client.post(
            f"{PREFIX}/events",
            json={
                "title": "Forum des Entrepreneures",
                "dateStart": "2026-11-20T09:00:00",
                "dateEnd": "2026-11-20T18:00:00",
                "location": "Dakar",
            },
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 201)
        return resp.json()["event"]["slug"]

    def test_members_cannot_create_events(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/events",
            json={"title": "X", "dateStart": "2026-01-01T00:00:00", "dateEnd": "2026-01-01T00:00:00"},
            headers=self.auth(self.member),
        )
        self.assertEqual(resp.status_code, 403)

    def test_register_twice(self) -> None:
        slug = self.create_event()
        url = f"{PREFIX}/events/{slug}/register"
        self.assertEqual(self.client.post(url, headers=self.auth(self.member)).status_code, 200)
        resp = self.client.post(url, headers=self.auth(self.member))
        self.assertEqual(resp.status_code, 400)

        event = self.client.get(f"{PREFIX}/events/{slug}").json()["event"]
        self.assertEqual([r["userId"] for r in event["registrations"]], [self.member.id])

    def test_register_requires_auth_and_known_slug(self) -> None:
        slug = self.create_event()
        self.assertEqual(self.client.post(f"{PREFIX}/events/{slug}/register").status_code, 401)
        resp = self.client.post(f"{PREFIX}/events/unknown/register", headers=self.auth(self.member))
        self.assertEqual(resp.status_code, 404)


    def test_update_with_offset_suffixed_dates(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/events",
            json={
                "title": "Gala",
                "dateStart": "2026-11-20T09:00:00Z",
                "dateEnd": "2026-11-21T09:00:00Z",
            },
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 201)
        event_id = resp.json()["event"]["id"]

        resp = self.client.put(
            f"{PREFIX}/events/{event_id}",
            json={"dateEnd": "2026-11-22T09:00:00Z"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["event"]["dateEnd"].startswith("2026-11-22T09:00:00"))

        resp = self.client.put(
            f"{PREFIX}/events/{event_id}",
            json={"dateEnd": "2026-11-19T09:00:00+00:00"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 400)

    def test_create_with_one_offset_date(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/events",
            json={
                "title": "Atelier",
                "dateStart": "2026-11-20T09:00:00",
                "dateEnd": "2026-11-20T12:00:00+02:00",
            },
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 201)

        resp = self.client.post(
            f"{PREFIX}/events",
            json={
                "title": "Atelier 2",
                "dateStart": "2026-11-20T09:00:00",
                "dateEnd": "2026-11-20T10:00:00+02:00",
            },
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 422)

    def test_clear_capacity(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/events",
            json={
                "title": "Forum",
                "dateStart": "2026-11-20T09:00:00Z",
                "dateEnd": "2026-11-20T18:00:00Z",
                "maxParticipants": 30,
            },
            headers=self.auth(self.admin),
        )
        event_id = resp.json()["event"]["id"]
        resp = self.client.put(
            f"{PREFIX}/events/{event_id}",
            json={"maxParticipants": None},
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.json()["event"]["maxParticipants"])


class TestAuthAndAdmin(ApiTestCase):
    def test_login(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/auth/login", json={"email": "FATOU@x.com", "password": "correct-horse"}
        )
        self.assertEqual(resp.status_code, 200)
        token = resp.json()["access_token"]
        me = self.client.get(f"{PREFIX}/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(me.json()["email"], "fatou@x.com")

    def test_login_wrong_password(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/auth/login", json={"email": "fatou@x.com", "password": "nope"}
        )
        self.assertEqual(resp.status_code, 401)

    def test_stats(self) -> None:
        self.submit()
        resp = self.client.get(f"{PREFIX}/admin/stats", headers=self.auth(self.admin))
        self.assertEqual(resp.status_code, 200)
        stats = resp.json()
        self.assertEqual(stats["totalUsers"], 2)
        self.assertEqual(stats["pendingEnrollments"], 1)
        self.assertEqual(stats["totalEvents"], 0)

    def test_delete_user_removes_enrollments(self) -> None:
        enrollment_id = self.submit().json()["enrollmentId"]
        self.client.put(
            f"{PREFIX}/enrollments/{enrollment_id}",
            json={"status": "approved"},
            headers=self.auth(self.admin),
        )
        account = self.db.query(User).filter(User.email == "amina@x.com").one()

        resp = self.client.delete(f"{PREFIX}/admin/users/{account.id}", headers=self.auth(self.admin))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.db.query(Enrollment).count(), 0)

    def test_admin_cannot_delete_self(self) -> None:
        resp = self.client.delete(
            f"{PREFIX}/admin/users/{self.admin.id}", headers=self.auth(self.admin)
        )
        self.assertEqual(resp.status_code, 400)

    def test_health_reports_mail_sender(self) -> None:
        resp = self.client.get(f"{PREFIX}/health/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["mail"], "recording")


class TestAccountSelfService(ApiTestCase):
    def test_token_signed_with_another_secret_is_rejected(self) -> None:
        foreign = make_settings(JWT_SECRET="some-other-deployment")
        token = create_access_token(sub=self.member.id, role="member", settings=foreign)
        resp = self.client.get(f"{PREFIX}/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(resp.status_code, 401)

    def test_change_password(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/auth/me/password",
            json={"currentPassword": "correct-horse", "newPassword": "battery-staple"},
            headers=self.auth(self.member),
        )
        self.assertEqual(resp.status_code, 200)

        login = {"email": "fatou@x.com", "password": "battery-staple"}
        self.assertEqual(self.client.post(f"{PREFIX}/auth/login", json=login).status_code, 200)
        login["password"] = "correct-horse"
        self.assertEqual(self.client.post(f"{PREFIX}/auth/login", json=login).status_code, 401)

    def test_change_password_with_wrong_current(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/auth/me/password",
            json={"currentPassword": "wrong", "newPassword": "battery-staple"},
            headers=self.auth(self.member),
        )
        self.assertEqual(resp.status_code, 400)
        self.db.expire_all()
        self.assertTrue(verify_password("correct-horse", self.db.get(User, self.member.id).password_hash))

    def test_change_password_requires_auth(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/auth/me/password",
            json={"currentPassword": "correct-horse", "newPassword": "battery-staple"},
        )
        self.assertEqual(resp.status_code, 401)

    def test_reset_password_mails_a_working_temporary_password(self) -> None:
        resp = self.client.post(f"{PREFIX}/auth/reset-password", json={"email": "Fatou@x.com"})
        self.assertEqual(resp.status_code, 200)

        self.assertEqual(self.sender.kinds(), ["account.password_reset"])
        mail = self.sender.sent[0]
        self.assertEqual(mail.to, "fatou@x.com")
        match = re.search(r"<code[^>]*>([0-9a-f]{8})</code>", mail.html)
        self.assertIsNotNone(match)

        login = {"email": "fatou@x.com", "password": match.group(1)}
        self.assertEqual(self.client.post(f"{PREFIX}/auth/login", json=login).status_code, 200)

    def test_reset_password_unknown_email(self) -> None:
        resp = self.client.post(f"{PREFIX}/auth/reset-password", json={"email": "nobody@x.com"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.sender.sent, [])

    def test_update_profile(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/auth/me",
            json={
                "phone": "+221 76 111 11 11",
                "companyAddress": "Rue 10, Dakar",
                "photo": {"publicId": "p1", "url": "https://cdn.test/p1.png"},
            },
            headers=self.auth(self.member),
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["phone"], "+221 76 111 11 11")
        self.assertEqual(body["companyAddress"], "Rue 10, Dakar")
        self.assertEqual(body["photo"]["url"], "https://cdn.test/p1.png")
        self.assertEqual(body["firstName"], "Fatou")
        self.assertEqual(body["role"], "member")

    def test_profile_cannot_change_role_or_blank_name(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/auth/me", json={"role": "admin"}, headers=self.auth(self.member)
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["role"], "member")

        resp = self.client.put(
            f"{PREFIX}/auth/me", json={"firstName": "  "}, headers=self.auth(self.member)
        )
        self.assertEqual(resp.status_code, 400)


class TestUserRoles(ApiTestCase):
    def test_admin_promotes_member(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/admin/users/{self.member.id}/role",
            json={"role": "admin"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["role"], "admin")
        self.db.expire_all()
        self.assertEqual(self.db.get(User, self.member.id).role, "admin")

    def test_unknown_role(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/admin/users/{self.member.id}/role",
            json={"role": "owner"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 400)

    def test_unknown_user(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/admin/users/999/role",
            json={"role": "member"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 404)

    def test_members_cannot_change_roles(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/admin/users/{self.member.id}/role",
            json={"role": "admin"},
            headers=self.auth(self.member),
        )
        self.assertEqual(resp.status_code, 403)

    def test_admin_cannot_demote_self(self) -> None:
        resp = self.client.put(
            f"{PREFIX}/admin/users/{self.admin.id}/role",
            json={"role": "member"},
            headers=self.auth(self.admin),
        )
        self.assertEqual(resp.status_code, 400)

    def test_get_user(self) -> None:
        resp = self.client.get(f"{PREFIX}/admin/users/{self.member.id}", headers=self.auth(self.admin))
        self.assertEqual(resp.status_code, 200)
        self.assertNotIn("passwordHash", resp.json())
        self.assertEqual(resp.json()["email"], "fatou@x.com")


if __name__ == "__main__":
    unittest.main()
