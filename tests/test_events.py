"""Tests for EventService: slugs, CRUD, registration (duplicates, capacity, notifications)."""

import unittest
from datetime import UTC, datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import patch

from membership.core.errors import AuthError, ConflictError, NotFoundError, ValidationError
from membership.models import EventRegistration
from membership.schemas.event import EventCreate, EventUpdate, as_utc
from membership.services.events import (
    EventService,
    is_registered,
    registration_user_id,
    slugify,
)
from tests.helpers import RecordingSender, add_user, make_dispatcher, make_session, make_settings


def _event_data(title: str = "Forum des Entrepreneures 2026", **kwargs: object) -> EventCreate:
    """Build a minimal EventCreate for tests."""
    defaults: dict[str, object] = {
        "date_start": datetime(2026, 11, 20, 9, 0),
        "date_end": datetime(2026, 11, 21, 18, 0),
        "location": "Dakar, CICAD",
        "description": "Two days of workshops.",
    }
    defaults.update(kwargs)
    return EventCreate(title=title, **defaults)


class TestSlugify(unittest.TestCase):
    def test_examples(self) -> None:
        cases = {
            "Forum des Entrepreneures 2026": "forum-des-entrepreneures-2026",
            "Gala  --  Annuel!": "gala-annuel",
            "Café & Networking": "caf-networking",
        }
        for title, slug in cases.items():
            with self.subTest(title=title):
                self.assertEqual(slugify(title), slug)

    def test_title_without_slug_characters(self) -> None:
        self.assertEqual(slugify("!!!"), "")


class TestRegistrationMembership(unittest.TestCase):
    """The already-registered check tolerates raw ids, loaded users and empty entries."""

    def test_registration_user_id_shapes(self) -> None:
        self.assertIsNone(registration_user_id(None))
        self.assertIsNone(registration_user_id(SimpleNamespace(user=None, user_id=None)))
        self.assertEqual(registration_user_id(SimpleNamespace(user=None, user_id=7)), "7")
        loaded = SimpleNamespace(user=SimpleNamespace(id=7), user_id=None)
        self.assertEqual(registration_user_id(loaded), "7")

    def test_is_registered_compares_as_strings(self) -> None:
        event = SimpleNamespace(
            registrations=[None, SimpleNamespace(user=None, user_id=3)]
        )
        self.assertTrue(is_registered(event, 3))
        self.assertTrue(is_registered(event, "3"))
        self.assertFalse(is_registered(event, 4))
        self.assertFalse(is_registered(SimpleNamespace(registrations=None), 3))


class EventTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.sender = RecordingSender()
        self.service = EventService(self.db, make_dispatcher(self.sender), make_settings())
        self.admin = add_user(self.db, email="admin@x.com", role="admin")
        self.member = add_user(self.db, email="fatou@x.com", first_name="Fatou")

    def tearDown(self) -> None:
        self.db.close()


class TestEventCrud(EventTestCase):
    def test_create_derives_slug(self) -> None:
        event = self.service.create(_event_data(), created_by=self.admin.id)
        self.assertEqual(event.slug, "forum-des-entrepreneures-2026")
        self.assertEqual(event.created_by, self.admin.id)
        self.assertEqual(self.service.get_by_slug(event.slug).id, event.id)

    def test_duplicate_title_is_a_conflict(self) -> None:
        self.service.create(_event_data(), created_by=self.admin.id)
        with self.assertRaises(ConflictError):
            self.service.create(_event_data("forum des entrepreneures 2026"), created_by=None)

    def test_title_must_produce_a_slug(self) -> None:
        with self.assertRaises(ValidationError):
            self.service.create(_event_data("???"), created_by=None)

    def test_end_before_start_is_rejected_by_schema(self) -> None:
        with self.assertRaises(ValueError):
            _event_data(date_end=datetime(2026, 11, 19))

    def test_update_title_changes_slug(self) -> None:
        event = self.service.create(_event_data(), created_by=None)
        updated = self.service.update(event.id, EventUpdate(title="Forum 2027", location="Thiès"))
        self.assertEqual(updated.slug, "forum-2027")
        self.assertEqual(updated.location, "Thiès")
        self.assertEqual(updated.description, "Two days of workshops.")

    def test_update_with_inverted_dates(self) -> None:
        event = self.service.create(_event_data(), created_by=None)
        with self.assertRaises(ValidationError):
            self.service.update(event.id, EventUpdate(date_end=datetime(2026, 1, 1)))

    def test_list_most_recent_first(self) -> None:
        self.service.create(_event_data("Old", date_start=datetime(2025, 1, 1), date_end=datetime(2025, 1, 1)), None)
        self.service.create(_event_data("New"), None)
        self.assertEqual([e.title for e in self.service.list_events()], ["New", "Old"])

    def test_update_with_offset_dates(self) -> None:
        event = self.service.create(
            _event_data(
                date_start=datetime(2026, 11, 20, 9, 0, tzinfo=UTC),
                date_end=datetime(2026, 11, 21, 9, 0, tzinfo=UTC),
            ),
            created_by=None,
        )
        changes = EventUpdate.model_validate({"dateEnd": "2026-11-22T10:00:00+01:00"})
        self.assertEqual(changes.date_end, datetime(2026, 11, 22, 9, 0, tzinfo=UTC))

        updated = self.service.update(event.id, changes)
        self.assertEqual(as_utc(updated.date_end), datetime(2026, 11, 22, 9, 0, tzinfo=UTC))

    def test_update_naive_against_stored_aware(self) -> None:
        event = self.service.create(_event_data(), created_by=None)
        updated = self.service.update(event.id, EventUpdate(date_end=datetime(2026, 11, 23, 18, 0)))
        self.assertEqual(as_utc(updated.date_end), datetime(2026, 11, 23, 18, 0, tzinfo=UTC))

    def test_create_with_mixed_offsets(self) -> None:
        data = _event_data(
            date_start=datetime(2026, 11, 20, 9, 0),
            date_end=datetime(2026, 11, 20, 12, 0, tzinfo=timezone(timedelta(hours=2))),
        )
        self.assertEqual(data.date_start.tzinfo, UTC)
        self.assertEqual(data.date_end, datetime(2026, 11, 20, 10, 0, tzinfo=UTC))
        with self.assertRaises(ValueError):
            _event_data(
                date_start=datetime(2026, 11, 20, 9, 0),
                date_end=datetime(2026, 11, 20, 10, 0, tzinfo=timezone(timedelta(hours=2))),
            )

    def test_update_can_clear_capacity_and_type(self) -> None:
        event = self.service.create(_event_data(max_participants=5, type="forum"), None)
        updated = self.service.update(event.id, EventUpdate(max_participants=None, type=None))
        self.assertIsNone(updated.max_participants)
        self.assertIsNone(updated.type)

    def test_update_rejects_null_for_required_columns(self) -> None:
        event = self.service.create(_event_data(), None)
        with self.assertRaises(ValidationError):
            self.service.update(event.id, EventUpdate(location=None))
        self.assertEqual(self.service.get(event.id).location, "Dakar, CICAD")

    def test_delete(self) -> None:
        event = self.service.create(_event_data(), created_by=None)
        self.service.register(event.slug, self.member.id)
        self.service.delete(event.id)
        self.assertEqual(self.db.query(EventRegistration).count(), 0)
        with self.assertRaises(NotFoundError):
            self.service.delete(event.id)


class TestRegister(EventTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.event = self.service.create(_event_data(), created_by=self.admin.id)

    def test_first_registration_appends_and_notifies(self) -> None:
        event = self.service.register(self.event.slug, self.member.id)
        self.assertEqual(len(event.registrations), 1)
        self.assertEqual(event.registrations[0].user_id, self.member.id)
        self.assertIsNotNone(event.registrations[0].registered_at)
        self.assertEqual(self.sender.kinds(), ["event.registration", "admin.alert"])
        confirmation = self.sender.sent[0]
        self.assertEqual(confirmation.to, "fatou@x.com")
        self.assertIn("Dakar, CICAD", confirmation.html)
        self.assertIn("20/11/2026 - 21/11/2026", confirmation.html)

    def test_second_registration_is_a_conflict(self) -> None:
        self.service.register(self.event.slug, self.member.id)
        with self.assertRaises(ConflictError):
            self.service.register(self.event.slug, self.member.id)
        self.assertEqual(len(self.service.get_by_slug(self.event.slug).registrations), 1)

    def test_unknown_slug(self) -> None:
        with self.assertRaises(NotFoundError):
            self.service.register("no-such-event", self.member.id)

    def test_missing_caller(self) -> None:
        with self.assertRaises(AuthError):
            self.service.register(self.event.slug, None)

    def test_capacity_is_enforced(self) -> None:
        small = self.service.create(_event_data("Atelier", max_participants=1), None)
        self.service.register(small.slug, self.member.id)
        with self.assertRaises(ConflictError) as ctx:
            self.service.register(small.slug, self.admin.id)
        self.assertIn("full", ctx.exception.message)

    def test_storage_constraint_catches_duplicate_registration(self) -> None:
        self.service.register(self.event.slug, self.member.id)
        # Simulate a concurrent request that passed the check before the first commit.
        with patch("membership.services.events.is_registered", return_value=False):
            with self.assertRaises(ConflictError):
                self.service.register(self.event.slug, self.member.id)
        self.assertEqual(
            self.db.query(EventRegistration).filter_by(event_id=self.event.id).count(), 1
        )
        self.assertEqual(len(self.service.get_by_slug(self.event.slug).registrations), 1)

    def test_registration_survives_mail_outage(self) -> None:
        self.sender.fail = True
        event = self.service.register(self.event.slug, self.member.id)
        self.assertEqual(len(event.registrations), 1)


if __name__ == "__main__":
    unittest.main()
