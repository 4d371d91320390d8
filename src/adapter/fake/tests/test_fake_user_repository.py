"""Unit tests for FakeUserRepository: checks the UserRepository contract."""

import unittest
from datetime import datetime, timezone

from adapter.fake.user_repository import FakeUserRepository
from domain.model.errors import DuplicateError, NotFoundError, StorageUnavailableError
from domain.model.user import User


class TestFakeUserRepository(unittest.TestCase):
    """Tests that FakeUserRepository correctly implements UserRepository Protocol."""

    def setUp(self):
        self.repo = FakeUserRepository()

    # ── insert + find (round-trip) ────────────────────────────

    def test_insert_generates_id_and_timestamps(self):
        user = self.repo.insert('a@x.com', 'hash', 'Alice')

        self.assertIsInstance(user, User)
        self.assertTrue(user.id)
        self.assertEqual(user.created_at, user.updated_at)
        self.assertEqual(user.display_name, 'Alice')
        self.assertIsNone(user.deleted_at)

    def test_find_by_email_and_id(self):
        user = self.repo.insert('a@x.com', 'hash')

        self.assertEqual(self.repo.find_by_email('a@x.com').id, user.id)
        self.assertEqual(self.repo.find_by_id(user.id).email, 'a@x.com')

    def test_find_returns_none_for_missing(self):
        self.assertIsNone(self.repo.find_by_email('nobody@x.com'))
        self.assertIsNone(self.repo.find_by_id('nonexistent'))

    def test_insert_duplicate_email_raises(self):
        self.repo.insert('a@x.com', 'hash')

        with self.assertRaises(DuplicateError):
            self.repo.insert('a@x.com', 'other')

    def test_returned_users_are_copies(self):
        user = self.repo.insert('a@x.com', 'hash')
        user.display_name = 'mutated'

        self.assertIsNone(self.repo.find_by_id(user.id).display_name)

    # ── update ────────────────────────────────────────────────

    def test_update_moves_updated_at_forward(self):
        user = self.repo.insert('a@x.com', 'hash')

        first = self.repo.update(user.id, {'display_name': 'One'})
        second = self.repo.update(user.id, {'display_name': 'Two'})

        self.assertGreater(first.updated_at, user.updated_at)
        self.assertGreater(second.updated_at, first.updated_at)
        self.assertEqual(second.created_at, user.created_at)
        self.assertEqual(second.display_name, 'Two')

    def test_update_ignores_protected_fields(self):
        user = self.repo.insert('a@x.com', 'hash')
        forged = datetime(2000, 1, 1, tzinfo=timezone.utc)

        updated = self.repo.update(user.id, {'id': 'forged', 'created_at': forged})

        self.assertEqual(updated.id, user.id)
        self.assertEqual(updated.created_at, user.created_at)

    def test_update_missing_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            self.repo.update('nonexistent', {'display_name': 'x'})

    # ── soft delete ───────────────────────────────────────────

    def test_soft_deleted_user_is_invisible(self):
        user = self.repo.insert('a@x.com', 'hash')
        self.repo.update(user.id, {'deleted_at': datetime.now(timezone.utc)})

        self.assertIsNone(self.repo.find_by_id(user.id))
        self.assertIsNone(self.repo.find_by_email('a@x.com'))
        with self.assertRaises(NotFoundError):
            self.repo.update(user.id, {'display_name': 'x'})

    def test_soft_deleted_user_keeps_email_reserved(self):
        user = self.repo.insert('a@x.com', 'hash')
        self.repo.update(user.id, {'deleted_at': datetime.now(timezone.utc)})

        with self.assertRaises(DuplicateError):
            self.repo.insert('a@x.com', 'hash')

    # ── availability ──────────────────────────────────────────

    def test_outage_raises_storage_unavailable(self):
        self.repo.available = False

        self.assertFalse(self.repo.ping())
        with self.assertRaises(StorageUnavailableError):
            self.repo.find_by_email('a@x.com')
        with self.assertRaises(StorageUnavailableError):
            self.repo.insert('a@x.com', 'hash')


if __name__ == '__main__':
    unittest.main()
