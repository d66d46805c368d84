from django.test import TestCase

from circulation import inventory
from circulation.exceptions import InvalidTransition, NotFound, OutOfStock

from .base import LibraryFixturesMixin


class InventoryLedgerTests(TestCase, LibraryFixturesMixin):
    def setUp(self):
        self.book = self.make_book(total=2)

    def test_reserve_copy_decrements_available(self):
        """Reserving takes one copy off the shelf"""
        inventory.reserve_copy(self.book.pk)
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 1)
        self.assertEqual(self.book.total_copies, 2)

    def test_reserve_copy_when_none_left(self):
        """Reserving with no copies left reports the counts"""
        self.book.available_copies = 0
        self.book.save()
        with self.assertRaises(OutOfStock) as ctx:
            inventory.reserve_copy(self.book.pk)
        self.assertIn('All 2 copies', ctx.exception.message)
        self.assertEqual(ctx.exception.details['available_copies'], 0)
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 0)

    def test_release_copy_increments_available(self):
        """Releasing puts a copy back"""
        inventory.reserve_copy(self.book.pk)
        self.assertTrue(inventory.release_copy(self.book.pk))
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 2)

    def test_release_copy_never_exceeds_total(self):
        """Releasing into a full shelf is skipped instead of breaking the bound"""
        with self.assertLogs('circulation.inventory', level='WARNING'):
            self.assertFalse(inventory.release_copy(self.book.pk))
        self.book.refresh_from_db()
        self.assertEqual(self.book.available_copies, 2)

    def test_retire_copy_reduces_total_only(self):
        """Retiring a copy that is out on loan shrinks the total"""
        inventory.reserve_copy(self.book.pk)
        inventory.retire_copy(self.book.pk)
        self.book.refresh_from_db()
        self.assertEqual(self.book.total_copies, 1)
        self.assertEqual(self.book.available_copies, 1)

    def test_retire_copy_without_loaned_copy(self):
        """Retiring is refused when every copy is on the shelf"""
        with self.assertRaises(InvalidTransition):
            inventory.retire_copy(self.book.pk)
        self.book.refresh_from_db()
        self.assertEqual(self.book.total_copies, 2)

    def test_missing_book(self):
        """Unknown books are reported as not found"""
        self.book.delete()
        with self.assertRaises(NotFound):
            inventory.reserve_copy(self.book.pk)
