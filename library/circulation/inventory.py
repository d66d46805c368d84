"""Copy counters of a book.

Every change is a single conditional UPDATE whose affected-row count is
checked, so concurrent approvals and returns cannot push the counters out of
``0 <= available_copies <= total_copies``. Callers run these inside the
``transaction.atomic`` block of the status change that triggers them.
"""
import logging

from django.db.models import F
from django.utils import timezone

from .exceptions import InvalidTransition, NotFound, OutOfStock
from .models import Book

logger = logging.getLogger(__name__)


def _load(book_id):
    try:
        return Book.objects.get(pk=book_id)
    except Book.DoesNotExist:
        raise NotFound("Book not found")


def reserve_copy(book_id):
    updated = Book.objects.filter(pk=book_id, available_copies__gt=0).update(
        available_copies=F('available_copies') - 1,
        updated_at=timezone.now(),
    )
    if not updated:
        book = _load(book_id)
        raise OutOfStock(
            f"This book is no longer available. All {book.total_copies} copies are currently borrowed.",
            total_copies=book.total_copies,
            available_copies=book.available_copies,
        )


def release_copy(book_id):
    """Put a borrowed copy back on the shelf.

    Returns ``False`` when the counters are already full, which only happens
    after an admin corrected the copy counts while the copy was out.
    """
    updated = Book.objects.filter(pk=book_id, available_copies__lt=F('total_copies')).update(
        available_copies=F('available_copies') + 1,
        updated_at=timezone.now(),
    )
    if not updated:
        book = _load(book_id)
        logger.warning(
            "Release of book %s skipped: available copies already at total (%s)",
            book.pk, book.total_copies,
        )
        return False
    return True


def retire_copy(book_id):
    """Remove a lost or damaged copy that is still out on loan."""
    updated = Book.objects.filter(pk=book_id, total_copies__gt=F('available_copies')).update(
        total_copies=F('total_copies') - 1,
        updated_at=timezone.now(),
    )
    if not updated:
        book = _load(book_id)
        raise InvalidTransition(
            f"Cannot remove a copy of '{book.title}': no copy is currently out on loan.",
            total_copies=book.total_copies,
            available_copies=book.available_copies,
        )
