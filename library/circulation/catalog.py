import logging

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from .borrowing import get_book
from .exceptions import InvalidParameter, InvalidTransition
from .models import Book, BorrowRecord, Request, UserConfig
from .permissions import ADMIN_ROLES, STAFF_ROLES, get_config, require_role
from .results import OperationResult, service_operation

logger = logging.getLogger(__name__)

COPY_FIELDS = ('total_copies', 'available_copies')
BOOK_FIELDS = (
    'title', 'author', 'genre', 'rating', 'cover_url', 'cover_color',
    'description', 'summary', 'video_url',
) + COPY_FIELDS


def _check_copies(total, available, borrowed=0):
    if total < 0 or available < 0:
        raise InvalidParameter("Copies cannot be negative")
    if available > total:
        raise InvalidParameter("Available copies cannot exceed total copies")
    if total - available < borrowed:
        raise InvalidParameter(
            f"{borrowed} copies are currently borrowed, so at most "
            f"{total - borrowed} of {total} copies can be available."
        )


def _borrowed_count(book):
    return BorrowRecord.objects.filter(book=book, status=BorrowRecord.Status.BORROWED).count()


def _write_copies(book, **counters):
    """Overwrite copy counters, provided they still hold the values read into ``book``.

    An approval, return or write-off committed since the read makes this
    fail with InvalidTransition instead of being overwritten.
    """
    updated = Book.objects.filter(
        pk=book.pk,
        total_copies=book.total_copies,
        available_copies=book.available_copies,
    ).update(updated_at=timezone.now(), **counters)
    if not updated:
        raise InvalidTransition(
            "The copy counts of this book changed while the update was being applied. "
            "Reload the book and try again."
        )


@service_operation("Failed to create book")
def create_book(admin, data) -> OperationResult:
    require_role(get_config(admin), ADMIN_ROLES, "create books")
    fields = {k: v for k, v in data.items() if k in BOOK_FIELDS}
    total = fields.setdefault('total_copies', 1)
    available = fields.setdefault('available_copies', total)
    _check_copies(total, available)
    book = Book.objects.create(**fields)
    logger.info("Admin %s created book %s", admin.pk, book.pk)
    return OperationResult.ok("Book created successfully", status_code=201, book=book)


@service_operation("Failed to update book")
def update_book(admin, book_id, data) -> OperationResult:
    require_role(get_config(admin), ADMIN_ROLES, "update books")
    book = get_book(book_id)
    fields = {k: v for k, v in data.items() if k in BOOK_FIELDS}
    counters = {name: fields.pop(name) for name in COPY_FIELDS if name in fields}
    if counters:
        _check_copies(
            counters.get('total_copies', book.total_copies),
            counters.get('available_copies', book.available_copies),
            _borrowed_count(book),
        )
    with transaction.atomic():
        if counters:
            _write_copies(book, **counters)
        if fields:
            for name, value in fields.items():
                setattr(book, name, value)
            book.save(update_fields=[*fields, 'updated_at'])
    book.refresh_from_db()
    return OperationResult.ok("Book updated successfully", book=book)


@service_operation("Failed to update book copies")
def update_book_copies(staff, book_id, total_copies, available_copies) -> OperationResult:
    require_role(get_config(staff), STAFF_ROLES, "update book copies")
    book = get_book(book_id)
    _check_copies(total_copies, available_copies, _borrowed_count(book))
    _write_copies(book, total_copies=total_copies, available_copies=available_copies)
    book.refresh_from_db()
    logger.info(
        "Copies of book %s set to %s/%s by %s", book.pk, available_copies, total_copies, staff.pk
    )
    return OperationResult.ok("Book copies updated successfully", book=book)


@service_operation("Failed to delete book")
def delete_book(admin, book_id) -> OperationResult:
    require_role(get_config(admin), ADMIN_ROLES, "delete books")
    book = get_book(book_id)
    if BorrowRecord.objects.filter(book=book).exists():
        raise InvalidTransition("Cannot delete book with active borrow records")
    book.delete()
    logger.info("Admin %s deleted book %s", admin.pk, book_id)
    return OperationResult.ok("Book deleted successfully")


def get_genres():
    return list(Book.objects.order_by('genre').values_list('genre', flat=True).distinct())


def get_dashboard_stats(today=None):
    today = today or timezone.localdate()
    books = Book.objects.aggregate(
        total_books=Count('pk'),
        total_copies=Coalesce(Sum('total_copies'), 0),
        available_copies=Coalesce(Sum('available_copies'), 0),
        available_books=Count('pk', filter=Q(available_copies__gt=0)),
    )
    records = BorrowRecord.objects.aggregate(
        active_borrows=Count('pk', filter=Q(status=BorrowRecord.Status.BORROWED)),
        overdue_borrows=Count(
            'pk', filter=Q(status=BorrowRecord.Status.BORROWED, due_date__lt=today)
        ),
        pending_approvals=Count('pk', filter=Q(status=BorrowRecord.Status.PENDING)),
        borrows_today=Count('pk', filter=Q(borrow_date__date=today)),
        returns_today=Count('pk', filter=Q(return_date=today)),
    )
    users = UserConfig.objects.aggregate(
        total_users=Count('pk'),
        active_users=Count('pk', filter=Q(status=UserConfig.Status.APPROVED)),
        pending_users=Count('pk', filter=Q(status=UserConfig.Status.PENDING)),
    )
    popular = (
        Book.objects.annotate(borrow_count=Count('borrow_records'))
        .filter(borrow_count__gt=0)
        .order_by('-borrow_count', 'title')
        .values('id', 'title', 'author', 'borrow_count')[:5]
    )
    return {
        **books,
        **records,
        **users,
        'pending_requests': Request.objects.filter(status=Request.Status.PENDING).count(),
        'borrowed_copies': books['total_copies'] - books['available_copies'],
        'popular_books': [dict(row, id=str(row['id'])) for row in popular],
    }
