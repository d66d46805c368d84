"""Borrow lifecycle: PENDING -> BORROWED -> RETURNED, or PENDING -> deleted.

A request only queues the borrower; a copy is reserved when staff approve
it and released when staff mark it returned.
"""
import logging
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from . import inventory
from .conf import circulation_setting
from .exceptions import (
    AlreadyActive,
    ApprovalFailed,
    CirculationError,
    ConfirmationRequired,
    InvalidTransition,
    NotFound,
    OutOfStock,
    ReturnFailed,
)
from .models import Book, BorrowRecord
from .permissions import STAFF_ROLES, get_config, require_approved, require_role
from .results import OperationResult, service_operation
from .signals import borrow_approved

logger = logging.getLogger(__name__)

Status = BorrowRecord.Status


def get_book(book_id):
    try:
        return Book.objects.get(pk=book_id)
    except (Book.DoesNotExist, ValidationError):
        raise NotFound("Book not found")


def get_record(record_id):
    try:
        return BorrowRecord.objects.select_related('book').get(pk=record_id)
    except (BorrowRecord.DoesNotExist, ValidationError):
        raise NotFound("Borrow record not found")


def transition_record(record, expected, new, **fields):
    """Move ``record`` from ``expected`` to ``new`` with a conditional update.

    Raises InvalidTransition when another writer changed the status first.
    """
    updated = BorrowRecord.objects.filter(pk=record.pk, status=expected).update(
        status=new, updated_at=timezone.now(), **fields
    )
    if not updated:
        current = BorrowRecord.objects.filter(pk=record.pk).values_list('status', flat=True).first()
        raise InvalidTransition(
            f"Cannot change status from {current} to {new}. Only {expected} records can be moved to {new}.",
            current_status=current,
            expected_status=expected,
        )


def _compensate(record_id, applied, original, **fields):
    try:
        BorrowRecord.objects.filter(pk=record_id, status=applied).update(
            status=original, updated_at=timezone.now(), **fields
        )
    except DatabaseError:
        logger.exception("Compensating revert of borrow record %s to %s failed", record_id, original)


def _notify_approved(record):
    for receiver, response in borrow_approved.send_robust(sender=BorrowRecord, record=record):
        if isinstance(response, Exception):
            logger.error(
                "Borrow approval notification for %s failed in %r: %s", record.pk, receiver, response
            )


def _borrow_history(user, book):
    return list(BorrowRecord.objects.filter(user=user, book=book))


def _out_of_stock(book, message):
    return OutOfStock(
        message,
        total_copies=book.total_copies,
        available_copies=book.available_copies,
    )


@service_operation("Failed to submit borrow request")
def request_borrow(user, book_id, confirm_reborrow=False) -> OperationResult:
    config = get_config(user)
    require_approved(config)

    book = get_book(book_id)
    if book.available_copies <= 0:
        raise _out_of_stock(
            book,
            f"This book is currently out of stock. {book.total_copies} total copies, all currently borrowed.",
        )

    history = _borrow_history(user, book)
    active = next((r for r in history if r.status in BorrowRecord.ACTIVE_STATUSES), None)
    if active:
        raise AlreadyActive(
            f"You already have an active borrow record for this book with status: {active.status}",
            record_id=str(active.pk),
            record_status=active.status,
        )
    if not confirm_reborrow and any(r.status == Status.RETURNED for r in history):
        raise ConfirmationRequired("You have previously returned this book. Confirm to borrow again.")

    now = timezone.now()
    due_date = timezone.localdate(now) + timedelta(days=circulation_setting('PENDING_DUE_DAYS'))
    try:
        with transaction.atomic():
            record = BorrowRecord.objects.create(
                user=user,
                book=book,
                borrow_date=now,
                due_date=due_date,
                status=Status.PENDING,
            )
    except IntegrityError:
        raise AlreadyActive("You already have an active borrow record for this book.")

    logger.info("User %s requested book %s (record %s)", user.pk, book.pk, record.pk)
    return OperationResult.ok(
        "Book borrow request submitted successfully - awaiting approval",
        status_code=201,
        borrow_record=record,
        book=book,
    )


@service_operation("Failed to approve borrow request")
def approve_borrow(record_id, approver) -> OperationResult:
    config = get_config(approver)
    require_role(config, STAFF_ROLES, "approve borrow requests")

    record = get_record(record_id)
    if record.status != Status.PENDING:
        raise InvalidTransition(
            f"Cannot change status from {record.status} to BORROWED. Only PENDING records can be approved.",
            current_status=record.status,
        )

    # Time has passed since the request; check the shelf again.
    book = get_book(record.book_id)
    if book.available_copies <= 0:
        raise _out_of_stock(
            book,
            f"This book is no longer available. All {book.total_copies} copies are currently borrowed.",
        )

    due_date = timezone.localdate() + timedelta(days=circulation_setting('LOAN_DAYS'))
    try:
        with transaction.atomic():
            transition_record(record, Status.PENDING, Status.BORROWED, due_date=due_date)
            inventory.reserve_copy(record.book_id)
    except CirculationError:
        raise
    except DatabaseError as exc:
        logger.exception("Approval of borrow record %s failed", record.pk)
        _compensate(record.pk, Status.BORROWED, Status.PENDING)
        raise ApprovalFailed() from exc

    record.refresh_from_db()
    logger.info("Borrow record %s approved by %s, due %s", record.pk, approver.pk, record.due_date)
    transaction.on_commit(lambda: _notify_approved(record))
    return OperationResult.ok("Borrow request approved successfully", borrow_record=record)


@service_operation("Failed to reject borrow request")
def reject_borrow(record_id, approver) -> OperationResult:
    config = get_config(approver)
    require_role(config, STAFF_ROLES, "reject borrow requests")

    record = get_record(record_id)
    if record.status != Status.PENDING:
        raise InvalidTransition(
            f"Cannot reject a borrow record with status {record.status}. Only PENDING records can be rejected.",
            current_status=record.status,
        )
    deleted, _ = BorrowRecord.objects.filter(pk=record.pk, status=Status.PENDING).delete()
    if not deleted:
        raise InvalidTransition("This borrow request was already processed.")

    logger.info("Borrow record %s rejected by %s", record_id, approver.pk)
    return OperationResult.ok("Borrow request rejected successfully")


@service_operation("Failed to mark book as returned")
def return_borrow(record_id, approver) -> OperationResult:
    config = get_config(approver)
    require_role(config, STAFF_ROLES, "mark books as returned")

    record = get_record(record_id)
    if record.status != Status.BORROWED:
        raise InvalidTransition(
            f"Cannot change status from {record.status} to RETURNED. Only BORROWED records can be returned.",
            current_status=record.status,
        )

    try:
        with transaction.atomic():
            transition_record(record, Status.BORROWED, Status.RETURNED, return_date=timezone.localdate())
            inventory.release_copy(record.book_id)
    except CirculationError:
        raise
    except DatabaseError as exc:
        logger.exception("Return of borrow record %s failed", record.pk)
        _compensate(record.pk, Status.RETURNED, Status.BORROWED, return_date=None)
        raise ReturnFailed() from exc

    record.refresh_from_db()
    logger.info("Borrow record %s returned, processed by %s", record.pk, approver.pk)
    return OperationResult.ok("Book marked as returned successfully", borrow_record=record)
