"""Side effects applied when staff approve a borrower's request.

Each handler receives the approved request and optional staff-supplied
action data, mutates the borrow record, book or borrower profile, and
returns an :class:`ActionOutcome`. Handlers run inside the transaction that
flips the request to APPROVED; raising rolls both back.
"""
import datetime
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date

from . import inventory
from .borrowing import transition_record
from .conf import circulation_setting
from .exceptions import InvalidParameter, InvalidTransition, MissingParameter
from .models import BorrowRecord, Request, UserConfig

logger = logging.getLogger(__name__)

RecordStatus = BorrowRecord.Status


@dataclass
class ActionOutcome:
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


def _require_borrowed(record):
    if record.status != RecordStatus.BORROWED:
        raise InvalidTransition(
            f"This action needs a BORROWED record; the record is {record.status}.",
            current_status=record.status,
        )


def extend_borrow(request: Request, action_data: Optional[dict] = None) -> ActionOutcome:
    record = request.borrow_record
    _require_borrowed(record)
    days = circulation_setting('EXTENSION_DAYS')
    old_due = record.due_date
    new_due = old_due + timedelta(days=days)
    updated = BorrowRecord.objects.filter(
        pk=record.pk, status=RecordStatus.BORROWED, due_date=old_due
    ).update(due_date=new_due, updated_at=timezone.now())
    if not updated:
        raise InvalidTransition("The borrow record changed while the extension was being applied.")
    return ActionOutcome(
        f"Borrow period extended by {days} days. New due date: {new_due:%Y-%m-%d}",
        {
            'action_type': 'extend_borrow',
            'old_due_date': old_due.isoformat(),
            'new_due_date': new_due.isoformat(),
            'extension_days': days,
        },
    )


def _remove_copy_and_suspend(request, action_type, label):
    record = request.borrow_record
    _require_borrowed(record)
    transition_record(record, RecordStatus.BORROWED, RecordStatus.RETURNED, return_date=timezone.localdate())
    # The copy never came back to the shelf, so only the total shrinks.
    inventory.retire_copy(record.book_id)

    days = circulation_setting('SUSPENSION_DAYS')
    suspended_until = timezone.now() + timedelta(days=days)
    UserConfig.objects.filter(user_id=request.user_id).update(
        status=UserConfig.Status.SUSPENDED,
        suspended_until=suspended_until,
        updated_at=timezone.now(),
    )
    logger.info("User %s suspended until %s after %s", request.user_id, suspended_until, action_type)
    return ActionOutcome(
        f"{label} book reported. Book removed from inventory and user suspended for {days} days.",
        {
            'action_type': action_type,
            'suspension_days': days,
            'suspended_until': suspended_until.isoformat(),
            'book_removed': True,
        },
    )


def report_lost(request: Request, action_data: Optional[dict] = None) -> ActionOutcome:
    return _remove_copy_and_suspend(request, 'report_lost', 'Lost')


def report_damage(request: Request, action_data: Optional[dict] = None) -> ActionOutcome:
    return _remove_copy_and_suspend(request, 'report_damage', 'Damaged')


def early_return(request: Request, action_data: Optional[dict] = None) -> ActionOutcome:
    record = request.borrow_record
    _require_borrowed(record)
    today = timezone.localdate()
    transition_record(record, RecordStatus.BORROWED, RecordStatus.RETURNED, return_date=today)
    inventory.release_copy(record.book_id)
    return ActionOutcome(
        "Book marked as returned. Thank you for the early return!",
        {'action_type': 'early_return', 'return_date': today.isoformat()},
    )


def _parse_due_date(value):
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise InvalidParameter(f"'{value}' is not a valid date (expected YYYY-MM-DD).")
    return parsed


def change_due_date(request: Request, action_data: Optional[dict] = None) -> ActionOutcome:
    new_value = (action_data or {}).get('new_due_date')
    if not new_value:
        raise MissingParameter("New due date is required", parameter='new_due_date')

    record = request.borrow_record
    _require_borrowed(record)
    new_due = _parse_due_date(new_value)
    if new_due < timezone.localdate(record.borrow_date):
        raise InvalidParameter("The new due date cannot be before the borrow date.")
    if new_due < timezone.localdate():
        raise InvalidParameter("The new due date cannot be in the past.")

    old_due = record.due_date
    updated = BorrowRecord.objects.filter(pk=record.pk, status=RecordStatus.BORROWED).update(
        due_date=new_due, updated_at=timezone.now()
    )
    if not updated:
        raise InvalidTransition("The borrow record changed while the due date was being updated.")
    return ActionOutcome(
        f"Due date changed from {old_due:%Y-%m-%d} to {new_due:%Y-%m-%d}",
        {
            'action_type': 'change_due_date',
            'old_due_date': old_due.isoformat(),
            'new_due_date': new_due.isoformat(),
        },
    )


def acknowledge(request: Request, action_data: Optional[dict] = None) -> ActionOutcome:
    return ActionOutcome(
        "Request acknowledged. No automatic action taken.",
        {'action_type': 'message_only'},
    )


ACTION_HANDLERS: Dict[str, Callable[[Request, Optional[dict]], ActionOutcome]] = {
    Request.Type.EXTEND_BORROW: extend_borrow,
    Request.Type.REPORT_LOST: report_lost,
    Request.Type.REPORT_DAMAGE: report_damage,
    Request.Type.EARLY_RETURN: early_return,
    Request.Type.CHANGE_DUE_DATE: change_due_date,
    Request.Type.OTHER: acknowledge,
}


def execute_request_action(request: Request, action_data: Optional[dict] = None) -> ActionOutcome:
    handler = ACTION_HANDLERS.get(request.type)
    if handler is None:
        raise InvalidParameter(f"Unknown request type: {request.type}")
    return handler(request, action_data)
