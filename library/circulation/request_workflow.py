"""Borrower requests: PENDING -> APPROVED | REJECTED | RESCINDED.

Approval flips the status and applies the type-specific action in one
transaction, so a failed action leaves the request PENDING.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from .borrowing import get_record
from .exceptions import (
    AlreadyActive,
    CirculationError,
    InvalidParameter,
    InvalidTransition,
    NotFound,
    NotOwner,
    RequestActionFailed,
)
from .models import BorrowRecord, Request
from .permissions import STAFF_ROLES, get_config, require_role
from .request_actions import execute_request_action
from .results import OperationResult, service_operation

logger = logging.getLogger(__name__)

Status = Request.Status
DECISIONS = (Status.APPROVED, Status.REJECTED)


def get_request(request_id):
    try:
        return Request.objects.select_related('borrow_record', 'borrow_record__book').get(pk=request_id)
    except (Request.DoesNotExist, ValidationError):
        raise NotFound("Request not found")


def _resolve(request_obj, new_status, **fields):
    updated = Request.objects.filter(pk=request_obj.pk, status=Status.PENDING).update(
        status=new_status, updated_at=timezone.now(), **fields
    )
    if not updated:
        current = Request.objects.filter(pk=request_obj.pk).values_list('status', flat=True).first()
        raise InvalidTransition(
            f"Only pending requests can be updated; this request is {current}.",
            current_status=current,
        )


def _has_pending_request(record):
    return Request.objects.filter(borrow_record=record, status=Status.PENDING).exists()


@service_operation("Failed to create request")
def create_request(user, borrow_record_id, request_type, reason, description=None, requested_date=None) -> OperationResult:
    if request_type not in Request.Type.values:
        raise InvalidParameter(f"Unknown request type: {request_type}")

    record = get_record(borrow_record_id)
    if record.user_id != user.pk:
        raise NotOwner("You can only create requests for your own borrow records")
    if record.status != BorrowRecord.Status.BORROWED:
        raise InvalidTransition(
            f"Requests can only be made for borrowed books; this record is {record.status}.",
            current_status=record.status,
        )
    if _has_pending_request(record):
        raise AlreadyActive("There is already a pending request for this borrow record.")

    try:
        with transaction.atomic():
            request_obj = Request.objects.create(
                user=user,
                borrow_record=record,
                type=request_type,
                reason=reason,
                description=description,
                requested_date=requested_date,
            )
    except IntegrityError:
        raise AlreadyActive("There is already a pending request for this borrow record.")

    logger.info("User %s created %s request %s", user.pk, request_type, request_obj.pk)
    return OperationResult.ok("Request created successfully", status_code=201, request=request_obj)


@service_operation("Failed to rescind request")
def rescind_request(request_id, user) -> OperationResult:
    request_obj = get_request(request_id)
    if request_obj.user_id != user.pk:
        raise NotOwner("You can only rescind your own requests")
    if request_obj.status != Status.PENDING:
        raise InvalidTransition(
            "Only pending requests can be rescinded",
            current_status=request_obj.status,
        )

    _resolve(request_obj, Status.RESCINDED, rescinded_at=timezone.now())
    request_obj.refresh_from_db()
    logger.info("Request %s rescinded by its owner", request_obj.pk)
    return OperationResult.ok("Request rescinded successfully", request=request_obj)


@service_operation("Failed to respond to request")
def respond_to_request(request_id, decision, admin_response, admin, action_data=None) -> OperationResult:
    config = get_config(admin)
    require_role(config, STAFF_ROLES, "respond to requests")
    if decision not in DECISIONS:
        raise InvalidParameter("Decision must be APPROVED or REJECTED.")

    request_obj = get_request(request_id)
    if request_obj.status != Status.PENDING:
        raise InvalidTransition(
            "Only pending requests can be responded to",
            current_status=request_obj.status,
        )

    outcome = None
    try:
        with transaction.atomic():
            _resolve(
                request_obj,
                decision,
                admin_response=admin_response,
                admin=admin,
                resolved_at=timezone.now(),
            )
            if decision == Status.APPROVED:
                outcome = execute_request_action(request_obj, action_data)
    except CirculationError:
        raise
    except DatabaseError as exc:
        logger.exception("Request %s (%s) could not be applied", request_obj.pk, request_obj.type)
        raise RequestActionFailed() from exc

    request_obj.refresh_from_db()
    logger.info("Request %s %s by %s", request_obj.pk, decision, admin.pk)
    message = f"Request {decision.lower()} successfully"
    if outcome is None:
        return OperationResult.ok(message, request=request_obj)
    return OperationResult.ok(f"{message}. {outcome.message}", request=request_obj, action=outcome.data)
