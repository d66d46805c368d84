import logging

from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from .exceptions import AlreadyExists, InvalidParameter, NotFound
from .models import UserConfig
from .permissions import ADMIN_ROLES, get_config, require_role
from .results import OperationResult, service_operation

logger = logging.getLogger(__name__)

Status = UserConfig.Status


@service_operation("Failed to create user configuration")
def setup_user(user, user_class, section, roll_no) -> OperationResult:
    if UserConfig.objects.filter(user_id=user.pk).exists():
        raise AlreadyExists("User configuration already exists")
    try:
        with transaction.atomic():
            config = UserConfig.objects.create(
                user=user,
                full_name=user.name or f"{user_class}{section} Student",
                status=Status.PENDING,
                role=UserConfig.Role.USER,
                user_class=user_class,
                section=section,
                roll_no=roll_no,
                last_active_at=timezone.localdate(),
            )
    except IntegrityError:
        raise AlreadyExists("User configuration already exists")
    logger.info("User %s completed setup, awaiting approval", user.pk)
    return OperationResult.ok(
        "Successfully created the user configuration", status_code=201, config=config
    )


def _target_config(user_id):
    try:
        return UserConfig.objects.select_related('user').get(user_id=user_id)
    except (UserConfig.DoesNotExist, ValueError):
        raise NotFound("User not found")


def _set_status(admin, user_id, status, verb, suspended_until=None):
    require_role(get_config(admin), ADMIN_ROLES, "manage users")
    config = _target_config(user_id)
    config.status = status
    config.suspended_until = suspended_until
    config.save(update_fields=['status', 'suspended_until', 'updated_at'])
    logger.info("Admin %s set user %s to %s", admin.pk, user_id, status)
    return OperationResult.ok(f"User {verb} successfully", config=config)


@service_operation("Failed to approve user")
def approve_user(admin, user_id) -> OperationResult:
    return _set_status(admin, user_id, Status.APPROVED, 'approved')


@service_operation("Failed to reject user")
def reject_user(admin, user_id) -> OperationResult:
    return _set_status(admin, user_id, Status.REJECTED, 'rejected')


@service_operation("Failed to suspend user")
def suspend_user(admin, user_id, until=None) -> OperationResult:
    if until is not None and until <= timezone.now():
        raise InvalidParameter("The suspension end must be in the future.")
    return _set_status(admin, user_id, Status.SUSPENDED, 'suspended', suspended_until=until)


@service_operation("Failed to unsuspend user")
def reactivate_user(admin, user_id) -> OperationResult:
    require_role(get_config(admin), ADMIN_ROLES, "manage users")
    config = _target_config(user_id)
    if config.status != Status.SUSPENDED:
        raise InvalidParameter(f"User is not suspended (status: {config.status}).")
    return _set_status(admin, user_id, Status.APPROVED, 'reactivated')


@service_operation("Failed to update user role")
def change_user_role(admin, user_id, role) -> OperationResult:
    require_role(get_config(admin), ADMIN_ROLES, "change user roles")
    if role not in UserConfig.Role.values:
        raise InvalidParameter(f"Unknown role: {role}")
    config = _target_config(user_id)
    config.role = role
    config.save(update_fields=['role', 'updated_at'])
    logger.info("Admin %s changed role of user %s to %s", admin.pk, user_id, role)
    return OperationResult.ok("User role updated successfully", config=config)


def lift_expired_suspensions(now=None):
    """Restore APPROVED status for timed suspensions that have run out."""
    now = now or timezone.now()
    lifted = UserConfig.objects.filter(
        status=Status.SUSPENDED, suspended_until__isnull=False, suspended_until__lte=now
    ).update(status=Status.APPROVED, suspended_until=None, updated_at=now)
    if lifted:
        logger.info("Lifted %d expired suspension(s)", lifted)
    return lifted


def get_user_stats():
    return UserConfig.objects.aggregate(
        total=Count('pk'),
        pending=Count('pk', filter=Q(status=Status.PENDING)),
        approved=Count('pk', filter=Q(status=Status.APPROVED)),
        suspended=Count('pk', filter=Q(status=Status.SUSPENDED)),
        admins=Count('pk', filter=Q(role=UserConfig.Role.ADMIN)),
    )
