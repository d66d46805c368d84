from rest_framework import permissions

from .exceptions import AccountNotApproved, InsufficientPermission, NotFound
from .models import UserConfig

Role = UserConfig.Role
Status = UserConfig.Status

STAFF_ROLES = frozenset({Role.ADMIN, Role.MODERATOR})
ADMIN_ROLES = frozenset({Role.ADMIN})


def get_config(user):
    try:
        return UserConfig.objects.get(user_id=user.pk)
    except UserConfig.DoesNotExist:
        raise NotFound("User configuration not found")


def require_approved(config):
    if config.status == Status.APPROVED:
        return
    if config.status == Status.PENDING:
        raise AccountNotApproved(
            "Your account is currently pending approval. You cannot request books "
            "until your account is approved by an administrator.",
            account_status=config.status,
        )
    if config.status == Status.SUSPENDED:
        message = (
            "Your account is currently suspended. You cannot request books "
            "until your account is reactivated."
        )
        if config.suspended_until:
            message += f" The suspension ends on {config.suspended_until:%Y-%m-%d}."
        raise AccountNotApproved(message, account_status=config.status)
    raise AccountNotApproved(
        f"Your account status is {config.status}. Only users with APPROVED status can request books.",
        account_status=config.status,
    )


def require_role(config, allowed_roles, action='perform this action'):
    if config.role not in allowed_roles:
        if set(allowed_roles) == ADMIN_ROLES:
            who = "administrators"
        else:
            who = "administrators and moderators"
        raise InsufficientPermission(f"Only {who} can {action}")


def _role_of(user):
    if not user or not user.is_authenticated:
        return None
    config = getattr(user, 'config', None)
    return config.role if config else None


def is_library_staff(user):
    return _role_of(user) in STAFF_ROLES


class IsLibraryAdmin(permissions.BasePermission):
    message = "Only administrators can perform this action"

    def has_permission(self, request, view):
        return _role_of(request.user) in ADMIN_ROLES


class IsLibraryStaff(permissions.BasePermission):
    message = "Only administrators and moderators can perform this action"

    def has_permission(self, request, view):
        return is_library_staff(request.user)


class IsOwnerOrStaff(permissions.BasePermission):
    def has_object_permission(self, request, view, obj):
        return is_library_staff(request.user) or obj.user_id == request.user.pk
