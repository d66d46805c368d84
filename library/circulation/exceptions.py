from rest_framework import status


class CirculationError(Exception):
    """Base class for failures raised by the circulation engines.

    Every subclass carries a stable ``code`` for clients and the HTTP status
    the transport layer should answer with.
    """

    code = 'error'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'The operation could not be completed.'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class AccountNotApproved(CirculationError):
    code = 'account_not_approved'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Your account is not approved.'

    def __init__(self, message=None, account_status=None, **details):
        super().__init__(message, account_status=account_status, **details)
        self.account_status = account_status


class InsufficientPermission(CirculationError):
    code = 'insufficient_permission'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You do not have permission to perform this action.'


class NotOwner(CirculationError):
    code = 'not_owner'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You can only act on your own records.'


class NotFound(CirculationError):
    code = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found.'


class OutOfStock(CirculationError):
    code = 'out_of_stock'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'This book is currently out of stock.'


class AlreadyActive(CirculationError):
    code = 'already_active'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'An active record already exists.'


class AlreadyExists(CirculationError):
    code = 'already_exists'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'This entry already exists.'


class ConfirmationRequired(CirculationError):
    code = 'confirmation_required'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Confirmation is required to continue.'


class InvalidTransition(CirculationError):
    code = 'invalid_transition'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'This action is not allowed in the current state.'


class MissingParameter(CirculationError):
    code = 'missing_parameter'
    default_message = 'A required parameter is missing.'


class InvalidParameter(CirculationError):
    code = 'invalid_parameter'
    default_message = 'A parameter is invalid.'


class ApprovalFailed(CirculationError):
    code = 'approval_failed'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Failed to approve borrow request.'


class ReturnFailed(CirculationError):
    code = 'return_failed'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Failed to mark book as returned.'


class RequestActionFailed(CirculationError):
    code = 'request_action_failed'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Failed to execute request action.'
