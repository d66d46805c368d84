import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from django.db import DatabaseError
from rest_framework import status

from .exceptions import CirculationError, ConfirmationRequired

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of a circulation operation as seen by the transport layer."""

    success: bool
    message: str
    error: Optional[str] = None
    status_code: int = status.HTTP_200_OK
    requires_confirmation: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message, status_code=status.HTTP_200_OK, **data):
        return cls(success=True, message=message, status_code=status_code, data=data)

    @classmethod
    def failure(cls, exc: CirculationError):
        return cls(
            success=False,
            message=exc.message,
            error=exc.code,
            status_code=exc.status_code,
            requires_confirmation=isinstance(exc, ConfirmationRequired),
            data=dict(exc.details),
        )

    def __bool__(self):
        return self.success


def service_operation(failure_message):
    """Turn raised circulation errors into failed results.

    Unexpected storage errors are logged with their traceback and reported
    with ``failure_message`` so raw database exceptions never leave the
    service layer.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except CirculationError as exc:
                return OperationResult.failure(exc)
            except DatabaseError:
                logger.exception("%s failed", func.__name__)
                return OperationResult(
                    success=False,
                    message=failure_message,
                    error='internal_error',
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                )
        return wrapper
    return decorator
