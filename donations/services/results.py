# donations/services/results.py
"""
Structured outcomes returned by every service operation.

Business failures (validation, conflicts, capacity, missing records) are
results, not exceptions. Only defects propagate.
"""

import functools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from django.db import InterfaceError, OperationalError

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    VALIDATION = 'validation'
    PERMISSION = 'permission'
    NOT_FOUND = 'not_found'
    CONFLICT = 'conflict'
    CAPACITY = 'capacity'
    TRANSIENT = 'transient'


STATUS_CODES = {
    None: 200,
    ErrorType.VALIDATION: 400,
    ErrorType.PERMISSION: 403,
    ErrorType.NOT_FOUND: 404,
    ErrorType.CONFLICT: 409,
    ErrorType.CAPACITY: 429,
    ErrorType.TRANSIENT: 503,
}


@dataclass
class ServiceResult:
    success: bool
    message: str
    error_type: Optional[ErrorType] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message, **data):
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error_type, message, **data):
        return cls(success=False, message=message, error_type=error_type, data=data)

    @property
    def status_code(self):
        return STATUS_CODES[self.error_type]

    def to_dict(self):
        payload = {'success': self.success, 'message': self.message}
        if self.error_type is not None:
            payload['type'] = self.error_type.value
        payload.update(self.data)
        return payload

    def __bool__(self):
        return self.success


def transient_on_db_error(func):
    """Turn connection-level database failures into a retryable TRANSIENT result."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Database unavailable in {func.__qualname__}: {e}")
            return ServiceResult.fail(ErrorType.TRANSIENT, 'The service is temporarily unavailable. Please retry.')
    return wrapper
