import functools
import logging
from dataclasses import dataclass
from typing import Any, Optional

from .exceptions import ServiceError, UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """Uniform envelope returned by every service action."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    kind: Optional[str] = None

    @classmethod
    def ok(cls, data=None, message=None):
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error, kind='unexpected'):
        return cls(success=False, error=error, kind=kind)

    def as_dict(self, data=None):
        payload = {'success': self.success}
        if self.success:
            payload['data'] = self.data if data is None else data
        else:
            payload['error'] = self.error
        if self.message:
            payload['message'] = self.message
        return payload


def service_action(default_error):
    """
    Wrap a service function so nothing raises past it.

    The wrapped function receives the acting user first. ServiceErrors become
    failed results carrying their kind; anything else is logged and surfaced
    as ``default_error``.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(user, *args, **kwargs):
            try:
                if user is None or not getattr(user, 'is_authenticated', False):
                    raise UnauthorizedError("Unauthorized")
                result = func(user, *args, **kwargs)
            except ServiceError as e:
                logger.warning(f"{func.__name__} rejected for user {getattr(user, 'id', None)}: {e}")
                return ActionResult.fail(str(e), kind=e.kind)
            except Exception:
                logger.exception(f"Unexpected error in {func.__name__}")
                return ActionResult.fail(default_error)
            if isinstance(result, ActionResult):
                return result
            return ActionResult.ok(result)
        return wrapper
    return decorator
