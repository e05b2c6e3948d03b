class ServiceError(Exception):
    """Base error raised inside service actions and mapped to a failed ActionResult."""
    kind = 'unexpected'

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class UnauthorizedError(ServiceError):
    kind = 'unauthorized'


class ForbiddenError(ServiceError):
    kind = 'forbidden'


class NotFoundError(ServiceError):
    kind = 'not_found'


class ValidationFailed(ServiceError):
    kind = 'validation'


class ConflictError(ServiceError):
    kind = 'conflict'


class InvalidTransitionError(ConflictError):
    kind = 'invalid_transition'
