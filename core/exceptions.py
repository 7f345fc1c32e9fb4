"""
Domain errors raised by the marketplace services.

Views translate these into the explicit result shape
``{"success": false, "error": <message>, "code": <code>}`` using the
``status_code`` carried by each class.
"""

from rest_framework import status


class MarketplaceError(Exception):
    """Base class for every rejected marketplace operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'error'
    default_message = 'The operation could not be completed.'

    def __init__(self, message=None, code=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)

    def as_response_data(self):
        return {'success': False, 'error': self.message, 'code': self.code}


class NotFoundError(MarketplaceError):
    """The sale, product, user or chat does not exist (or is hidden)."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'
    default_message = 'Not found.'


class AuthorizationError(MarketplaceError):
    """The caller is not allowed to act on this object."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'forbidden'
    default_message = 'You do not have permission to perform this action.'


class PreconditionError(MarketplaceError):
    """The object is not in a state that allows the operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'precondition_failed'


class InvalidTransitionError(PreconditionError):
    default_code = 'invalid_transition'


class ConflictError(PreconditionError):
    """A uniqueness rule was violated, usually by a concurrent request."""

    status_code = status.HTTP_409_CONFLICT
    default_code = 'conflict'
