"""Domain error taxonomy shared by services and routers.

Services raise these; the API layer maps each class to its HTTP status
through a single exception handler registered in ``caretrack.main``.
"""


class CareTrackError(Exception):
    """Base exception for all expected, request-scoped failures."""

    status_code = 400
    code = "error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code


class NotAuthenticatedError(CareTrackError):
    """Not authenticated."""

    status_code = 401
    code = "not_authenticated"


class NotAuthorizedError(CareTrackError):
    """Not authorized for this action."""

    status_code = 403
    code = "not_authorized"


class NotFoundError(CareTrackError):
    """Resource not found."""

    status_code = 404
    code = "not_found"


class ConflictError(CareTrackError):
    """Resource conflicts with existing state."""

    status_code = 409
    code = "conflict"


class InvitationAlreadyUsedError(ConflictError):
    """This invitation has already been used."""

    code = "already_used"


class ValidationError(CareTrackError):
    """Invalid input."""

    status_code = 422
    code = "validation_error"


class ExternalServiceError(CareTrackError):
    """External service failed."""

    status_code = 502
    code = "external_service_error"
