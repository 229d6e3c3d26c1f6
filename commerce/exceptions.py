class CommerceError(Exception):
    """Base error for domain failures; ``status`` is the HTTP code views use."""

    status = 400

    def __init__(self, message, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra


class ValidationError(CommerceError):
    status = 400


class NotFound(CommerceError):
    status = 404


class PermissionDenied(CommerceError):
    status = 403


class AuthenticationRequired(CommerceError):
    status = 401


class ExternalServiceError(CommerceError):
    """A third-party API (gateway, image host, push service) failed."""

    status = 502
