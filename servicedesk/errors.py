class ServiceDeskError(Exception):
    """Base class for errors that map to an HTTP answer with a {"message"} body."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceDeskError):
    status_code = 404


class ValidationFailed(ServiceDeskError):
    status_code = 400


class InvalidStateError(ServiceDeskError):
    """A workflow transition was attempted from a state that does not allow it."""
    status_code = 400


class AuthenticationError(ServiceDeskError):
    status_code = 401


class ServiceUnavailableError(ServiceDeskError):
    status_code = 503
