class PixHubError(Exception):
    """Base class for every error the service reports to its callers."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PixHubError):
    """Malformed or out-of-range input. Never retried."""

    status_code = 422


class NotFoundError(PixHubError):
    status_code = 404


class StateConflictError(PixHubError):
    """A transition was requested from a state that forbids it."""

    status_code = 409


class UpstreamError(PixHubError):
    """The payment gateway failed to authenticate or answer."""

    status_code = 502
