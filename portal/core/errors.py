"""Error taxonomy shared by the adapters and the HTTP layer."""


class PortalError(Exception):
    """Base error carrying the HTTP status and the message safe to show callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientInputError(PortalError):
    """The caller sent a missing or malformed identifier."""

    status_code = 400


class NotFoundError(PortalError):
    """The request was valid but no matching record exists."""

    status_code = 404


class UpstreamFailure(PortalError):
    """The data service failed for a reason other than a missing row."""

    status_code = 500


class UnexpectedFailure(PortalError):
    """Anything else, including malformed rows coming back from the data service."""

    status_code = 500


class AuthResolutionFailure(RuntimeError):
    """Raised by the credential-session client; never surfaced to HTTP callers."""
