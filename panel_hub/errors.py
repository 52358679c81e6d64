"""
Error taxonomy for the hub.

Every error that may reach an HTTP caller is a PanelError carrying the status
code and a message that is safe to show to clients.
"""


class PanelError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PanelError):
    """Malformed request input; nothing was changed"""
    status_code = 400


class AuthenticationError(PanelError):
    """Missing, invalid or expired token, or bad credentials"""
    status_code = 401


class NotFoundError(PanelError):
    """The requested node or sample does not exist"""
    status_code = 404


class StorageError(PanelError):
    """A read or write against the database failed"""
    status_code = 500
