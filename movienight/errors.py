"""
Error taxonomy shared by the services and the HTTP layer.

Only ``MovieNightError`` subclasses cross the HTTP boundary; the server
renders them as ``{"error": message}`` with ``status_code``.
"""


class MovieNightError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MovieNightError):
    status_code = 400
    default_message = "Invalid request"


class MalformedPayload(ValidationError):
    default_message = "Invalid QR code"


class NotFound(MovieNightError):
    status_code = 404
    default_message = "Registration not found"


class PersistenceFailure(MovieNightError):
    status_code = 500
    default_message = "Database error. Please try again."


class SerialConflict(PersistenceFailure):
    def __init__(self, serial: str):
        self.serial = serial
        super().__init__(f"serial {serial} already exists")


class NotificationFailure(MovieNightError):
    # swallowed by the registration flow, never rendered
    status_code = 502
    default_message = "Email delivery failed"
