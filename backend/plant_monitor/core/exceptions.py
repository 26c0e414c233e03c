class PlantMonitorError(Exception):
    """Base class for errors surfaced at the HTTP boundary."""

    status_code = 500
    message = "Server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message


class ReadingValidationError(PlantMonitorError):
    status_code = 400
    message = "Missing required fields"


class PersistenceError(PlantMonitorError):
    status_code = 500
    message = "Storage unavailable"


class NotificationError(Exception):
    """Raised by notifiers. Logged by the dispatcher, never returned to clients."""
