class ShutdownConfigError(ValueError):
    """Raised when shutdown registration options are invalid."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)

class IncompatibleServerError(ShutdownConfigError):
    def __init__(self, message: str = "server must be a compatible server instance"):
        super().__init__("server", message)

class AlreadyRegisteredError(ShutdownConfigError):
    def __init__(self):
        super().__init__("registration", "shutdown events are already registered for this process")
