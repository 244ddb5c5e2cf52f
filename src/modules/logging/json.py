import sys
from .base import BaseLogger


class JsonLogger(BaseLogger):
    """Logger that outputs JSON for machine parsing."""
    
    def __init__(self, log_level: str = "INFO"):
        super().__init__(log_level)
        # Configure loguru for JSON output
        self.logger.configure(
            handlers=[{
                "sink": sys.stdout,
                "serialize": True,  # JSON output
                "format": "{time} | {level} | {message}",
                "level": log_level
            }]
        )
    
    def log_transition(self, previous: str, current: str):
        self.logger.bind(
            type="transition",
            previous=previous,
            current=current
        ).trace(f"{previous} -> {current}")

    def log_error(self, message: str):
        self.logger.bind(type="error").error(message)

    def log_warning(self, message: str):
        self.logger.bind(type="warning").warning(message)

    def log_info(self, message: str):
        self.logger.bind(type="info").info(message)

    def log_debug(self, message: str):
        self.logger.bind(type="debug").debug(message)

    def log_trace(self, message: str):
        self.logger.bind(type="trace").trace(message)
