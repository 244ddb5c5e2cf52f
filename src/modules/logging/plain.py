import sys
from .base import BaseLogger


class PlainLogger(BaseLogger):
    """Logger that outputs plain text, suitable for log files and containers."""
    
    def __init__(self, log_level: str = "INFO"):
        super().__init__(log_level)
        # Configure loguru for plain output
        self.logger.configure(
            handlers=[{
                "sink": sys.stdout,
                "format": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}",
                "colorize": False,
                "level": log_level
            }]
        )
    
    def log_transition(self, previous: str, current: str):
        self.logger.trace(f"State: {previous} -> {current}")

    def log_error(self, message: str):
        self.logger.error(message)

    def log_warning(self, message: str):
        self.logger.warning(message)

    def log_info(self, message: str):
        self.logger.info(message)

    def log_debug(self, message: str):
        self.logger.debug(message)

    def log_trace(self, message: str):
        self.logger.trace(message)
