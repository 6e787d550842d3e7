"""
Utility functions
"""
from ticket_intake.utils.logger import get_logger, setup_logger
from ticket_intake.utils.validators import sanitize_input

__all__ = [
    "get_logger",
    "setup_logger",
    "sanitize_input",
]
