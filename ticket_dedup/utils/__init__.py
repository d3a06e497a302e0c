"""
Utility functions
"""
from ticket_dedup.utils.logger import get_logger, setup_logger
from ticket_dedup.utils.validators import validate_ticket_key, sanitize_input

__all__ = [
    "get_logger",
    "setup_logger",
    "validate_ticket_key",
    "sanitize_input",
]
