"""
Input validation utilities
"""
import re

TICKET_KEY_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*-\d+$")


def validate_ticket_key(ticket_key: str) -> bool:
    """
    Validate ticket key format

    Args:
        ticket_key: Ticket key to validate (e.g. "BUG-201")

    Returns:
        True if valid format
    """
    return bool(ticket_key) and TICKET_KEY_PATTERN.match(ticket_key.strip()) is not None


def sanitize_input(text: str, max_length: int = 10000) -> str:
    """
    Sanitize user input

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    # Remove null bytes
    text = text.replace('\x00', '')

    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()
