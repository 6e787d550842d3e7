"""
Input validation utilities
"""

MAX_FIELD_LENGTH = 10000


def sanitize_input(text: str, max_length: int = MAX_FIELD_LENGTH) -> str:
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

    # Truncate to max length
    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()
