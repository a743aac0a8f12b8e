"""
Utility for turning tag values into device-safe path components.
"""

ALLOWED_PUNCTUATION = frozenset(" .()")


def sanitize_name(value: str) -> str:
    """
    Replace every character that is neither alphanumeric nor in the
    allow-list (space, dot, parentheses) with an underscore.

    Args:
        value: Free-form artist, album or title string

    Returns:
        Sanitized string of the same length
    """
    return "".join(
        char if char.isalnum() or char in ALLOWED_PUNCTUATION else "_"
        for char in value
    )
