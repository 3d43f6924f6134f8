"""Identifier checks for values that end up in URLs and log context."""

import re

# Letters, digits, "_" and "-"; must not start with a separator
SAFE_IDENTIFIER_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]*$")
MAX_IDENTIFIER_LENGTH = 64


def is_safe_identifier(value: str | None, max_length: int = MAX_IDENTIFIER_LENGTH) -> bool:
    """Whether a project, view or request id can be used verbatim."""
    return bool(value) and len(value) <= max_length and SAFE_IDENTIFIER_RE.match(value) is not None


def validate_identifier(value: str, name: str = "identifier", max_length: int = MAX_IDENTIFIER_LENGTH) -> str:
    """Return the identifier unchanged, or raise.

    Raises:
        ValueError: If the identifier is empty, too long or has unsafe characters
    """
    if not value:
        raise ValueError(f"{name} cannot be empty")
    if len(value) > max_length:
        raise ValueError(f"{name} exceeds maximum length of {max_length}")
    if not is_safe_identifier(value, max_length):
        raise ValueError(f"Invalid {name}: use letters, digits, underscores and hyphens only")
    return value
