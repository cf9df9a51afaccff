"""Logging utilities for redacting identifiers."""

from typing import Optional, Union
from uuid import UUID


def redact_user_id(user_id: Optional[Union[str, UUID]]) -> str:
    """
    Shorten a user id for logging while keeping it correlatable.

    Args:
        user_id: Authenticated user id (UUID or string)

    Returns:
        First 8 characters followed by ``…``, or 'N/A' when missing

    Examples:
        >>> redact_user_id("5f0c8a52-0c3e-4c1a-9a43-3b0f7b2d9e11")
        '5f0c8a52…'
        >>> redact_user_id(None)
        'N/A'
    """
    if not user_id:
        return "N/A"

    text = str(user_id)
    if len(text) <= 8:
        return text
    return f"{text[:8]}…"
