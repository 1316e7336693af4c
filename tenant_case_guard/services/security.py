"""
Input limits and sanitization for request bodies and free text.
"""

from __future__ import annotations

import re

# C0 control characters except tab and newline
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def validate_request_size(content_length: int | None, max_size_mb: int) -> None:
    """Validate request body size."""
    if content_length is None:
        return
    max_size_bytes = max_size_mb * 1024 * 1024
    if content_length > max_size_bytes:
        raise ValueError(f"Request body too large. Maximum size: {max_size_mb}MB")


def sanitize_reason(reason: str | None, max_chars: int) -> str | None:
    """Normalize an override justification; blank input becomes None."""
    if reason is None:
        return None
    reason = _CONTROL_CHARS.sub("", reason).strip()
    if not reason:
        return None
    return reason[:max_chars]
