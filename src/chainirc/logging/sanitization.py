"""Sensitive-data sanitization helpers for logs and user-visible errors."""

import re


def sanitize_error_message(error_msg: str) -> str:
    """Sanitize error messages to remove sensitive information.

    Transaction and operation hashes are left intact; only secrets that
    can appear in collaborator error text are masked.
    """
    sanitized = re.sub(
        r"(?i)(private[_-]?key[\"']?\s*[:=]\s*[\"']?)(0x)?[0-9a-f]{64}",
        r"\1[REDACTED_PRIVATE_KEY]",
        error_msg,
    )
    sanitized = re.sub(
        r"(?i)([?&](?:api[_-]?key|apikey|key|token)=)[^&\s\"']+",
        r"\1[REDACTED]",
        sanitized,
    )
    sanitized = re.sub(
        r"Bearer\s+[A-Za-z0-9_\-\.]{20,}",
        "Bearer [REDACTED_TOKEN]",
        sanitized,
    )
    sanitized = re.sub(
        r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+",
        "[REDACTED_JWT]",
        sanitized,
    )
    return sanitized
