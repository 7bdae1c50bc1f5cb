"""Shared text sanitizers for donation form fields."""

from __future__ import annotations

import re

from email_validator import EmailNotValidError, validate_email

TAG_PATTERN = re.compile(r"<[^>]*>")
CONTROL_PATTERN = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


def _squash_whitespace(text: str) -> str:
    return " ".join(text.split())


def sanitize_text(value: object) -> str:
    """Strip markup, control characters and redundant whitespace from a form value."""
    if value is None:
        return ""
    text = str(value)
    text = TAG_PATTERN.sub("", text)
    text = CONTROL_PATTERN.sub("", text)
    return _squash_whitespace(text.strip())


def normalize_email(value: object) -> str | None:
    """Return the normalized address, or None when the syntax is invalid."""
    raw = sanitize_text(value)
    if not raw:
        return None
    try:
        info = validate_email(raw, check_deliverability=False)
    except EmailNotValidError:
        return None
    return info.normalized


def coerce_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if value is None:
        return None
    text = str(value).strip()
    if not INTEGER_PATTERN.fullmatch(text):
        return None
    return int(text)


def mask_email(email: str | None) -> str:
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


__all__ = [
    "coerce_int",
    "mask_email",
    "normalize_email",
    "sanitize_text",
]
