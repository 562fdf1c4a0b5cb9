# link-shortener/validators.py
import re
from urllib.parse import urlsplit

from errors import ValidationError

MAX_URL_LENGTH = 2048
ALIAS_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

# Paths owned by the application itself; an alias with one of these names
# would never be reachable through the redirect route.
RESERVED_ALIASES = frozenset(
    {"api", "analytics", "dashboard", "health", "docs", "redoc"}
)


def validate_full_url(value: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("url", "Please provide a valid URL")
    value = value.strip()
    if len(value) > MAX_URL_LENGTH:
        raise ValidationError("url", f"URL must be at most {MAX_URL_LENGTH} characters")

    try:
        parts = urlsplit(value)
        # Accessing .port validates the port component
        parts.port
    except ValueError:
        raise ValidationError("url", "Please provide a valid URL")

    if parts.scheme.lower() not in ("http", "https"):
        raise ValidationError("url", "Only HTTP and HTTPS URLs are allowed")
    if not parts.hostname or any(ch.isspace() for ch in value):
        raise ValidationError("url", "Please provide a valid URL")
    return value


def validate_custom_alias(value: str, min_length: int, max_length: int) -> str:
    if not min_length <= len(value) <= max_length:
        raise ValidationError(
            "customUrl",
            f"Custom URL must be between {min_length} and {max_length} characters",
        )
    if not ALIAS_PATTERN.fullmatch(value):
        raise ValidationError(
            "customUrl",
            "Custom URL can only contain letters, numbers, hyphens, and underscores",
        )
    if value.lower() in RESERVED_ALIASES:
        raise ValidationError("customUrl", "Custom URL is reserved")
    return value
