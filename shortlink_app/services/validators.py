"""
Format validation for user input: custom shortcodes, subdomain labels and
destination URLs.

Pure logic, no database access. Uniqueness is the allocator's job. The
error strings are shown to end users as-is.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from shortlink_app.services.reserved import RESERVED_IDENTIFIERS, RESERVED_PARTITIONS

MIN_CUSTOM_LENGTH = 3
MAX_CUSTOM_LENGTH = 30

# Lowercase letters, digits and hyphens; starts and ends with a letter or digit
LABEL_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")

MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = {"http", "https"}


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class DestinationResult:
    is_valid: bool
    error: Optional[str] = None
    # Trimmed input, only set when valid
    normalized_url: Optional[str] = None


def clean_identifier(raw: str) -> str:
    """Trim whitespace and lowercase before validation or storage."""
    return (raw or "").strip().lower()


def _validate_label(value: str, noun: str, reserved) -> ValidationResult:
    if len(value) == 0:
        return ValidationResult(False, f"{noun} is required.")

    if len(value) < MIN_CUSTOM_LENGTH:
        return ValidationResult(False, f"{noun} must be at least {MIN_CUSTOM_LENGTH} characters.")

    if len(value) > MAX_CUSTOM_LENGTH:
        return ValidationResult(False, f"{noun} must be {MAX_CUSTOM_LENGTH} characters or fewer.")

    if not LABEL_PATTERN.match(value):
        return ValidationResult(
            False,
            "Only lowercase letters, numbers, and hyphens allowed. "
            "Must start and end with a letter or number.",
        )

    if "--" in value:
        return ValidationResult(False, f"{noun} cannot contain consecutive hyphens.")

    if value in reserved:
        return ValidationResult(False, f'"{value}" is reserved and cannot be used.')

    return ValidationResult(True)


def validate_custom_identifier(candidate: str) -> ValidationResult:
    """
    Validate a user-supplied shortcode (already cleaned by the caller).

    Rules, first failure wins:
        1. non-empty
        2. 3-30 characters
        3. [a-z0-9-], no leading/trailing hyphen
        4. no consecutive hyphens
        5. not a reserved word

    Auto-generated shortcodes skip this entirely.
    """
    return _validate_label(candidate, "Shortcode", RESERVED_IDENTIFIERS)


def validate_partition_label(label: str) -> ValidationResult:
    """Same rules as custom shortcodes, checked against the reserved subdomains."""
    return _validate_label(clean_identifier(label), "Subdomain", RESERVED_PARTITIONS)


def validate_destination(raw_url: str) -> DestinationResult:
    """
    Validate a destination URL.

    Only http(s) with a host is accepted. Reachability is not checked.
    The stored value is the trimmed input, byte for byte.
    """
    trimmed = (raw_url or "").strip()

    if len(trimmed) == 0:
        return DestinationResult(False, "URL is required.")

    if len(trimmed) > MAX_URL_LENGTH:
        return DestinationResult(False, f"URL must be {MAX_URL_LENGTH} characters or fewer.")

    try:
        parsed = urlsplit(trimmed)
        hostname = parsed.hostname
    except ValueError:
        return DestinationResult(False, "Invalid URL format. Make sure to include https://")

    if not parsed.scheme:
        return DestinationResult(False, "Invalid URL format. Make sure to include https://")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return DestinationResult(False, "Only http and https URLs are supported.")

    if not parsed.netloc or not hostname or any(ch.isspace() for ch in trimmed):
        return DestinationResult(False, "Invalid URL format. Make sure to include https://")

    return DestinationResult(True, normalized_url=trimmed)
