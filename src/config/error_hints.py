"""Error hints for configuration validation errors.

Turns pydantic error types into short remediation hints printed by the
CLI next to each failing location.
"""

from typing import Final


ERROR_HINTS: Final[dict[str, str]] = {
    "missing": "This field is required. Please add it to your configuration.",
    "int_type": "This field must be an integer (whole number).",
    "int_parsing": "This field must be an integer (whole number).",
    "string_type": "This field must be a text string.",
    "bool_type": "This field must be true or false.",
    "list_type": "This field must be a list.",
    "dict_type": "This field must be a mapping.",
    "greater_than_equal": "The value is too small. Check the minimum allowed.",
    "less_than_equal": "The value is too large. Check the maximum allowed.",
    "string_too_short": "The text is too short. Check minimum length requirement.",
    "string_too_long": "The text is too long. Check maximum length requirement.",
    "extra_forbidden": "Unknown field. Check the spelling against the documented keys.",
    "value_error": "Check the value against the documented format.",
    "file_not_found": "The file does not exist. Check the file path.",
    "yaml_parse_error": "Invalid YAML syntax. Check for proper indentation and formatting.",
}

FIELD_HINTS: Final[dict[str, str]] = {
    "name": "Each track needs a unique, non-empty name.",
    "phrases": "A list of multi-word phrases, matched as exact substrings (3 points each).",
    "keywords": "A list of single words, matched as whole words (1 point each).",
    "exclude": "A list of terms; any hit drops the document from the track.",
    "threshold": "Minimum track score (0 or more) for a match to be kept.",
    "maxPerDay": "Per-track digest cap, between 1 and 20.",
    "max_per_day": "Per-track digest cap, between 1 and 20.",
    "timezone": "Use an IANA timezone name such as 'Europe/Amsterdam' or 'UTC'.",
    "relevance_floor": "An integer 1-5, or null to deliver every judged document.",
    "dedup_days": "Number of days (0-365) a delivered document stays suppressed.",
}


def get_error_hint(error_type: str, field_name: str | None = None) -> str:
    """Get a user-friendly hint for a validation error.

    Args:
        error_type: The pydantic error type (e.g. 'missing').
        field_name: Optional dotted field location for field-specific hints.

    Returns:
        A user-friendly hint string.
    """
    if field_name:
        # 'tracks.0.keywords' -> 'keywords'
        simple_field = field_name.split(".")[-1]
        if simple_field in FIELD_HINTS:
            return FIELD_HINTS[simple_field]

    return ERROR_HINTS.get(
        error_type, "Check the configuration documentation for valid values."
    )


def format_validation_error(
    location: str,
    message: str,
    error_type: str,
    *,
    include_hint: bool = True,
) -> str:
    """Format a validation error with optional hint.

    Args:
        location: The error location (e.g. 'tracks.0.name').
        message: The original error message.
        error_type: The error type.
        include_hint: Whether to include a hint.

    Returns:
        Formatted error string.
    """
    base = f"{location}: {message}"
    if include_hint:
        hint = get_error_hint(error_type, location)
        return f"{base}\n    Hint: {hint}"
    return base
