"""
Argument checks for MCP tool handlers.

Every validator returns (value, error). Handlers return
validation_error(error) when error is set and never reach an integration,
so rejected input costs no native dispatch.
"""

from datetime import datetime
from typing import Optional

from apple_pim.scheduler import parse_time

MIN_LIMIT = 1


def _missing(name: str) -> str:
    return f"Missing required parameter: {name}"


def _invalid(name: str, reason: str) -> str:
    return f"Invalid {name}: {reason}"


def _not_a_string(value, name: str) -> Optional[str]:
    if isinstance(value, str):
        return None
    return _invalid(name, f"must be a string, got {type(value).__name__}")


def validate_positive_int(
    value,
    name: str,
    min_val: int = MIN_LIMIT,
    max_val: int = 500
) -> tuple[int | None, str | None]:
    """
    Coerce value to an int in [min_val, max_val].

    None passes through as (None, None); booleans are rejected even though
    they are ints.
    """
    if value is None:
        return None, None
    if isinstance(value, bool):
        return None, _invalid(name, "must be an integer, got bool")

    try:
        number = int(value)
    except (TypeError, ValueError):
        return None, _invalid(name, f"must be an integer, got {type(value).__name__}")

    if not min_val <= number <= max_val:
        bound = f"at least {min_val}" if number < min_val else f"at most {max_val}"
        return None, _invalid(name, f"must be {bound}, got {number}")
    return number, None


def validate_non_empty_string(value, name: str) -> tuple[str | None, str | None]:
    """Required string argument, returned stripped."""
    if value is None:
        return None, _missing(name)
    error = _not_a_string(value, name)
    if error:
        return None, error
    if not value.strip():
        return None, _invalid(name, "cannot be empty")
    return value.strip(), None


def validate_optional_string(value, name: str) -> tuple[str | None, str | None]:
    """Optional string argument; None, "" and whitespace all become None."""
    if value is None:
        return None, None
    error = _not_a_string(value, name)
    if error:
        return None, error
    return value.strip() or None, None


def validate_limit(
    arguments: dict,
    default: int = 10,
    max_val: int = 500
) -> tuple[int, str | None]:
    """
    The tool's 'limit' argument, or default when absent.

    On error the default is still returned alongside the message.
    """
    limit, error = validate_positive_int(arguments.get("limit"), "limit", max_val=max_val)
    if error:
        return default, error
    return default if limit is None else limit, None


def validate_enum(
    value,
    name: str,
    allowed_values: list[str],
    default: Optional[str] = None
) -> tuple[str | None, str | None]:
    if value is None:
        return (default, None) if default is not None else (None, _missing(name))
    if value in allowed_values:
        return value, None
    return None, _invalid(name, f"must be one of {allowed_values}, got '{value}'")


def validate_datetime(
    value,
    name: str,
    required: bool = True
) -> tuple[datetime | None, str | None]:
    """
    Parse an ISO 8601 or natural language time ("tomorrow at 9am").

    Blank strings count as absent.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None, _missing(name) if required else None

    error = _not_a_string(value, name)
    if error:
        return None, error

    parsed = parse_time(value)
    if parsed is None:
        return None, _invalid(
            name,
            f"could not parse '{value}'. "
            "Use ISO format (2026-01-05T09:00:00) or natural language (tomorrow at 9am)"
        )
    return parsed, None
