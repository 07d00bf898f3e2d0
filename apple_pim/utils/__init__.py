"""
MCP Server Utilities

Shared validation, response formatting, and error handling utilities
for the Apple PIM MCP server.
"""

from .validation import (
    validate_positive_int,
    validate_non_empty_string,
    validate_optional_string,
    validate_limit,
    validate_enum,
    validate_datetime,
    MIN_LIMIT,
)

from .responses import (
    text_response,
    success_response,
    error_response,
    validation_error,
    json_response,
    records_response,
    contact_not_found,
    empty_result,
)

from .errors import handle_tool_error

__all__ = [
    # Validation
    "validate_positive_int",
    "validate_non_empty_string",
    "validate_optional_string",
    "validate_limit",
    "validate_enum",
    "validate_datetime",
    "MIN_LIMIT",
    # Responses
    "text_response",
    "success_response",
    "error_response",
    "validation_error",
    "json_response",
    "records_response",
    "contact_not_found",
    "empty_result",
    # Errors
    "handle_tool_error",
]
