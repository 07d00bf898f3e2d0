"""
TextContent builders shared by the tool handlers.

Handlers always answer with a single TextContent; these helpers keep the
success, validation and empty-result wording consistent across tools.
"""

import json
from typing import Any, Optional

from mcp import types

SUCCESS_MARK = "✓"


def text_response(text: str) -> list[types.TextContent]:
    return [types.TextContent(type="text", text=text)]


def success_response(message: str, details: Optional[str] = None) -> list[types.TextContent]:
    """A confirmation line, with optional details after a blank line."""
    parts = [f"{SUCCESS_MARK} {message}"]
    if details:
        parts.append(details)
    return text_response("\n\n".join(parts))


def error_response(error: str, prefix: str = "Error") -> list[types.TextContent]:
    return text_response(f"{prefix}: {error}")


def validation_error(error: str) -> list[types.TextContent]:
    """Rejected arguments; nothing was sent to the application."""
    return error_response(error, prefix="Validation error")


def json_response(data: Any) -> list[types.TextContent]:
    """Structured results as pretty-printed JSON."""
    return text_response(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def records_response(
    item_type: str,
    records: list,
    filter_text: str = "",
    hint: Optional[str] = None
) -> list[types.TextContent]:
    """
    JSON list of records (anything with to_dict()), or an empty-result message.
    """
    if not records:
        return empty_result(item_type, filter_text, hint)
    return json_response([r.to_dict() if hasattr(r, "to_dict") else r for r in records])


def contact_not_found(
    contact_name: str,
    suggestions: Optional[list[str]] = None
) -> list[types.TextContent]:
    """Name resolution failed; suggestions are close names from the directory."""
    text = f"No contact found matching '{contact_name}'."
    if suggestions:
        text = f"{text} Did you mean: {', '.join(suggestions)}?"
    return text_response(text)


def empty_result(
    item_type: str,
    filter_text: str = "",
    hint: Optional[str] = None
) -> list[types.TextContent]:
    """
    "No <item_type> found<filter_text>." plus an optional note.

    filter_text is appended verbatim, e.g. " matching 'lunch'".
    """
    text = f"No {item_type} found{filter_text}."
    if hint:
        text = f"{text}\n\nNote: {hint}"
    return text_response(text)
