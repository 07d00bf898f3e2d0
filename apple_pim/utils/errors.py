"""
Error handling utilities for MCP tool handlers.

Maps the apple_pim error taxonomy to tool responses. Tool calls never let
an exception escape to the MCP transport.
"""

import logging

from mcp import types

from apple_pim.errors import ErrorKind, PimError
from apple_pim.utils.responses import error_response, text_response, validation_error

logger = logging.getLogger(__name__)


def handle_tool_error(e: Exception, operation: str = "") -> list[types.TextContent]:
    """
    Convert an exception raised by a tool handler into a response.

    - ACCESS_DENIED: the remediation text as-is
    - INVALID_INPUT: "Validation error: ..."
    - TIMEOUT: the action may still complete; reported without "Error:"
    - everything else: "Error: ..." (native messages verbatim)

    Args:
        e: The exception that was raised
        operation: Description of what was being performed, for the log
    """
    context = f" during {operation}" if operation else ""

    if isinstance(e, PimError):
        if e.kind is ErrorKind.ACCESS_DENIED:
            logger.warning(f"Access denied{context} for {getattr(e, 'app_name', 'unknown app')}")
            return text_response(e.message)
        if e.kind is ErrorKind.INVALID_INPUT:
            logger.info(f"Rejected invalid input{context}: {e.message}")
            return validation_error(e.message)
        if e.kind is ErrorKind.TIMEOUT:
            logger.warning(f"Timed out{context}: {e.message}")
            return text_response(f"⏳ {e.message}")
        logger.error(f"{e.kind.value}{context}: {e.message}")
        return error_response(e.message)

    logger.error(f"Unexpected error{context}: {e}", exc_info=True)
    return error_response(str(e) or type(e).__name__)
