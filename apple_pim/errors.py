"""
Error taxonomy shared by the core and the MCP layer.

Every error carries an explicit ErrorKind set where it is raised, so the
rest of the code never has to sniff message text. The one exception is
text arriving from outside the core (e.g. a native error string), which
classify_error_message() maps using the permission marker.
"""

from enum import Enum
from typing import Optional

# Every access-remediation message contains this word.
PERMISSION_MARKER = "access"


class ErrorKind(Enum):
    ACCESS_DENIED = "access_denied"
    INVALID_INPUT = "invalid_input"
    TIMEOUT = "timeout"
    NATIVE_EXECUTION = "native_execution"
    MODULE_LOAD_FAILURE = "module_load_failure"


class PimError(Exception):
    """Base class for all errors raised by apple_pim."""

    kind: ErrorKind = ErrorKind.NATIVE_EXECUTION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AccessDeniedError(PimError):
    """Automation permission for an application is missing."""

    kind = ErrorKind.ACCESS_DENIED

    def __init__(self, app_name: str, message: str):
        super().__init__(message)
        self.app_name = app_name


class InvalidInputError(PimError):
    """An argument was empty or malformed; nothing was dispatched."""

    kind = ErrorKind.INVALID_INPUT


class CommandTimeoutError(PimError):
    kind = ErrorKind.TIMEOUT


class NativeExecutionError(PimError):
    """Opaque failure reported by the native side, message kept verbatim."""

    kind = ErrorKind.NATIVE_EXECUTION


class ModuleLoadError(PimError):
    """An integration module failed to initialize."""

    kind = ErrorKind.MODULE_LOAD_FAILURE

    def __init__(self, module_name: str, reason: Optional[str] = None):
        message = f"Module '{module_name}' failed to load"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.module_name = module_name
        self.reason = reason


def classify_error_message(text: Optional[str]) -> ErrorKind:
    """
    Classify an error message that crossed the native boundary as text.

    Any message containing the permission marker is an access problem,
    regardless of which operation produced it.
    """
    if text and PERMISSION_MARKER in text.lower():
        return ErrorKind.ACCESS_DENIED
    return ErrorKind.NATIVE_EXECUTION
