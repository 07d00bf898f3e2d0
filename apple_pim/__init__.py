"""
Apple PIM - MCP server for macOS personal information apps.

Exposes Contacts, Notes, Messages, Mail, Reminders, Calendar and Maps to
MCP clients by driving the applications through AppleScript.

Architecture Overview:
- Invoker: runs one osascript command with a timeout, returns a CommandOutcome
- AccessGate: probes automation permission before every operation
- SafeModeLoader: eager startup with a budget, per-module lazy loading after
- ContactResolver: staged name matching and phone number equivalence
- MessageScheduler: in-memory timed sends

Usage:
    from apple_pim import Invoker, AccessGate, ContactResolver

    invoker = Invoker(timeout=10.0)
    resolver = ContactResolver(invoker, AccessGate(invoker))
    matches = await resolver.resolve("jane")
"""

from .access import AccessCheckResult, AccessGate
from .applescript import CommandOutcome, Failure, FailureKind, Invoker, Success
from .contacts import ContactRecord, ContactResolver, NormalizedPhone, normalize_phone_number
from .errors import (
    AccessDeniedError,
    CommandTimeoutError,
    ErrorKind,
    InvalidInputError,
    ModuleLoadError,
    NativeExecutionError,
    PimError,
)
from .loader import LoaderState, ModuleState, SafeModeLoader
from .scheduler import MessageScheduler, ScheduledAction, ScheduleStatus

__version__ = "0.1.0"

__all__ = [
    "AccessCheckResult",
    "AccessGate",
    "CommandOutcome",
    "Failure",
    "FailureKind",
    "Invoker",
    "Success",
    "ContactRecord",
    "ContactResolver",
    "NormalizedPhone",
    "normalize_phone_number",
    "AccessDeniedError",
    "CommandTimeoutError",
    "ErrorKind",
    "InvalidInputError",
    "ModuleLoadError",
    "NativeExecutionError",
    "PimError",
    "LoaderState",
    "ModuleState",
    "SafeModeLoader",
    "MessageScheduler",
    "ScheduledAction",
    "ScheduleStatus",
]
