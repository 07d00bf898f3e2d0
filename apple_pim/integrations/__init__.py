"""
Per-application integrations and the initializers the loader runs for them.

Each initializer imports its integration module off the event loop,
builds the integration, and warms it up with one access probe. A probe
that reports missing access does not fail the load; the permission is
checked again on every call. An application that hangs (e.g. behind a
modal dialog) makes its initializer slow, which is what pushes the
loader into safe mode.
"""

import asyncio
import importlib
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from apple_pim.access import AccessGate
from apple_pim.applescript import Invoker

logger = logging.getLogger(__name__)

# Module name -> (import path, class name)
INTEGRATIONS: Dict[str, tuple] = {
    "contacts": ("apple_pim.integrations.contacts", "ContactsIntegration"),
    "notes": ("apple_pim.integrations.notes", "NotesIntegration"),
    "messages": ("apple_pim.integrations.messages", "MessagesIntegration"),
    "mail": ("apple_pim.integrations.mail", "MailIntegration"),
    "reminders": ("apple_pim.integrations.reminders", "RemindersIntegration"),
    "calendar": ("apple_pim.integrations.calendar", "CalendarIntegration"),
    "maps": ("apple_pim.integrations.maps", "MapsIntegration"),
}


def make_initializer(
    name: str,
    invoker: Invoker,
    gate: AccessGate,
    config: Optional[Dict[str, Any]] = None
) -> Callable[[], Awaitable[Any]]:
    module_path, class_name = INTEGRATIONS[name]

    async def initialize():
        module = await asyncio.to_thread(importlib.import_module, module_path)
        integration = getattr(module, class_name)(invoker, gate, config)
        result = await integration.check_access()
        if not result.has_access:
            logger.warning(f"{integration.app_name} access not granted yet")
        return integration

    return initialize


def build_initializers(
    invoker: Invoker,
    gate: AccessGate,
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Callable[[], Awaitable[Any]]]:
    """Initializers for every integration, keyed by module name."""
    return {
        name: make_initializer(name, invoker, gate, config)
        for name in INTEGRATIONS
    }
