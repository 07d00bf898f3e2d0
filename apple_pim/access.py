"""
Automation permission checks for macOS applications.

Every application operation calls AccessGate.require() before it issues
its real command. Results are never cached: permissions can be granted or
revoked in System Settings while the server is running.
"""

import logging
from dataclasses import dataclass
from typing import Dict

from apple_pim.applescript import FailureKind, Invoker, escape_applescript_string
from apple_pim.errors import AccessDeniedError

logger = logging.getLogger(__name__)

AUTOMATION_SETTINGS_PATH = "System Settings > Privacy & Security > Automation"

# Extra remediation steps for apps that need more than Automation
EXTRA_STEPS: Dict[str, str] = {
    "Calendar": (
        "Alternatively, open System Settings > Privacy & Security > Calendars "
        "and add your terminal/app to the allowed applications"
    ),
    "Reminders": (
        "Also check System Settings > Privacy & Security > Reminders "
        "and allow your terminal/app"
    ),
    "Contacts": (
        "Also check System Settings > Privacy & Security > Contacts "
        "and allow your terminal/app"
    ),
    "Mail": "Make sure Mail is running and configured with at least one account",
    "Messages": "Make sure Messages is signed in to iMessage",
}


@dataclass(frozen=True)
class AccessCheckResult:
    has_access: bool
    message: str

    def to_dict(self) -> dict:
        return {"has_access": self.has_access, "message": self.message}


def access_instructions(app_name: str) -> str:
    """
    Build remediation text for a missing automation permission.

    The text names the app, gives the settings path, asks for a terminal
    restart and explains how to retrigger the permission prompt.
    """
    steps = [
        f"Open {AUTOMATION_SETTINGS_PATH}",
        f"Find your terminal/app in the list and enable '{app_name}'",
    ]
    if app_name in EXTRA_STEPS:
        steps.append(EXTRA_STEPS[app_name])
    steps.append("Restart your terminal and try again")
    steps.append(
        "If the option is not available, run this command again "
        "to trigger the permission dialog"
    )

    numbered = "\n".join(f"{i}. {step}" for i, step in enumerate(steps, start=1))
    return f"{app_name} access is required but not granted. Please:\n{numbered}"


class AccessGate:
    """Probes automation permission with the cheapest possible command."""

    def __init__(self, invoker: Invoker, probe_timeout: float = 5.0):
        self.invoker = invoker
        self.probe_timeout = probe_timeout

    async def probe(self, app_name: str) -> AccessCheckResult:
        """
        Check whether this process may script app_name.

        Any probe failure (denied, timeout, app missing) yields
        has_access=False with actionable instructions.
        """
        script = f'tell application "{escape_applescript_string(app_name)}" to return name'
        outcome = await self.invoker.execute(script, app=app_name, timeout=self.probe_timeout)

        if outcome.ok:
            return AccessCheckResult(True, f"{app_name} access is already granted.")

        if outcome.kind is FailureKind.TIMEOUT:
            logger.warning(f"{app_name} access probe timed out - app may be hung or showing a dialog")
        else:
            logger.warning(f"Cannot access {app_name}: {outcome.detail}")
        return AccessCheckResult(False, access_instructions(app_name))

    async def require(self, app_name: str) -> None:
        """
        Probe app_name and raise if access is missing.

        Raises:
            AccessDeniedError: with remediation text
        """
        result = await self.probe(app_name)
        if not result.has_access:
            raise AccessDeniedError(app_name, result.message)
