"""
Shared plumbing for the per-application integrations.

Each integration checks access, dispatches its script through the shared
Invoker, and converts the outcome according to the read/write policy:

- query(): read path. Timeouts and native errors are logged and become
  None, so callers return empty results instead of failing.
- command(): write path. The script reports SUCCESS:/ERROR: sentinels;
  failures raise typed errors.

Access problems always raise AccessDeniedError with remediation text.
"""

import copy
import logging
from typing import Any, Dict, Optional

from apple_pim.access import AccessCheckResult, AccessGate, access_instructions
from apple_pim.applescript import (
    CommandOutcome,
    FailureKind,
    Invoker,
    parse_sentinel,
)
from apple_pim.config import DEFAULT_CONFIG
from apple_pim.errors import (
    AccessDeniedError,
    CommandTimeoutError,
    NativeExecutionError,
)

logger = logging.getLogger(__name__)


class AppIntegration:
    """Base class for one native application."""

    app_name: str = ""

    def __init__(
        self,
        invoker: Invoker,
        gate: AccessGate,
        config: Optional[Dict[str, Any]] = None
    ):
        self.invoker = invoker
        self.gate = gate
        self.config = config if config is not None else copy.deepcopy(DEFAULT_CONFIG)
        limits = self.config["limits"]
        self.max_items = limits["max_items"]
        self.max_content = limits["max_content"]

    async def check_access(self) -> AccessCheckResult:
        return await self.gate.probe(self.app_name)

    async def run(self, script: str, timeout: Optional[float] = None) -> CommandOutcome:
        """
        Require access, then dispatch script against this app.

        Raises:
            AccessDeniedError: Probe failed, or the dispatch itself was denied
        """
        await self.gate.require(self.app_name)
        outcome = await self.invoker.execute(script, app=self.app_name, timeout=timeout)
        if not outcome.ok and outcome.kind is FailureKind.ACCESS_DENIED:
            raise AccessDeniedError(self.app_name, access_instructions(self.app_name))
        return outcome

    async def query(self, script: str, timeout: Optional[float] = None) -> Optional[str]:
        """Read-path dispatch; returns None on timeout or native error."""
        outcome = await self.run(script, timeout)
        if outcome.ok:
            return outcome.value
        logger.warning(f"{self.app_name} query degraded to empty result ({outcome.kind.value}): {outcome.detail}")
        return None

    async def command(self, script: str, timeout: Optional[float] = None) -> str:
        """
        Write-path dispatch for scripts that return sentinel strings.

        Returns:
            The detail after "SUCCESS:"

        Raises:
            AccessDeniedError, CommandTimeoutError, NativeExecutionError
        """
        outcome = await self.run(script, timeout)
        if outcome.ok:
            outcome = parse_sentinel(outcome.value)
        if outcome.ok:
            return outcome.value

        if outcome.kind is FailureKind.ACCESS_DENIED:
            raise AccessDeniedError(
                self.app_name,
                f"{outcome.detail}\n\n{access_instructions(self.app_name)}"
            )
        if outcome.kind is FailureKind.TIMEOUT:
            raise CommandTimeoutError(
                f"{self.app_name} did not confirm in time; the action may still complete"
            )
        raise NativeExecutionError(outcome.detail)
