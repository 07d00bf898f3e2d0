"""
Shared fixtures for the apple_pim test suite.

Nothing here touches osascript or the real Messages database: the native
layer is replaced by FakeInvoker (scripted outcomes) or by patching
asyncio.create_subprocess_exec.
"""

import asyncio
import copy
from typing import Callable, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from apple_pim.access import AccessGate
from apple_pim.applescript import FIELD_SEPARATOR, RECORD_SEPARATOR, Failure, FailureKind, Success
from apple_pim.config import DEFAULT_CONFIG


def is_probe(script: str) -> bool:
    return script.startswith("tell application") and script.endswith("to return name")


def records(*rows) -> str:
    """Build RS/US delimited script output from tuples of fields."""
    return "".join(FIELD_SEPARATOR.join(row) + RECORD_SEPARATOR for row in rows)


class FakeInvoker:
    """
    Stand-in for Invoker that records dispatches and returns scripted outcomes.

    Probes succeed unless the app is listed in denied_apps. Every other
    script is passed to responder(script, app), whose return value is the
    outcome (default: Success("")).
    """

    def __init__(self, responder: Optional[Callable] = None, denied_apps=()):
        self.responder = responder or (lambda script, app: Success(""))
        self.denied_apps = set(denied_apps)
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.abandoned_count = 0

    @property
    def probes(self) -> List[str]:
        return [app for script, app in self.calls if is_probe(script)]

    @property
    def commands(self) -> List[Tuple[str, Optional[str]]]:
        return [(script, app) for script, app in self.calls if not is_probe(script)]

    async def execute(self, script, *, app=None, timeout=None):
        self.calls.append((script, app))
        if is_probe(script):
            if app in self.denied_apps:
                return Failure(FailureKind.ACCESS_DENIED, "Not authorized to send Apple events (-1743)")
            return Success(app or "")
        return self.responder(script, app)


@pytest.fixture
def config():
    return copy.deepcopy(DEFAULT_CONFIG)


@pytest.fixture
def fake_invoker():
    return FakeInvoker()


@pytest.fixture
def make_invoker():
    """Factory: make_invoker(responder, denied_apps=()) -> (invoker, gate)."""
    def factory(responder=None, denied_apps=()):
        invoker = FakeInvoker(responder, denied_apps)
        return invoker, AccessGate(invoker)
    return factory


def make_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0, delay: float = 0.0):
    """A mock asyncio subprocess whose communicate() optionally sleeps first."""
    process = MagicMock()
    process.returncode = returncode

    async def communicate():
        if delay:
            await asyncio.sleep(delay)
        return stdout, stderr

    process.communicate = communicate
    process.wait = AsyncMock(return_value=returncode)
    return process
