"""
Startup readiness for integration modules ("safe mode" loading).

At startup every integration is initialized in parallel against a fixed
budget. If all of them finish in time the loader is READY and tool calls
never wait again. Otherwise it switches to SAFE_MODE for the rest of the
process: each module is loaded on demand, once, by the first tool call
that needs it. Concurrent callers for the same module share a single
in-flight attempt. A module that failed stays failed; there is no
automatic retry.

One hung application (e.g. blocked by a modal dialog) therefore never
keeps the server from answering for the healthy integrations.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from apple_pim.errors import ModuleLoadError

logger = logging.getLogger(__name__)

Initializer = Callable[[], Awaitable[Any]]


class LoaderState(Enum):
    UNINITIALIZED = "uninitialized"
    EAGER_LOADING = "eager_loading"
    READY = "ready"
    SAFE_MODE = "safe_mode"


class ModuleState(Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


# Allowed transitions; states never move backward.
_TRANSITIONS = {
    ModuleState.NOT_LOADED: {ModuleState.LOADING, ModuleState.READY},
    ModuleState.LOADING: {ModuleState.READY, ModuleState.FAILED},
    ModuleState.READY: set(),
    ModuleState.FAILED: set(),
}


@dataclass
class ModuleHandle:
    """Readiness record for one integration module."""
    name: str
    state: ModuleState = ModuleState.NOT_LOADED
    module: Any = None
    error: Optional[str] = None
    load_attempts: int = 0
    _task: Optional["asyncio.Task"] = field(default=None, repr=False)

    def transition(self, new_state: ModuleState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal module state transition for {self.name}: "
                f"{self.state.value} -> {new_state.value}"
            )
        self.state = new_state


class SafeModeLoader:
    """
    Process-wide registry of integration module readiness.

    Usage:
        loader = SafeModeLoader({"notes": init_notes, "mail": init_mail})
        await loader.start()
        notes = await loader.ensure_module_ready("notes")
    """

    def __init__(
        self,
        initializers: Dict[str, Initializer],
        eager_timeout: float = 5.0,
        module_load_timeout: Optional[float] = 30.0
    ):
        """
        Args:
            initializers: Module name -> coroutine function returning the module object
            eager_timeout: Budget in seconds for bulk initialization at startup
            module_load_timeout: Budget for one on-demand load (None = unbounded)
        """
        self._initializers = dict(initializers)
        self.eager_timeout = eager_timeout
        self.module_load_timeout = module_load_timeout
        self.state = LoaderState.UNINITIALIZED
        self.handles: Dict[str, ModuleHandle] = {
            name: ModuleHandle(name) for name in self._initializers
        }
        self._eager_settled: Optional[asyncio.Event] = None

    async def start(self) -> LoaderState:
        """
        Run the eager phase once and return the resulting loader state.

        Calling start() again returns the current state without reloading.
        """
        if self.state is not LoaderState.UNINITIALIZED:
            return self.state

        self.state = LoaderState.EAGER_LOADING
        self._eager_settled = asyncio.Event()
        started = time.monotonic()
        logger.info(f"Eager loading {len(self.handles)} modules (budget {self.eager_timeout}s)")

        tasks = {
            name: asyncio.ensure_future(init())
            for name, init in self._initializers.items()
        }
        try:
            done, pending = await asyncio.wait(tasks.values(), timeout=self.eager_timeout)

            failed = []
            for name, task in tasks.items():
                if task not in done:
                    continue
                if task.exception() is not None:
                    failed.append(name)
                    logger.warning(f"Eager load of {name} failed: {task.exception()}")
                    continue
                handle = self.handles[name]
                handle.module = task.result()
                handle.load_attempts += 1
                handle.transition(ModuleState.READY)

            for task in pending:
                # Abandoned: whatever native call it is waiting on may still finish.
                task.cancel()

            if not pending and not failed:
                self.state = LoaderState.READY
                logger.info(f"All modules loaded in {time.monotonic() - started:.2f}s")
            else:
                self.state = LoaderState.SAFE_MODE
                slow = sorted(name for name, task in tasks.items() if task in pending)
                logger.warning(
                    "Switching to safe mode (lazy loading). "
                    f"Timed out: {slow or 'none'}, failed: {sorted(failed) or 'none'}"
                )
        finally:
            self._eager_settled.set()

        return self.state

    async def ensure_module_ready(self, name: str) -> Any:
        """
        Return the loaded module, loading it first if needed.

        Raises:
            ModuleLoadError: Unknown module, or the module failed to load
        """
        handle = self.handles.get(name)
        if handle is None:
            raise ModuleLoadError(name, "unknown module")

        if handle.state is ModuleState.READY:
            return handle.module

        if self.state is LoaderState.UNINITIALIZED:
            # Nobody called start(): behave as safe mode from the beginning.
            self.state = LoaderState.SAFE_MODE
            logger.info("Loader used before start() - loading modules on demand")
        elif self.state is LoaderState.EAGER_LOADING:
            await self._eager_settled.wait()
            if handle.state is ModuleState.READY:
                return handle.module

        if handle.state is ModuleState.FAILED:
            raise ModuleLoadError(name, handle.error)

        if handle.state is ModuleState.NOT_LOADED:
            handle.transition(ModuleState.LOADING)
            handle.load_attempts += 1
            handle._task = asyncio.ensure_future(self._load(handle))
            logger.info(f"Loading module on demand: {name}")

        # shield: a cancelled caller must not cancel the load other callers share
        return await asyncio.shield(handle._task)

    async def _load(self, handle: ModuleHandle) -> Any:
        init = self._initializers[handle.name]
        started = time.monotonic()
        try:
            if self.module_load_timeout is None:
                module = await init()
            else:
                module = await asyncio.wait_for(init(), timeout=self.module_load_timeout)
        except asyncio.TimeoutError:
            handle.error = f"timed out after {self.module_load_timeout}s"
            handle.transition(ModuleState.FAILED)
            logger.error(f"Module {handle.name} {handle.error}")
            raise ModuleLoadError(handle.name, handle.error)
        except Exception as e:
            handle.error = str(e) or type(e).__name__
            handle.transition(ModuleState.FAILED)
            logger.error(f"Module {handle.name} failed to load: {handle.error}", exc_info=True)
            raise ModuleLoadError(handle.name, handle.error) from e

        handle.module = module
        handle.transition(ModuleState.READY)
        logger.info(f"Module {handle.name} ready in {time.monotonic() - started:.2f}s")
        return module

    def status(self) -> Dict[str, Any]:
        """Snapshot of loader and module states."""
        return {
            "state": self.state.value,
            "modules": {name: h.state.value for name, h in self.handles.items()},
        }
