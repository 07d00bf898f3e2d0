"""
AppleScript dispatch for the Apple PIM integrations.

Every native operation goes through Invoker.execute(), which runs one
script through osascript and turns the result into a CommandOutcome:

- Success(value): exit status 0, value is the script's stdout
- Failure(kind, detail): ACCESS_DENIED, TIMEOUT or NATIVE_ERROR

execute() never raises for timeouts or native errors; callers decide
whether to degrade to an empty result or surface the failure.

Known risk of the automation surface: a dispatch that the caller sees as
failed (most notably a timeout) may already have changed application
state, and an abandoned osascript child may still complete its effect
later. There is no cancellation or rollback. Writes are therefore
at-most-effectively-once from the caller's point of view.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union

from apple_pim.errors import ErrorKind, classify_error_message

logger = logging.getLogger(__name__)

# Delimiters for structured output. Scripts emit records separated by RS
# and fields separated by US; neither appears in normal text.
RECORD_SEPARATOR = "\x1e"
FIELD_SEPARATOR = "\x1f"

SEPARATOR_PRELUDE = (
    "set RS to (ASCII character 30)\n"
    "set US to (ASCII character 31)\n"
)

# Top-level handlers for record output; call them as `my txt(x)` inside tell blocks.
RECORD_HANDLERS = '''
on txt(v)
    if v is missing value then return ""
    return v as text
end txt

on isodate(d)
    if d is missing value then return ""
    return (d as «class isot» as string)
end isodate

on clip(v, maxLength)
    set s to my txt(v)
    if (length of s) > maxLength then
        return (text 1 thru maxLength of s) & "..."
    end if
    return s
end clip
'''

# osascript stderr fragments that mean the automation permission is missing
ACCESS_DENIED_PATTERNS = [
    "-1743",
    "not authorized to send apple events",
    "not allowed to send apple events",
    "not allowed assistive access",
]


class FailureKind(Enum):
    ACCESS_DENIED = "access_denied"
    TIMEOUT = "timeout"
    NATIVE_ERROR = "native_error"


@dataclass(frozen=True)
class Success:
    value: Any = ""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False


CommandOutcome = Union[Success, Failure]


def escape_applescript_string(s: Optional[str]) -> str:
    r"""
    Escape a string for safe use in an AppleScript string literal.

    Backslashes are escaped first (\ -> \\), then double quotes (" -> \").
    This keeps user data from breaking out of the quoted context.

    Examples:
        >>> escape_applescript_string('Hello "World"')
        'Hello \\"World\\"'
    """
    if s is None:
        return ""
    return s.replace('\\', '\\\\').replace('"', '\\"')


def applescript_date(var_name: str, dt: datetime) -> str:
    """
    Build AppleScript statements assigning dt to var_name.

    Components are set one by one because `date "..."` literals depend on
    the user's locale. Day is reset to 1 before changing the month so that
    e.g. Jan 31 -> Feb never overflows.
    """
    seconds = dt.hour * 3600 + dt.minute * 60 + dt.second
    return (
        f"set {var_name} to current date\n"
        f"set day of {var_name} to 1\n"
        f"set year of {var_name} to {dt.year}\n"
        f"set month of {var_name} to {dt.month}\n"
        f"set day of {var_name} to {dt.day}\n"
        f"set time of {var_name} to {seconds}\n"
    )


def is_access_denied_error(stderr: str) -> bool:
    """Check whether osascript stderr reports a missing automation permission."""
    lowered = stderr.lower()
    return any(pattern in lowered for pattern in ACCESS_DENIED_PATTERNS)


def parse_sentinel(result: Any) -> CommandOutcome:
    """
    Parse a `SUCCESS:<detail>` / `ERROR:<detail>` result string.

    Any other shape (including non-strings) becomes a NATIVE_ERROR failure
    rather than an exception. ERROR details containing the permission
    marker are classified as ACCESS_DENIED.
    """
    if not isinstance(result, str):
        return Failure(FailureKind.NATIVE_ERROR, f"Unrecognized result: {result!r}")

    text = result.strip()
    if text == "SUCCESS":
        return Success("")
    if text.startswith("SUCCESS:"):
        return Success(text[len("SUCCESS:"):])
    if text.startswith("ERROR:"):
        detail = text[len("ERROR:"):].strip()
        if classify_error_message(detail) is ErrorKind.ACCESS_DENIED:
            return Failure(FailureKind.ACCESS_DENIED, detail)
        return Failure(FailureKind.NATIVE_ERROR, detail)

    return Failure(FailureKind.NATIVE_ERROR, f"Unrecognized result: {text[:200]!r}")


def parse_records(output: Optional[str], fields: List[str]) -> List[Dict[str, str]]:
    """
    Parse RS/US delimited script output into a list of dicts.

    Records with the wrong number of fields are skipped.
    """
    if not output:
        return []

    records = []
    for raw_record in output.strip("\r\n").split(RECORD_SEPARATOR):
        if not raw_record.strip():
            continue
        values = raw_record.split(FIELD_SEPARATOR)
        if len(values) != len(fields):
            logger.debug(f"Skipping malformed record with {len(values)} fields")
            continue
        records.append(dict(zip(fields, (v.strip() for v in values))))
    return records


class Invoker:
    """
    Runs AppleScript through osascript with a per-call timeout.

    Commands for the same application are serialized: the automation
    surface is not safe under concurrent scripts against one app.
    """

    def __init__(self, timeout: float = 10.0, osascript: str = "osascript"):
        """
        Args:
            timeout: Default per-call timeout in seconds
            osascript: Path or name of the osascript binary
        """
        self.timeout = timeout
        self.osascript = osascript
        self._app_locks: Dict[str, asyncio.Lock] = {}
        self._abandoned: Set[asyncio.Task] = set()

    def _lock_for(self, app: str) -> asyncio.Lock:
        lock = self._app_locks.get(app)
        if lock is None:
            lock = asyncio.Lock()
            self._app_locks[app] = lock
        return lock

    async def execute(
        self,
        script: str,
        *,
        app: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> CommandOutcome:
        """
        Dispatch one script and classify the outcome.

        Args:
            script: AppleScript source
            app: Target application name; scripts for the same app run one at a time
            timeout: Override for the default timeout (seconds)

        Returns:
            Success with stdout, or Failure. Never raises for native errors.
        """
        budget = self.timeout if timeout is None else timeout
        if app is None:
            return await self._dispatch(script, budget)
        async with self._lock_for(app):
            return await self._dispatch(script, budget, app)

    async def _dispatch(
        self,
        script: str,
        timeout: float,
        app: Optional[str] = None
    ) -> CommandOutcome:
        target = app or "osascript"
        try:
            process = await asyncio.create_subprocess_exec(
                self.osascript, "-e", script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            logger.error(f"Could not launch {self.osascript}: {e}")
            return Failure(FailureKind.NATIVE_ERROR, f"Could not launch osascript: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"AppleScript for {target} timed out after {timeout}s - abandoning")
            self._abandon(process)
            return Failure(FailureKind.TIMEOUT, f"AppleScript timed out after {timeout}s")

        out = (stdout or b"").decode("utf-8", errors="replace").rstrip("\r\n")
        if process.returncode == 0:
            return Success(out)

        err = (stderr or b"").decode("utf-8", errors="replace").strip()
        if is_access_denied_error(err):
            logger.warning(f"Automation access denied for {target}: {err}")
            return Failure(FailureKind.ACCESS_DENIED, err)

        logger.error(f"AppleScript error for {target} (rc={process.returncode}): {err}")
        return Failure(
            FailureKind.NATIVE_ERROR,
            err or f"osascript exited with status {process.returncode}"
        )

    def _abandon(self, process: "asyncio.subprocess.Process") -> None:
        """
        Leave a timed-out osascript child running and reap it when it exits.

        The process is not killed: the Apple Event has already been sent and
        the target application may finish it regardless.
        """
        task = asyncio.ensure_future(process.wait())
        self._abandoned.add(task)
        task.add_done_callback(self._abandoned.discard)

    @property
    def abandoned_count(self) -> int:
        """Number of timed-out dispatches still running in the background."""
        return len(self._abandoned)
