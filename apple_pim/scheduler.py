"""
In-memory message scheduler.

Scheduled sends live only in this process: each one is an event-loop
timer. When the process exits, pending sends are lost; nothing is
persisted across restarts.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import dateparser

from apple_pim.errors import InvalidInputError

logger = logging.getLogger(__name__)

SendFunction = Callable[[str, str], Awaitable[Any]]


class ScheduleStatus(Enum):
    """Status of a scheduled action."""
    PENDING = "pending"
    SENT = "sent"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class ScheduledAction:
    """A payload to deliver to target_address at fire_at."""
    id: int
    target_address: str
    payload: str
    fire_at: datetime
    status: ScheduleStatus = ScheduleStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    _timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the scheduled action to a JSON-friendly dict."""
        return {
            "id": self.id,
            "target_address": self.target_address,
            "payload": self.payload,
            "fire_at": self.fire_at.isoformat(),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "error_message": self.error_message,
        }

    @property
    def time_until(self) -> timedelta:
        """Time until the scheduled send."""
        return self.fire_at - _now_like(self.fire_at)


def _now_like(dt: datetime) -> datetime:
    """Current time, timezone-aware only if dt is."""
    return datetime.now(dt.tzinfo) if dt.tzinfo else datetime.now()


def _as_local(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def parse_time(time_str: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 or natural language time string.

    Supports:
    - ISO format: "2026-01-05T09:00:00"
    - Natural language: "tomorrow at 9am", "in 2 hours", "next monday"

    An explicit UTC offset is converted to local time, so every result is
    naive local time and results compare with each other and with
    datetime.now().

    Returns:
        datetime if parsed successfully, None otherwise
    """
    if not time_str or not time_str.strip():
        return None

    try:
        return _as_local(datetime.fromisoformat(time_str.strip()))
    except ValueError:
        pass

    return _as_local(dateparser.parse(
        time_str,
        settings={
            'PREFER_DATES_FROM': 'future',
            'RETURN_AS_TIMEZONE_AWARE': False,
        }
    ))


class MessageScheduler:
    """
    Schedules sends on the running event loop.

    Provides functionality to:
    - Schedule new sends
    - List pending sends
    - Cancel pending sends
    """

    def __init__(self, send: SendFunction):
        """
        Args:
            send: Coroutine function (target_address, payload) performing the send
        """
        self._send = send
        self._pending: Dict[int, ScheduledAction] = {}
        self._ids = itertools.count(1)
        self._running: Set[asyncio.Task] = set()

    def schedule(self, target_address: str, payload: str, fire_at: datetime) -> ScheduledAction:
        """
        Register a send for fire_at.

        Must be called from inside the running event loop.

        Raises:
            InvalidInputError: Empty target/payload, or fire_at not strictly in
                the future. Nothing is registered in that case.
        """
        if not target_address or not target_address.strip():
            raise InvalidInputError("Target address cannot be empty")
        if not payload or not payload.strip():
            raise InvalidInputError("Message cannot be empty")

        now = _now_like(fire_at)
        if fire_at <= now:
            raise InvalidInputError(f"Cannot schedule message in the past: {fire_at.isoformat()}")

        loop = asyncio.get_running_loop()
        action = ScheduledAction(
            id=next(self._ids),
            target_address=target_address.strip(),
            payload=payload,
            fire_at=fire_at,
        )
        delay = (fire_at - now).total_seconds()
        action._timer = loop.call_later(delay, self._fire, action.id)
        self._pending[action.id] = action

        logger.info(f"Scheduled message #{action.id} to {action.target_address} at {fire_at.isoformat()}")
        return action

    def _fire(self, action_id: int) -> None:
        action = self._pending.pop(action_id, None)
        if action is None or action.status is not ScheduleStatus.PENDING:
            return
        task = asyncio.ensure_future(self._deliver(action))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _deliver(self, action: ScheduledAction) -> None:
        try:
            await self._send(action.target_address, action.payload)
        except Exception as e:
            # No caller to propagate to from a timer; record and log.
            action.status = ScheduleStatus.FAILED
            action.error_message = str(e)
            logger.error(f"Scheduled message #{action.id} failed: {e}")
            return

        action.status = ScheduleStatus.SENT
        action.sent_at = datetime.now()
        logger.info(f"Scheduled message #{action.id} sent to {action.target_address}")

    def cancel(self, action_id: int) -> bool:
        """
        Cancel a pending send.

        Returns:
            True if the action was pending and is now cancelled
        """
        action = self._pending.pop(action_id, None)
        if action is None:
            return False
        if action._timer is not None:
            action._timer.cancel()
        action.status = ScheduleStatus.CANCELLED
        logger.info(f"Cancelled scheduled message #{action_id}")
        return True

    def list_pending(self) -> List[ScheduledAction]:
        """Pending actions ordered by fire time."""
        return sorted(self._pending.values(), key=lambda a: a.fire_at)
