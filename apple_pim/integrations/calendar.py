"""
Calendar integration.

Event queries against Calendar are slow on large calendars; reads are
bounded by max_events and by the command timeout, and degrade to an
empty list when Calendar does not answer in time.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from apple_pim.applescript import (
    RECORD_HANDLERS,
    SEPARATOR_PRELUDE,
    applescript_date,
    escape_applescript_string,
    parse_records,
)
from apple_pim.errors import InvalidInputError, NativeExecutionError
from apple_pim.integrations.base import AppIntegration

logger = logging.getLogger(__name__)

EVENT_FIELDS = [
    "id", "title", "location", "notes", "start_date", "end_date",
    "calendar_name", "is_all_day", "url",
]

DEFAULT_WINDOW = timedelta(days=7)


@dataclass
class CalendarEvent:
    id: str
    title: str
    location: Optional[str]
    notes: Optional[str]
    start_date: Optional[str]
    end_date: Optional[str]
    calendar_name: str
    is_all_day: bool
    url: Optional[str]

    @classmethod
    def from_row(cls, row: Dict[str, str]) -> "CalendarEvent":
        return cls(
            id=row["id"],
            title=row["title"],
            location=row["location"] or None,
            notes=row["notes"] or None,
            start_date=row["start_date"] or None,
            end_date=row["end_date"] or None,
            calendar_name=row["calendar_name"],
            is_all_day=row["is_all_day"] == "true",
            url=row["url"] or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CalendarIntegration(AppIntegration):
    app_name = "Calendar"

    def __init__(self, invoker, gate, config=None):
        super().__init__(invoker, gate, config)
        self.max_events = self.config["limits"]["max_events"]
        self.default_calendar = self.config["defaults"]["calendar"]

    def _events_script(
        self,
        start: datetime,
        end: datetime,
        limit: int,
        extra_clause: str = ""
    ) -> str:
        return (
            RECORD_HANDLERS
            + SEPARATOR_PRELUDE
            + applescript_date("rangeStart", start)
            + applescript_date("rangeEnd", end)
            + f'''set output to ""
set eventCount to 0
tell application "Calendar"
    repeat with c in calendars
        if eventCount >= {limit} then exit repeat
        set calName to name of c
        try
            set found to (events of c whose start date >= rangeStart and start date <= rangeEnd{extra_clause})
            repeat with e in found
                if eventCount >= {limit} then exit repeat
                set output to output & my txt(uid of e) & US & my txt(summary of e) & US & my txt(location of e) & US & my clip(description of e, {self.max_content}) & US & my isodate(start date of e) & US & my isodate(end date of e) & US & calName & US & my txt(allday event of e) & US & my txt(url of e) & RS
                set eventCount to eventCount + 1
            end repeat
        end try
    end repeat
end tell
return output'''
        )

    def _window(
        self,
        from_date: Optional[datetime],
        to_date: Optional[datetime]
    ):
        start = from_date or datetime.now()
        end = to_date or start + DEFAULT_WINDOW
        if end < start:
            raise InvalidInputError("End date must be after start date")
        return start, end

    def _limit(self, limit: Optional[int]) -> int:
        if not limit or limit < 1:
            return self.max_events
        return min(limit, self.max_events)

    async def get_events(
        self,
        limit: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> List[CalendarEvent]:
        """
        Events starting within [from_date, to_date].

        Defaults to the next seven days.
        """
        start, end = self._window(from_date, to_date)
        script = self._events_script(start, end, self._limit(limit))
        events = [CalendarEvent.from_row(r) for r in parse_records(await self.query(script), EVENT_FIELDS)]
        logger.info(f"Retrieved {len(events)} calendar events")
        return events

    async def search_events(
        self,
        search_text: str,
        limit: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> List[CalendarEvent]:
        """Events in the window whose title, location or notes contain search_text."""
        if not search_text or not search_text.strip():
            return []
        start, end = self._window(from_date, to_date)
        term = escape_applescript_string(search_text.strip())
        clause = (
            f' and (summary contains "{term}" or location contains "{term}"'
            f' or description contains "{term}")'
        )
        script = self._events_script(start, end, self._limit(limit), clause)
        events = [CalendarEvent.from_row(r) for r in parse_records(await self.query(script), EVENT_FIELDS)]
        logger.info(f"Found {len(events)} events matching '{search_text}'")
        return events

    async def create_event(
        self,
        title: str,
        start_date: datetime,
        end_date: datetime,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        is_all_day: bool = False,
        calendar_name: Optional[str] = None
    ) -> str:
        """
        Create an event and return its uid.

        Falls back to the first calendar when calendar_name does not exist.

        Raises:
            InvalidInputError: Empty title, or end_date not after start_date
            NativeExecutionError: Calendar reported an error
        """
        if not title or not title.strip():
            raise InvalidInputError("Event title cannot be empty")
        if start_date is None or end_date is None:
            raise InvalidInputError("Start date and end date are required")
        if end_date <= start_date:
            raise InvalidInputError("End date must be after start date")

        target = escape_applescript_string(calendar_name or self.default_calendar)
        properties = (
            f'summary:"{escape_applescript_string(title.strip())}", '
            f'start date:startDate, end date:endDate, '
            f'allday event:{"true" if is_all_day else "false"}'
        )
        if location:
            properties += f', location:"{escape_applescript_string(location)}"'
        if notes:
            properties += f', description:"{escape_applescript_string(notes)}"'

        script = (
            applescript_date("startDate", start_date)
            + applescript_date("endDate", end_date)
            + f'''tell application "Calendar"
    try
        if exists (calendar "{target}") then
            set targetCal to calendar "{target}"
        else
            set targetCal to first calendar
        end if
        set newEvent to make new event at end of events of targetCal with properties {{{properties}}}
        return "SUCCESS:" & (uid of newEvent)
    on error errMsg
        return "ERROR:" & errMsg
    end try
end tell'''
        )

        event_id = await self.command(script)
        logger.info(f"Created event '{title}' ({event_id})")
        return event_id

    async def open_event(self, event_id: str) -> Dict[str, Any]:
        """
        Show the event with uid event_id in Calendar.

        Returns:
            {"success": bool, "message": str}
        """
        if not event_id or not event_id.strip():
            raise InvalidInputError("Event ID cannot be empty")

        escaped_id = escape_applescript_string(event_id.strip())
        script = f'''tell application "Calendar"
    repeat with c in calendars
        try
            set matches to (events of c whose uid is "{escaped_id}")
            if (count of matches) > 0 then
                activate
                show (item 1 of matches)
                return "SUCCESS:" & (summary of item 1 of matches)
            end if
        end try
    end repeat
    return "ERROR:Event not found"
end tell'''

        try:
            title = await self.command(script)
        except NativeExecutionError as e:
            return {"success": False, "message": e.message}
        return {"success": True, "message": f"Opened event '{title}' in Calendar"}
