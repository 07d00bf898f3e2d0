"""
Reminders integration.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from apple_pim.applescript import (
    RECORD_HANDLERS,
    SEPARATOR_PRELUDE,
    applescript_date,
    escape_applescript_string,
    parse_records,
)
from apple_pim.errors import InvalidInputError
from apple_pim.integrations.base import AppIntegration

logger = logging.getLogger(__name__)

REMINDER_FIELDS = ["name", "id", "body", "completed", "due_date", "list_name"]


@dataclass
class ReminderList:
    name: str
    id: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Reminder:
    name: str
    id: str
    body: str = ""
    completed: bool = False
    due_date: Optional[str] = None
    list_name: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, str]) -> "Reminder":
        return cls(
            name=row["name"],
            id=row["id"],
            body=row["body"],
            completed=row["completed"] == "true",
            due_date=row["due_date"] or None,
            list_name=row["list_name"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RemindersIntegration(AppIntegration):
    app_name = "Reminders"

    def __init__(self, invoker, gate, config=None):
        super().__init__(invoker, gate, config)
        self.max_lists = self.config["limits"]["max_lists"]
        self.default_list = self.config["defaults"]["reminders_list"]

    def _reminders_script(self, selector: str, lists_expr: str = "lists") -> str:
        """
        Enumerate reminders across lists.

        selector is the `whose` clause applied to each list's reminders.
        """
        return RECORD_HANDLERS + SEPARATOR_PRELUDE + f'''set output to ""
set itemCount to 0
tell application "Reminders"
    repeat with l in {lists_expr}
        if itemCount >= {self.max_items} then exit repeat
        set listName to name of l
        try
            set found to (reminders of l whose {selector})
            repeat with r in found
                if itemCount >= {self.max_items} then exit repeat
                set output to output & my txt(name of r) & US & my txt(id of r) & US & my clip(body of r, {self.max_content}) & US & my txt(completed of r) & US & my isodate(due date of r) & US & listName & RS
                set itemCount to itemCount + 1
            end repeat
        end try
    end repeat
end tell
return output'''

    async def get_all_lists(self) -> List[ReminderList]:
        script = RECORD_HANDLERS + SEPARATOR_PRELUDE + f'''set output to ""
set listCount to 0
tell application "Reminders"
    repeat with l in lists
        if listCount >= {self.max_lists} then exit repeat
        set output to output & my txt(name of l) & US & my txt(id of l) & RS
        set listCount to listCount + 1
    end repeat
end tell
return output'''
        rows = parse_records(await self.query(script), ["name", "id"])
        return [ReminderList(**row) for row in rows]

    async def get_all_reminders(
        self,
        list_name: Optional[str] = None,
        include_completed: bool = False
    ) -> List[Reminder]:
        """Reminders from every list, or only list_name."""
        selector = 'name is not ""' if include_completed else "completed is false"
        lists_expr = "lists"
        if list_name:
            lists_expr = f'(lists whose name is "{escape_applescript_string(list_name)}")'
        script = self._reminders_script(selector, lists_expr)
        rows = parse_records(await self.query(script), REMINDER_FIELDS)
        return [Reminder.from_row(row) for row in rows]

    async def search_reminders(self, search_text: str) -> List[Reminder]:
        """
        Reminders whose name or notes contain search_text.

        Blank search text returns [] without dispatching.
        """
        if not search_text or not search_text.strip():
            return []
        term = escape_applescript_string(search_text.strip())
        script = self._reminders_script(f'name contains "{term}" or body contains "{term}"')
        reminders = [Reminder.from_row(row) for row in parse_records(await self.query(script), REMINDER_FIELDS)]
        logger.info(f"Found {len(reminders)} reminders matching '{search_text}'")
        return reminders

    async def create_reminder(
        self,
        name: str,
        list_name: Optional[str] = None,
        notes: Optional[str] = None,
        due_date: Optional[datetime] = None
    ) -> Reminder:
        """
        Create a reminder in list_name, creating the list if it is missing.

        Raises:
            InvalidInputError: Empty name
            NativeExecutionError: Reminders reported an error
        """
        if not name or not name.strip():
            raise InvalidInputError("Reminder name cannot be empty")

        target_list = list_name or self.default_list
        escaped_list = escape_applescript_string(target_list)
        properties = f'name:"{escape_applescript_string(name.strip())}"'
        if notes:
            properties += f', body:"{escape_applescript_string(notes)}"'

        due_prelude = ""
        if due_date is not None:
            due_prelude = applescript_date("dueDate", due_date)
            properties += ", due date:dueDate"

        script = due_prelude + f'''tell application "Reminders"
    try
        if exists (list "{escaped_list}") then
            set targetList to list "{escaped_list}"
        else
            set targetList to make new list with properties {{name:"{escaped_list}"}}
        end if
        set newReminder to make new reminder at end of reminders of targetList with properties {{{properties}}}
        return "SUCCESS:" & (id of newReminder)
    on error errMsg
        return "ERROR:" & errMsg
    end try
end tell'''

        reminder_id = await self.command(script)
        logger.info(f"Created reminder '{name}' in {target_list}")
        return Reminder(
            name=name.strip(),
            id=reminder_id,
            body=notes or "",
            completed=False,
            due_date=due_date.isoformat() if due_date else None,
            list_name=target_list,
        )

    async def open_reminder(self, search_text: str) -> Dict[str, Any]:
        """
        Bring Reminders to the front showing the first reminder matching search_text.

        Returns:
            {"success": bool, "message": str, "reminder": dict | None}
        """
        matches = await self.search_reminders(search_text)
        if not matches:
            return {"success": False, "message": "No matching reminders found", "reminder": None}

        reminder = matches[0]
        escaped_id = escape_applescript_string(reminder.id)
        script = f'''tell application "Reminders"
    activate
    try
        show (first reminder whose id is "{escaped_id}")
    end try
    return "SUCCESS"
end tell'''
        await self.command(script)
        return {"success": True, "message": "Reminders app opened", "reminder": reminder.to_dict()}
