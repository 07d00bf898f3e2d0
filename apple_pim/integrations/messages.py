"""
Messages integration.

Sending goes through AppleScript. History is read directly from the
Messages SQLite database (read-only), which needs Full Disk Access
rather than Automation permission.
"""

import asyncio
import logging
import re
import sqlite3
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from apple_pim.applescript import escape_applescript_string
from apple_pim.config import resolve_path
from apple_pim.contacts import normalize_phone_number
from apple_pim.errors import AccessDeniedError, InvalidInputError
from apple_pim.integrations.base import AppIntegration
from apple_pim.scheduler import MessageScheduler, ScheduledAction

logger = logging.getLogger(__name__)

# chat.db stores nanoseconds since 2001-01-01 (Cocoa reference date)
COCOA_EPOCH = datetime(2001, 1, 1)

FULL_DISK_ACCESS_MESSAGE = (
    "Full Disk Access is required to read message history. Please:\n"
    "1. Open System Settings > Privacy & Security > Full Disk Access\n"
    "2. Enable your terminal/app in the list\n"
    "3. Restart your terminal and try again"
)

# sqlite3 error text that means the database file is not readable by us
_DB_ACCESS_ERRORS = ("unable to open database", "authorization denied")

_SKIP_RUNS = (
    "NSString", "NSObject", "NSMutable", "NSDictionary",
    "NSAttributed", "streamtyped", "__kIM", "NSNumber", "NSValue",
)


@dataclass
class Message:
    content: str
    date: Optional[str]
    sender: str
    is_from_me: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def cocoa_to_datetime(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return COCOA_EPOCH + timedelta(seconds=value / 1_000_000_000)


def extract_text_from_blob(blob: Optional[bytes]) -> Optional[str]:
    """
    Extract message text from an attributedBody blob.

    Newer macOS versions leave message.text empty and store the text in a
    "streamtyped" archive: after the NSString marker comes a '+', one length
    byte, then the UTF-8 text, terminated by a control byte (0x84/0x86/0x00).
    Falls back to the first printable run that is not a class name.
    """
    if not blob:
        return None

    marker = blob.find(b"NSString")
    if marker != -1:
        plus = blob.find(b"+", marker)
        if plus != -1 and plus < marker + 20:
            start = plus + 2
            end = start
            while end < len(blob) and blob[end] not in (0x84, 0x86, 0x00):
                end += 1
            text = blob[start:end].decode("utf-8", errors="ignore").strip()
            if text:
                return text

    decoded = blob.decode("utf-8", errors="ignore")
    for run in re.findall(r"[^\x00-\x1f\x7f-\x9f]{3,}", decoded):
        if any(skip in run for skip in _SKIP_RUNS):
            continue
        cleaned = run.strip("+").strip()
        if len(cleaned) >= 2:
            return cleaned
    return None


class MessagesIntegration(AppIntegration):
    app_name = "Messages"

    def __init__(self, invoker, gate, config=None):
        super().__init__(invoker, gate, config)
        self.db_path = resolve_path(self.config["paths"]["messages_db"])
        self.max_messages = self.config["limits"]["max_messages"]
        self.min_phone_suffix = self.config["contacts"]["min_phone_suffix"]
        self.scheduler = MessageScheduler(send=self.send_message)

    async def send_message(self, phone: str, message: str) -> str:
        """
        Send an iMessage.

        Args:
            phone: Phone number or iMessage handle (email)
            message: Message text

        Raises:
            InvalidInputError: Empty recipient or message
            NativeExecutionError: Messages reported an error
        """
        if not phone or not phone.strip():
            raise InvalidInputError("Phone number cannot be empty")
        if not message or not message.strip():
            raise InvalidInputError("Message cannot be empty")

        script = f'''tell application "Messages"
    try
        set targetService to 1st account whose service type = iMessage
        set targetBuddy to participant "{escape_applescript_string(phone.strip())}" of targetService
        send "{escape_applescript_string(message)}" to targetBuddy
        return "SUCCESS"
    on error errMsg
        return "ERROR:" & errMsg
    end try
end tell'''

        await self.command(script)
        logger.info(f"Message sent successfully to {phone}")
        return f"Message sent to {phone}"

    def _handle_pattern(self, phone: str) -> str:
        """LIKE pattern for handle.id: the number's last digits, or the email as-is."""
        if "@" in phone:
            return f"%{phone.strip()}%"
        digits = normalize_phone_number(phone)
        if not digits:
            raise InvalidInputError(f"Invalid phone number: {phone}")
        return f"%{digits[-self.min_phone_suffix:]}%"

    def _limit(self, limit: Optional[int]) -> int:
        if not limit or limit < 1:
            return min(10, self.max_messages)
        return min(limit, self.max_messages)

    def _query_db(self, query: str, params: tuple) -> List[tuple]:
        if not self.db_path.exists():
            logger.error(f"Messages database not found: {self.db_path}")
            return []
        try:
            conn = sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True)
            try:
                return conn.execute(query, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            if any(fragment in str(e).lower() for fragment in _DB_ACCESS_ERRORS):
                raise AccessDeniedError(self.app_name, FULL_DISK_ACCESS_MESSAGE) from e
            logger.error(f"Database error: {e}")
            return []

    @staticmethod
    def _to_messages(rows: List[tuple]) -> List[Message]:
        messages = []
        for text, attributed_body, date_cocoa, is_from_me, sender in rows:
            content = text or extract_text_from_blob(attributed_body)
            date = cocoa_to_datetime(date_cocoa)
            messages.append(Message(
                content=content or "[message content not available]",
                date=date.isoformat() if date else None,
                sender="me" if is_from_me else (sender or "unknown"),
                is_from_me=bool(is_from_me),
            ))
        return messages

    async def read_messages(self, phone: str, limit: Optional[int] = None) -> List[Message]:
        """
        Recent messages exchanged with phone, newest first.

        Raises:
            InvalidInputError: phone has no digits and is not an email handle
            AccessDeniedError: The database cannot be opened (Full Disk Access)
        """
        if not phone or not phone.strip():
            raise InvalidInputError("Phone number cannot be empty")
        query = """
            SELECT
                message.text,
                message.attributedBody,
                message.date,
                message.is_from_me,
                handle.id
            FROM message
            JOIN handle ON message.handle_id = handle.ROWID
            WHERE handle.id LIKE ?
            ORDER BY message.date DESC
            LIMIT ?
        """
        rows = await asyncio.to_thread(self._query_db, query, (self._handle_pattern(phone), self._limit(limit)))
        messages = self._to_messages(rows)
        logger.info(f"Retrieved {len(messages)} messages for {phone}")
        return messages

    async def get_unread_messages(self, limit: Optional[int] = None) -> List[Message]:
        """Received messages not yet marked read, newest first."""
        query = """
            SELECT
                message.text,
                message.attributedBody,
                message.date,
                message.is_from_me,
                handle.id
            FROM message
            LEFT JOIN handle ON message.handle_id = handle.ROWID
            WHERE message.is_from_me = 0
              AND message.is_read = 0
              AND message.item_type = 0
            ORDER BY message.date DESC
            LIMIT ?
        """
        rows = await asyncio.to_thread(self._query_db, query, (self._limit(limit),))
        messages = self._to_messages(rows)
        logger.info(f"Retrieved {len(messages)} unread messages")
        return messages

    def schedule_message(self, phone: str, message: str, fire_at: datetime) -> ScheduledAction:
        """Schedule send_message(phone, message) at fire_at; see MessageScheduler.schedule."""
        return self.scheduler.schedule(phone, message, fire_at)

    def list_scheduled(self) -> List[ScheduledAction]:
        return self.scheduler.list_pending()

    def cancel_scheduled(self, action_id: int) -> bool:
        return self.scheduler.cancel(action_id)
