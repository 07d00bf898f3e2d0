"""
Mail integration.

Content previews are clipped in the script (max_content) and message
enumeration stops at max_emails.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from apple_pim.applescript import (
    RECORD_HANDLERS,
    SEPARATOR_PRELUDE,
    escape_applescript_string,
    parse_records,
)
from apple_pim.errors import InvalidInputError
from apple_pim.integrations.base import AppIntegration

logger = logging.getLogger(__name__)

EMAIL_FIELDS = ["subject", "sender", "date_sent", "content", "is_read", "mailbox"]

# Per-message output line shared by the enumeration scripts
_EMIT_MESSAGE = (
    "set output to output & my txt(subject of m) & US & my txt(sender of m) & US & "
    "my isodate(date sent of m) & US & my clip(content of m, {max_content}) & US & "
    "my txt(read status of m) & US & my txt(name of mailbox of m) & RS"
)


@dataclass
class EmailMessage:
    subject: str
    sender: str
    date_sent: str
    content: str
    is_read: bool
    mailbox: str

    @classmethod
    def from_row(cls, row: Dict[str, str]) -> "EmailMessage":
        return cls(
            subject=row["subject"],
            sender=row["sender"],
            date_sent=row["date_sent"],
            content=row["content"],
            is_read=row["is_read"] == "true",
            mailbox=row["mailbox"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class MailIntegration(AppIntegration):
    app_name = "Mail"

    def __init__(self, invoker, gate, config=None):
        super().__init__(invoker, gate, config)
        self.max_emails = self.config["limits"]["max_emails"]

    def _limit(self, limit: Optional[int]) -> int:
        if not limit or limit < 1:
            return self.max_emails
        return min(limit, self.max_emails)

    def _emit(self) -> str:
        return _EMIT_MESSAGE.format(max_content=self.max_content)

    def _to_emails(self, output: Optional[str]) -> List[EmailMessage]:
        return [EmailMessage.from_row(row) for row in parse_records(output, EMAIL_FIELDS)]

    async def get_unread_mails(self, limit: Optional[int] = None) -> List[EmailMessage]:
        """Unread messages from the unified inbox, newest first as Mail orders them."""
        limit = self._limit(limit)
        script = RECORD_HANDLERS + SEPARATOR_PRELUDE + f'''set output to ""
set msgCount to 0
tell application "Mail"
    set found to (messages of inbox whose read status is false)
    repeat with m in found
        if msgCount >= {limit} then exit repeat
        try
            {self._emit()}
            set msgCount to msgCount + 1
        end try
    end repeat
end tell
return output'''
        emails = self._to_emails(await self.query(script))
        logger.info(f"Retrieved {len(emails)} unread emails")
        return emails

    async def search_mails(
        self,
        search_term: str,
        limit: Optional[int] = None
    ) -> List[EmailMessage]:
        """
        Messages whose subject or sender contains search_term, across all accounts.

        Blank search terms return [] without dispatching.
        """
        if not search_term or not search_term.strip():
            return []
        limit = self._limit(limit)
        term = escape_applescript_string(search_term.strip())
        script = RECORD_HANDLERS + SEPARATOR_PRELUDE + f'''set output to ""
set msgCount to 0
tell application "Mail"
    repeat with acct in accounts
        if msgCount >= {limit} then exit repeat
        repeat with mb in mailboxes of acct
            if msgCount >= {limit} then exit repeat
            try
                set found to (messages of mb whose subject contains "{term}" or sender contains "{term}")
                repeat with m in found
                    if msgCount >= {limit} then exit repeat
                    try
                        {self._emit()}
                        set msgCount to msgCount + 1
                    end try
                end repeat
            end try
        end repeat
    end repeat
end tell
return output'''
        emails = self._to_emails(await self.query(script))
        logger.info(f"Found {len(emails)} emails matching '{search_term}'")
        return emails

    async def send_mail(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str] = None,
        bcc: Optional[str] = None
    ) -> str:
        """
        Compose and send a message.

        Returns:
            Confirmation text

        Raises:
            InvalidInputError: Missing recipient, subject or body
            NativeExecutionError: Mail reported an error
        """
        if not to or not to.strip():
            raise InvalidInputError("To address is required")
        if not subject or not subject.strip():
            raise InvalidInputError("Subject is required")
        if not body or not body.strip():
            raise InvalidInputError("Email body is required")

        recipients = f'make new to recipient with properties {{address:"{escape_applescript_string(to.strip())}"}}'
        if cc:
            recipients += f'\n            make new cc recipient with properties {{address:"{escape_applescript_string(cc)}"}}'
        if bcc:
            recipients += f'\n            make new bcc recipient with properties {{address:"{escape_applescript_string(bcc)}"}}'

        script = f'''tell application "Mail"
    try
        set newMessage to make new outgoing message with properties {{subject:"{escape_applescript_string(subject)}", content:"{escape_applescript_string(body.strip())}", visible:false}}
        tell newMessage
            {recipients}
        end tell
        send newMessage
        return "SUCCESS"
    on error errMsg
        return "ERROR:" & errMsg
    end try
end tell'''

        await self.command(script)
        logger.info(f"Sent email to {to}")
        return f'Email sent to {to} with subject "{subject}"'

    async def _names(self, script: str) -> List[str]:
        return [row["name"] for row in parse_records(await self.query(script), ["name"]) if row["name"]]

    async def get_mailboxes(self) -> List[str]:
        """Mailbox names across all accounts, as "Account/Mailbox"."""
        return await self._names(SEPARATOR_PRELUDE + f'''set output to ""
set boxCount to 0
tell application "Mail"
    repeat with acct in accounts
        repeat with mb in mailboxes of acct
            if boxCount >= {self.max_items} then exit repeat
            set output to output & (name of acct) & "/" & (name of mb) & RS
            set boxCount to boxCount + 1
        end repeat
    end repeat
end tell
return output''')

    async def get_accounts(self) -> List[str]:
        return await self._names(SEPARATOR_PRELUDE + '''set output to ""
tell application "Mail"
    repeat with acct in accounts
        set output to output & (name of acct) & RS
    end repeat
end tell
return output''')

    async def get_mailboxes_for_account(self, account_name: str) -> List[str]:
        if not account_name or not account_name.strip():
            raise InvalidInputError("Account name cannot be empty")
        escaped = escape_applescript_string(account_name.strip())
        return await self._names(SEPARATOR_PRELUDE + f'''set output to ""
tell application "Mail"
    repeat with mb in mailboxes of (first account whose name is "{escaped}")
        set output to output & (name of mb) & RS
    end repeat
end tell
return output''')

    async def get_latest_mails(self, account_name: str, limit: Optional[int] = None) -> List[EmailMessage]:
        """Most recent messages in the inbox of one account."""
        if not account_name or not account_name.strip():
            raise InvalidInputError("Account name cannot be empty")
        limit = self._limit(limit)
        escaped = escape_applescript_string(account_name.strip())
        script = RECORD_HANDLERS + SEPARATOR_PRELUDE + f'''set output to ""
set msgCount to 0
tell application "Mail"
    set targetAccount to first account whose name is "{escaped}"
    repeat with mb in mailboxes of targetAccount
        if msgCount >= {limit} then exit repeat
        try
            repeat with m in messages of mb
                if msgCount >= {limit} then exit repeat
                try
                    {self._emit()}
                    set msgCount to msgCount + 1
                end try
            end repeat
        end try
    end repeat
end tell
return output'''
        return self._to_emails(await self.query(script))
