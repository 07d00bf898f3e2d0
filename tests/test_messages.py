"""
Tests for the Messages integration: sending, chat.db history and scheduling.

History tests build a small chat.db in tmp_path with the two tables the
queries touch.
"""

import sqlite3
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from apple_pim.applescript import Success
from apple_pim.errors import AccessDeniedError, InvalidInputError
from apple_pim.integrations.messages import (
    COCOA_EPOCH,
    MessagesIntegration,
    cocoa_to_datetime,
    extract_text_from_blob,
)


def to_cocoa(dt: datetime) -> int:
    return int((dt - COCOA_EPOCH).total_seconds()) * 1_000_000_000


@pytest.fixture
def chat_db(tmp_path):
    path = tmp_path / "chat.db"
    conn = sqlite3.connect(path)
    conn.executescript("""
        CREATE TABLE handle (ROWID INTEGER PRIMARY KEY, id TEXT);
        CREATE TABLE message (
            ROWID INTEGER PRIMARY KEY,
            text TEXT,
            attributedBody BLOB,
            date INTEGER,
            is_from_me INTEGER,
            is_read INTEGER,
            item_type INTEGER,
            handle_id INTEGER
        );
    """)
    conn.executemany("INSERT INTO handle (ROWID, id) VALUES (?, ?)", [
        (1, "+14155551234"),
        (2, "friend@example.com"),
    ])
    blob = b"\x04\x0bstreamtyped\x81\xe8\x03\x84\x01@\x84\x84\x84\x08NSString\x01\x94\x84\x01+\x05hello\x86\x84"
    conn.executemany(
        "INSERT INTO message (text, attributedBody, date, is_from_me, is_read, item_type, handle_id) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        [
            ("Are we still on?", None, to_cocoa(datetime(2026, 1, 5, 9, 0)), 0, 1, 0, 1),
            ("Yes, see you at 10", None, to_cocoa(datetime(2026, 1, 5, 9, 5)), 1, 1, 0, 1),
            (None, blob, to_cocoa(datetime(2026, 1, 5, 9, 10)), 0, 0, 0, 1),
            ("Lunch?", None, to_cocoa(datetime(2026, 1, 4, 12, 0)), 0, 0, 0, 2),
        ],
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def messages(make_invoker, config, chat_db):
    config["paths"]["messages_db"] = str(chat_db)
    invoker, gate = make_invoker(lambda script, app: Success("SUCCESS"))
    integration = MessagesIntegration(invoker, gate, config)
    integration.fake_invoker = invoker
    return integration


# =============================================================================
# History
# =============================================================================

class TestReadMessages:

    @pytest.mark.asyncio
    async def test_newest_first_with_senders(self, messages):
        result = await messages.read_messages("(415) 555-1234")

        assert [m.content for m in result] == ["hello", "Yes, see you at 10", "Are we still on?"]
        assert result[1].sender == "me"
        assert result[1].is_from_me is True
        assert result[2].sender == "+14155551234"
        assert result[2].date == "2026-01-05T09:00:00"

    @pytest.mark.asyncio
    async def test_limit(self, messages):
        result = await messages.read_messages("+1 415 555 1234", limit=1)
        assert len(result) == 1

    @pytest.mark.asyncio
    async def test_email_handle(self, messages):
        result = await messages.read_messages("friend@example.com")
        assert [m.content for m in result] == ["Lunch?"]

    @pytest.mark.asyncio
    async def test_history_does_not_use_automation(self, messages):
        await messages.read_messages("4155551234")
        assert messages.fake_invoker.calls == []

    @pytest.mark.asyncio
    async def test_phone_without_digits_rejected(self, messages):
        with pytest.raises(InvalidInputError):
            await messages.read_messages("not a number")

    @pytest.mark.asyncio
    async def test_missing_database_returns_empty(self, messages, tmp_path):
        messages.db_path = tmp_path / "absent.db"
        assert await messages.read_messages("4155551234") == []

    @pytest.mark.asyncio
    async def test_unreadable_database_needs_full_disk_access(self, messages):
        error = sqlite3.OperationalError("unable to open database file")
        with patch("apple_pim.integrations.messages.sqlite3.connect", side_effect=error):
            with pytest.raises(AccessDeniedError, match="Full Disk Access"):
                await messages.read_messages("4155551234")

    @pytest.mark.asyncio
    async def test_unread_only_received(self, messages):
        result = await messages.get_unread_messages()
        assert [m.content for m in result] == ["hello", "Lunch?"]
        assert not any(m.is_from_me for m in result)


def test_handle_pattern_uses_phone_suffix(make_invoker, config):
    invoker, gate = make_invoker()
    integration = MessagesIntegration(invoker, gate, config)

    assert integration._handle_pattern("+1 (415) 555-1234") == "%4155551234%"
    assert integration._handle_pattern("a@b.com") == "%a@b.com%"


def test_cocoa_dates():
    assert cocoa_to_datetime(0) is None
    assert cocoa_to_datetime(to_cocoa(datetime(2026, 1, 5, 9, 0))) == datetime(2026, 1, 5, 9, 0)


class TestExtractTextFromBlob:

    def test_streamtyped_string(self):
        blob = b"streamtyped\x84\x84NSString\x01\x94\x84\x01+\x0bhello world\x86\x84"
        assert extract_text_from_blob(blob) == "hello world"

    def test_fallback_to_printable_run(self):
        blob = b"\x00\x01NSObject\x00\x02plain text here\x00"
        assert extract_text_from_blob(blob) == "plain text here"

    @pytest.mark.parametrize("blob", [None, b""])
    def test_empty(self, blob):
        assert extract_text_from_blob(blob) is None


# =============================================================================
# Sending and scheduling
# =============================================================================

class TestSendMessage:

    @pytest.mark.asyncio
    async def test_send(self, messages):
        result = await messages.send_message("+14155551234", 'He said "hi"')

        assert result == "Message sent to +14155551234"
        script, app = messages.fake_invoker.commands[0]
        assert app == "Messages"
        assert 'send "He said \\"hi\\""' in script

    @pytest.mark.asyncio
    @pytest.mark.parametrize("phone,text", [("", "hi"), ("+14155551234", "  ")])
    async def test_send_validates(self, messages, phone, text):
        with pytest.raises(InvalidInputError):
            await messages.send_message(phone, text)
        assert messages.fake_invoker.calls == []

    @pytest.mark.asyncio
    async def test_schedule_and_cancel(self, messages):
        action = messages.schedule_message("+14155551234", "later", datetime.now() + timedelta(hours=1))

        assert [a.id for a in messages.list_scheduled()] == [action.id]
        assert messages.cancel_scheduled(action.id) is True
        assert messages.list_scheduled() == []
