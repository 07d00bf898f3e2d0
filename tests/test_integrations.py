"""
Tests for the per-application integrations.

The native layer is a FakeInvoker; assertions cover argument validation,
access checks before real commands, script contents that carry user data
or limits, and reshaping of script output.
"""

from datetime import datetime, timedelta

import pytest

from conftest import records
from apple_pim.applescript import Failure, FailureKind, Success
from apple_pim.errors import (
    AccessDeniedError,
    CommandTimeoutError,
    InvalidInputError,
    NativeExecutionError,
)
from apple_pim.integrations import INTEGRATIONS, build_initializers
from apple_pim.integrations.calendar import CalendarIntegration
from apple_pim.integrations.contacts import ContactsIntegration
from apple_pim.integrations.mail import MailIntegration
from apple_pim.integrations.maps import MapsIntegration
from apple_pim.integrations.notes import NotesIntegration, body_to_html
from apple_pim.integrations.reminders import RemindersIntegration


def returns(value):
    return lambda script, app: Success(value)


def fails(kind, detail=""):
    return lambda script, app: Failure(kind, detail)


# =============================================================================
# Shared read/write policy (AppIntegration)
# =============================================================================

class TestIntegrationPolicy:

    @pytest.mark.asyncio
    async def test_access_checked_before_command(self, make_invoker, config):
        invoker, gate = make_invoker(returns(""))
        notes = NotesIntegration(invoker, gate, config)

        await notes.get_all_notes()

        assert invoker.calls[0] == ('tell application "Notes" to return name', "Notes")
        assert invoker.calls[1][1] == "Notes"

    @pytest.mark.asyncio
    async def test_denied_access_aborts_before_command(self, make_invoker, config):
        invoker, gate = make_invoker(returns(""), denied_apps={"Reminders"})
        reminders = RemindersIntegration(invoker, gate, config)

        with pytest.raises(AccessDeniedError) as exc_info:
            await reminders.create_reminder("Buy milk")

        assert "Reminders" in exc_info.value.message
        assert invoker.commands == []

    @pytest.mark.asyncio
    async def test_denied_during_command_raises(self, make_invoker, config):
        invoker, gate = make_invoker(fails(FailureKind.ACCESS_DENIED, "(-1743)"))
        mail = MailIntegration(invoker, gate, config)

        with pytest.raises(AccessDeniedError):
            await mail.get_accounts()

    @pytest.mark.asyncio
    async def test_query_timeout_degrades_to_empty(self, make_invoker, config):
        invoker, gate = make_invoker(fails(FailureKind.TIMEOUT, "timed out"))
        calendar = CalendarIntegration(invoker, gate, config)

        assert await calendar.get_events() == []

    @pytest.mark.asyncio
    async def test_query_native_error_degrades_to_empty(self, make_invoker, config):
        invoker, gate = make_invoker(fails(FailureKind.NATIVE_ERROR, "boom"))
        notes = NotesIntegration(invoker, gate, config)

        assert await notes.find_note("lunch") == []

    @pytest.mark.asyncio
    async def test_command_timeout_raises(self, make_invoker, config):
        invoker, gate = make_invoker(fails(FailureKind.TIMEOUT, "timed out"))
        mail = MailIntegration(invoker, gate, config)

        with pytest.raises(CommandTimeoutError, match="may still complete"):
            await mail.send_mail("a@example.com", "Hi", "Body")

    @pytest.mark.asyncio
    async def test_command_error_sentinel_raises_verbatim(self, make_invoker, config):
        invoker, gate = make_invoker(returns("ERROR:Can't make list"))
        reminders = RemindersIntegration(invoker, gate, config)

        with pytest.raises(NativeExecutionError, match="Can't make list"):
            await reminders.create_reminder("Buy milk")

    @pytest.mark.asyncio
    async def test_unrecognized_command_output_is_native_error(self, make_invoker, config):
        invoker, gate = make_invoker(returns("something odd"))
        maps = MapsIntegration(invoker, gate, config)

        with pytest.raises(NativeExecutionError, match="Unrecognized result"):
            await maps.search_locations("coffee")


# =============================================================================
# Notes
# =============================================================================

class TestNotes:

    @pytest.mark.asyncio
    async def test_list_parses_records(self, make_invoker, config):
        output = records(("Groceries", "milk, eggs", "Claude"), ("Ideas", "", "Notes"))
        invoker, gate = make_invoker(returns(output))
        notes = NotesIntegration(invoker, gate, config)

        result = await notes.get_all_notes()

        assert [n.to_dict() for n in result] == [
            {"name": "Groceries", "content": "milk, eggs", "folder": "Claude"},
            {"name": "Ideas", "content": "", "folder": "Notes"},
        ]

    @pytest.mark.asyncio
    async def test_list_script_embeds_limits(self, make_invoker, config):
        config["limits"]["max_items"] = 7
        config["limits"]["max_content"] = 99
        invoker, gate = make_invoker(returns(""))
        notes = NotesIntegration(invoker, gate, config)

        await notes.get_all_notes()

        script = invoker.commands[0][0]
        assert "noteCount >= 7" in script
        assert "my clip(noteContent, 99)" in script

    @pytest.mark.asyncio
    async def test_blank_search_never_dispatches(self, make_invoker, config):
        invoker, gate = make_invoker()
        notes = NotesIntegration(invoker, gate, config)

        assert await notes.find_note("  ") == []
        assert invoker.calls == []

    @pytest.mark.asyncio
    async def test_search_escapes_term(self, make_invoker, config):
        invoker, gate = make_invoker(returns(""))
        notes = NotesIntegration(invoker, gate, config)

        await notes.find_note('say "hi"')

        assert 'set searchTerm to "say \\"hi\\""' in invoker.commands[0][0]

    @pytest.mark.asyncio
    async def test_create_in_default_folder(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS:Claude:false"))
        notes = NotesIntegration(invoker, gate, config)

        result = await notes.create_note("Title", "Line 1\nLine 2")

        assert result.to_dict() == {"name": "Title", "folder_name": "Claude", "used_default_folder": False}
        assert "Line 1<br>Line 2" in invoker.commands[0][0]

    @pytest.mark.asyncio
    async def test_create_falls_back_to_default_folder(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS:Notes:true"))
        notes = NotesIntegration(invoker, gate, config)

        result = await notes.create_note("Title", "Body", "Missing Folder")

        assert result.folder_name == "Notes"
        assert result.used_default_folder is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title,body", [("", "body"), ("title", "   ")])
    async def test_create_validates_before_dispatch(self, make_invoker, config, title, body):
        invoker, gate = make_invoker()
        notes = NotesIntegration(invoker, gate, config)

        with pytest.raises(InvalidInputError):
            await notes.create_note(title, body)
        assert invoker.calls == []

    @pytest.mark.asyncio
    async def test_folder_not_found(self, make_invoker, config):
        invoker, gate = make_invoker(returns("ERROR:Folder not found"))
        notes = NotesIntegration(invoker, gate, config)

        with pytest.raises(NativeExecutionError, match="Folder not found"):
            await notes.get_notes_from_folder("Nope")

    @pytest.mark.asyncio
    async def test_folder_notes(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS:" + records(("A", "body", "Work"))))
        notes = NotesIntegration(invoker, gate, config)

        result = await notes.get_notes_from_folder("Work")

        assert [n.name for n in result] == ["A"]


def test_body_to_html_escapes_markup():
    assert body_to_html("<b>&\nnext") == "&lt;b&gt;&amp;<br>next"


# =============================================================================
# Reminders
# =============================================================================

class TestReminders:

    @pytest.mark.asyncio
    async def test_lists(self, make_invoker, config):
        invoker, gate = make_invoker(returns(records(("Reminders", "x-apple-1"), ("Work", "x-apple-2"))))
        reminders = RemindersIntegration(invoker, gate, config)

        lists = await reminders.get_all_lists()

        assert [l.to_dict() for l in lists] == [
            {"name": "Reminders", "id": "x-apple-1"},
            {"name": "Work", "id": "x-apple-2"},
        ]

    @pytest.mark.asyncio
    async def test_search_parses_reminders(self, make_invoker, config):
        output = records(("Buy milk", "r1", "2%", "false", "2026-01-05T09:00:00", "Reminders"))
        invoker, gate = make_invoker(returns(output))
        reminders = RemindersIntegration(invoker, gate, config)

        result = await reminders.search_reminders("milk")

        assert result[0].to_dict() == {
            "name": "Buy milk",
            "id": "r1",
            "body": "2%",
            "completed": False,
            "due_date": "2026-01-05T09:00:00",
            "list_name": "Reminders",
        }
        assert 'name contains "milk"' in invoker.commands[0][0]

    @pytest.mark.asyncio
    async def test_reminders_of_one_list(self, make_invoker, config):
        invoker, gate = make_invoker(returns(""))
        reminders = RemindersIntegration(invoker, gate, config)

        await reminders.get_all_reminders("Work")

        assert '(lists whose name is "Work")' in invoker.commands[0][0]

    @pytest.mark.asyncio
    async def test_create_with_due_date(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS:x-apple-reminder://42"))
        reminders = RemindersIntegration(invoker, gate, config)
        due = datetime(2026, 3, 1, 17, 0)

        reminder = await reminders.create_reminder("Call mom", "Family", "Sunday", due)

        assert reminder.id == "x-apple-reminder://42"
        assert reminder.list_name == "Family"
        assert reminder.due_date == "2026-03-01T17:00:00"
        script = invoker.commands[0][0]
        assert "set year of dueDate to 2026" in script
        assert 'make new list with properties {name:"Family"}' in script

    @pytest.mark.asyncio
    async def test_create_uses_default_list(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS:id"))
        reminders = RemindersIntegration(invoker, gate, config)

        reminder = await reminders.create_reminder("Buy milk")

        assert reminder.list_name == config["defaults"]["reminders_list"]

    @pytest.mark.asyncio
    async def test_open_without_match(self, make_invoker, config):
        invoker, gate = make_invoker(returns(""))
        reminders = RemindersIntegration(invoker, gate, config)

        result = await reminders.open_reminder("nothing")

        assert result["success"] is False
        # Only the search ran; Reminders was not activated
        assert len(invoker.commands) == 1


# =============================================================================
# Calendar
# =============================================================================

class TestCalendar:

    @pytest.mark.asyncio
    async def test_events_parse(self, make_invoker, config):
        output = records((
            "E1", "Standup", "", "", "2026-01-05T09:00:00", "2026-01-05T09:15:00", "Work", "false", "",
        ))
        invoker, gate = make_invoker(returns(output))
        calendar = CalendarIntegration(invoker, gate, config)

        events = await calendar.get_events(limit=5)

        assert events[0].title == "Standup"
        assert events[0].location is None
        assert events[0].is_all_day is False
        assert "eventCount >= 5" in invoker.commands[0][0]

    @pytest.mark.asyncio
    async def test_limit_capped_by_config(self, make_invoker, config):
        invoker, gate = make_invoker(returns(""))
        calendar = CalendarIntegration(invoker, gate, config)

        await calendar.get_events(limit=500)

        assert f"eventCount >= {config['limits']['max_events']}" in invoker.commands[0][0]

    @pytest.mark.asyncio
    async def test_create_rejects_end_before_start(self, make_invoker, config):
        invoker, gate = make_invoker()
        calendar = CalendarIntegration(invoker, gate, config)
        start = datetime(2026, 1, 5, 10)

        with pytest.raises(InvalidInputError, match="End date must be after start date"):
            await calendar.create_event("Meeting", start, start - timedelta(hours=1))
        assert invoker.calls == []

    @pytest.mark.asyncio
    async def test_create_returns_uid(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS:ABC-123"))
        calendar = CalendarIntegration(invoker, gate, config)
        start = datetime(2026, 1, 5, 10)

        uid = await calendar.create_event("Meeting", start, start + timedelta(hours=1), location="Room 1")

        assert uid == "ABC-123"
        script = invoker.commands[0][0]
        assert 'summary:"Meeting"' in script
        assert 'location:"Room 1"' in script
        assert "set time of endDate to 39600" in script

    @pytest.mark.asyncio
    async def test_open_missing_event(self, make_invoker, config):
        invoker, gate = make_invoker(returns("ERROR:Event not found"))
        calendar = CalendarIntegration(invoker, gate, config)

        result = await calendar.open_event("non-existent-event-12345")

        assert result == {"success": False, "message": "Event not found"}


# =============================================================================
# Mail
# =============================================================================

class TestMail:

    @pytest.mark.asyncio
    async def test_unread(self, make_invoker, config):
        output = records(("Hello", "a@example.com", "2026-01-05T09:00:00", "Hi there", "false", "INBOX"))
        invoker, gate = make_invoker(returns(output))
        mail = MailIntegration(invoker, gate, config)

        emails = await mail.get_unread_mails(5)

        assert emails[0].to_dict() == {
            "subject": "Hello",
            "sender": "a@example.com",
            "date_sent": "2026-01-05T09:00:00",
            "content": "Hi there",
            "is_read": False,
            "mailbox": "INBOX",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("to,subject,body", [
        ("", "Subject", "Body"),
        ("a@example.com", "", "Body"),
        ("a@example.com", "Subject", " "),
    ])
    async def test_send_validates(self, make_invoker, config, to, subject, body):
        invoker, gate = make_invoker()
        mail = MailIntegration(invoker, gate, config)

        with pytest.raises(InvalidInputError):
            await mail.send_mail(to, subject, body)
        assert invoker.calls == []

    @pytest.mark.asyncio
    async def test_send_with_cc(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS"))
        mail = MailIntegration(invoker, gate, config)

        message = await mail.send_mail("a@example.com", "Hi", "Body", cc="b@example.com")

        assert message == 'Email sent to a@example.com with subject "Hi"'
        script = invoker.commands[0][0]
        assert 'make new cc recipient with properties {address:"b@example.com"}' in script
        assert "bcc recipient" not in script

    @pytest.mark.asyncio
    async def test_accounts_and_mailboxes(self, make_invoker, config):
        invoker, gate = make_invoker(returns(records(("iCloud",), ("Work",))))
        mail = MailIntegration(invoker, gate, config)

        assert await mail.get_accounts() == ["iCloud", "Work"]
        assert await mail.get_mailboxes() == ["iCloud", "Work"]


# =============================================================================
# Maps
# =============================================================================

class TestMaps:

    @pytest.mark.asyncio
    async def test_directions_url(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS"))
        maps = MapsIntegration(invoker, gate, config)

        result = await maps.get_directions("1 Infinite Loop", "Apple Park", "walking")

        assert result["success"] is True
        assert "maps://?saddr=1+Infinite+Loop&daddr=Apple+Park&dirflg=w" in invoker.commands[0][0]

    @pytest.mark.asyncio
    async def test_invalid_transport_type(self, make_invoker, config):
        invoker, gate = make_invoker()
        maps = MapsIntegration(invoker, gate, config)

        with pytest.raises(InvalidInputError, match="transport type"):
            await maps.get_directions("A", "B", "flying")
        assert invoker.calls == []

    @pytest.mark.asyncio
    async def test_empty_search_rejected(self, make_invoker, config):
        invoker, gate = make_invoker()
        maps = MapsIntegration(invoker, gate, config)

        with pytest.raises(InvalidInputError):
            await maps.search_locations("")

    @pytest.mark.asyncio
    async def test_pin(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS"))
        maps = MapsIntegration(invoker, gate, config)

        result = await maps.drop_pin("Office", "1 Apple Park Way")

        assert result["location"] == {
            "name": "Office", "address": "1 Apple Park Way", "latitude": None, "longitude": None,
        }

    @pytest.mark.asyncio
    async def test_save_location_opens_address(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS"))
        maps = MapsIntegration(invoker, gate, config)

        result = await maps.save_location("Office", "1 Apple Park Way")

        assert result["success"] is True
        assert "Add to Favorites" in result["message"]
        assert "maps://?q=1+Apple+Park+Way" in invoker.commands[0][0]

    @pytest.mark.asyncio
    async def test_create_and_list_guides(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS"))
        maps = MapsIntegration(invoker, gate, config)

        created = await maps.create_guide("Weekend Trip")
        listed = await maps.list_guides()

        assert created == {"success": True, "message": "Created guide 'Weekend Trip'"}
        assert 'keystroke "Weekend Trip"' in invoker.commands[0][0]
        assert listed["guides"] == ["Weekend Trip"]
        assert "maps://?show=guides" in invoker.commands[1][0]

    @pytest.mark.asyncio
    async def test_duplicate_guide_fails(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS"))
        maps = MapsIntegration(invoker, gate, config)
        await maps.create_guide("Coffee")

        result = await maps.create_guide("Coffee")

        assert result == {"success": False, "message": "Guide 'Coffee' already exists"}
        assert len(invoker.commands) == 1

    @pytest.mark.asyncio
    async def test_add_to_guide(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS"))
        maps = MapsIntegration(invoker, gate, config)
        await maps.create_guide("Coffee")

        result = await maps.add_to_guide("1 Apple Park Way", "Coffee")

        assert result["success"] is True
        assert maps._guides["Coffee"] == ["1 Apple Park Way"]

    @pytest.mark.asyncio
    async def test_add_to_missing_guide_fails(self, make_invoker, config):
        invoker, gate = make_invoker(returns("SUCCESS"))
        maps = MapsIntegration(invoker, gate, config)

        result = await maps.add_to_guide("1 Apple Park Way", "NonExistentGuide12345")

        assert result == {"success": False, "message": "Guide 'NonExistentGuide12345' not found"}
        assert invoker.calls == []

    @pytest.mark.asyncio
    async def test_create_guide_native_error(self, make_invoker, config):
        invoker, gate = make_invoker(returns("ERROR:Can't get menu bar 1 of process Maps."))
        maps = MapsIntegration(invoker, gate, config)

        with pytest.raises(NativeExecutionError, match="menu bar"):
            await maps.create_guide("Coffee")
        assert maps._guides == {}


# =============================================================================
# Contacts wrapper and initializers
# =============================================================================

@pytest.mark.asyncio
async def test_contacts_integration_lookups(make_invoker, config):
    output = records(("Jane Doe", "+1 415 555 1234"), ("John Roe", ""))
    invoker, gate = make_invoker(returns(output))
    contacts = ContactsIntegration(invoker, gate, config)

    assert await contacts.get_all_numbers() == {"Jane Doe": ["+1 415 555 1234"], "John Roe": []}
    assert await contacts.find_number("jane") == ["+1 415 555 1234"]
    assert await contacts.find_number("john") == []
    assert await contacts.find_number("zzz") is None
    assert await contacts.find_contact_by_phone("4155551234") == "Jane Doe"
    assert await contacts.find_contact_by_phone("0000000000") is None


@pytest.mark.asyncio
async def test_initializers_build_every_integration(make_invoker, config):
    invoker, gate = make_invoker()
    initializers = build_initializers(invoker, gate, config)

    assert set(initializers) == set(INTEGRATIONS)
    notes = await initializers["notes"]()
    assert isinstance(notes, NotesIntegration)
    assert invoker.probes == ["Notes"]


@pytest.mark.asyncio
async def test_initializer_tolerates_missing_access(make_invoker, config):
    invoker, gate = make_invoker(denied_apps={"Mail"})
    mail = await build_initializers(invoker, gate, config)["mail"]()

    assert isinstance(mail, MailIntegration)
