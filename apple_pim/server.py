#!/usr/bin/env python3
"""
Apple PIM MCP Server - Contacts, Notes, Messages, Mail, Reminders, Calendar
and Maps over AppleScript.

Every tool takes an `operation` argument plus that operation's arguments.
Integration modules are loaded by SafeModeLoader; each handler validates
its arguments first and only then asks the loader for its module.

Usage:
    apple-pim-mcp
    python -m apple_pim
"""

import asyncio
import copy
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from apple_pim.access import AccessGate
from apple_pim.applescript import Invoker
from apple_pim.config import DEFAULT_CONFIG, load_config, setup_logging
from apple_pim.integrations import INTEGRATIONS, build_initializers
from apple_pim.loader import SafeModeLoader
from apple_pim.utils import (
    contact_not_found,
    empty_result,
    handle_tool_error,
    json_response,
    records_response,
    success_response,
    text_response,
    validate_datetime,
    validate_enum,
    validate_limit,
    validate_non_empty_string,
    validate_optional_string,
    validate_positive_int,
    validation_error,
)

logger = logging.getLogger(__name__)

APP_NAMES = ["Contacts", "Notes", "Messages", "Mail", "Reminders", "Calendar", "Maps"]

TOOL_OPERATIONS: Dict[str, list] = {
    "contacts": ["search", "find_number", "lookup_phone", "list"],
    "notes": ["list", "search", "create", "list_folder"],
    "messages": ["send", "read", "unread", "schedule", "list_scheduled", "cancel_scheduled"],
    "mail": ["unread", "search", "send", "mailboxes", "accounts", "latest"],
    "reminders": ["lists", "search", "create", "open"],
    "calendar": ["events", "search", "create", "open"],
    "maps": ["search", "directions", "pin", "save", "guides", "create_guide", "add_to_guide"],
}

app = Server(DEFAULT_CONFIG["server_name"])

# Process-wide components, set by init_components()
config: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
invoker: Optional[Invoker] = None
gate: Optional[AccessGate] = None
loader: Optional[SafeModeLoader] = None


def init_components(
    cfg: Optional[Dict[str, Any]] = None,
    invoker_override: Optional[Invoker] = None
) -> SafeModeLoader:
    """
    Build the invoker, access gate and loader from configuration.

    Args:
        cfg: Configuration dict (default: built-in defaults)
        invoker_override: Use this invoker instead of creating one

    Returns:
        The (not yet started) loader
    """
    global config, invoker, gate, loader

    config = cfg if cfg is not None else copy.deepcopy(DEFAULT_CONFIG)
    timeouts = config["timeouts"]
    invoker = invoker_override or Invoker(timeout=timeouts["command"])
    gate = AccessGate(invoker, probe_timeout=timeouts["probe"])
    loader = SafeModeLoader(
        build_initializers(invoker, gate, config),
        eager_timeout=timeouts["eager"],
        module_load_timeout=timeouts["module_load"],
    )
    return loader


def _operation_schema(tool: str, properties: Dict[str, Any], required=None) -> Dict[str, Any]:
    schema = {
        "type": "object",
        "properties": {
            "operation": {
                "type": "string",
                "enum": TOOL_OPERATIONS[tool],
                "description": "Operation to perform",
            },
            **properties,
        },
        "required": ["operation"] + (required or []),
    }
    return schema


_LIMIT = {"type": "number", "description": "Maximum number of results"}
_QUERY = {"type": "string", "description": "Text to search for"}


@app.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List available MCP tools."""
    return [
        types.Tool(
            name="contacts",
            description=(
                "Search macOS Contacts by name (search), get the phone numbers of matching "
                "contacts (find_number), find who owns a phone number (lookup_phone), "
                "or list every contact with their numbers (list)."
            ),
            inputSchema=_operation_schema("contacts", {
                "name": {"type": "string", "description": "Name to search for (search, find_number)"},
                "phone": {"type": "string", "description": "Phone number (lookup_phone)"},
            }),
        ),
        types.Tool(
            name="notes",
            description="List, search and create Apple Notes, or list the notes of one folder.",
            inputSchema=_operation_schema("notes", {
                "query": _QUERY,
                "title": {"type": "string", "description": "Note title (create)"},
                "body": {"type": "string", "description": "Note body (create)"},
                "folder_name": {
                    "type": "string",
                    "description": "Folder (create, list_folder; default: configured notes folder)",
                },
            }),
        ),
        types.Tool(
            name="messages",
            description=(
                "Send iMessages, read history with a number, list unread messages, "
                "and schedule sends for later (kept in memory until the server exits)."
            ),
            inputSchema=_operation_schema("messages", {
                "phone": {"type": "string", "description": "Phone number or iMessage email"},
                "message": {"type": "string", "description": "Message text (send, schedule)"},
                "scheduled_time": {
                    "type": "string",
                    "description": "When to send (schedule): ISO 8601 or natural language, e.g. 'tomorrow at 9am'",
                },
                "id": {"type": "number", "description": "Scheduled message ID (cancel_scheduled)"},
                "limit": _LIMIT,
            }),
        ),
        types.Tool(
            name="mail",
            description="Read unread mail, search, send, and list mailboxes or accounts in Apple Mail.",
            inputSchema=_operation_schema("mail", {
                "query": _QUERY,
                "account": {"type": "string", "description": "Account name (mailboxes, latest)"},
                "to": {"type": "string", "description": "Recipient address (send)"},
                "subject": {"type": "string", "description": "Subject (send)"},
                "body": {"type": "string", "description": "Body (send)"},
                "cc": {"type": "string", "description": "CC address (send)"},
                "bcc": {"type": "string", "description": "BCC address (send)"},
                "limit": _LIMIT,
            }),
        ),
        types.Tool(
            name="reminders",
            description=(
                "List reminder lists (or the reminders of one list), search, create "
                "and open reminders."
            ),
            inputSchema=_operation_schema("reminders", {
                "query": _QUERY,
                "name": {"type": "string", "description": "Reminder name (create)"},
                "list_name": {"type": "string", "description": "Reminder list (lists, create)"},
                "notes": {"type": "string", "description": "Reminder notes (create)"},
                "due_date": {"type": "string", "description": "Due date (create): ISO 8601 or natural language"},
            }),
        ),
        types.Tool(
            name="calendar",
            description="List, search, create and open Calendar events.",
            inputSchema=_operation_schema("calendar", {
                "query": _QUERY,
                "title": {"type": "string", "description": "Event title (create)"},
                "start_date": {"type": "string", "description": "Start (create); range start (events, search)"},
                "end_date": {"type": "string", "description": "End (create); range end (events, search)"},
                "location": {"type": "string", "description": "Location (create)"},
                "notes": {"type": "string", "description": "Notes (create)"},
                "is_all_day": {"type": "boolean", "description": "All-day event (create)"},
                "calendar_name": {"type": "string", "description": "Target calendar (create)"},
                "event_id": {"type": "string", "description": "Event ID (open)"},
                "limit": _LIMIT,
            }),
        ),
        types.Tool(
            name="maps",
            description=(
                "Search places, get directions, drop pins, save favorites and manage "
                "guides in Apple Maps."
            ),
            inputSchema=_operation_schema("maps", {
                "query": _QUERY,
                "from_address": {"type": "string", "description": "Start address (directions)"},
                "to_address": {"type": "string", "description": "Destination address (directions)"},
                "transport_type": {
                    "type": "string",
                    "enum": ["driving", "walking", "transit"],
                    "description": "Transport type (directions, default driving)",
                },
                "name": {"type": "string", "description": "Location label (pin, save)"},
                "address": {"type": "string", "description": "Address (pin, save, add_to_guide)"},
                "guide_name": {"type": "string", "description": "Guide name (create_guide, add_to_guide)"},
            }),
        ),
        types.Tool(
            name="check_access",
            description="Check whether automation access to an application is granted, with instructions if not.",
            inputSchema={
                "type": "object",
                "properties": {
                    "app_name": {"type": "string", "enum": APP_NAMES, "description": "Application"},
                },
                "required": ["app_name"],
            },
        ),
        types.Tool(
            name="server_status",
            description="Show loader state (ready / safe mode) and the state of every integration module.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
    """
    Handle MCP tool calls.

    Args:
        name: Tool name
        arguments: Tool arguments

    Returns:
        List of TextContent responses
    """
    logger.info(f"Tool called: {name} with args: {arguments}")
    arguments = arguments or {}

    try:
        if name == "contacts":
            return await handle_contacts(arguments)
        elif name == "notes":
            return await handle_notes(arguments)
        elif name == "messages":
            return await handle_messages(arguments)
        elif name == "mail":
            return await handle_mail(arguments)
        elif name == "reminders":
            return await handle_reminders(arguments)
        elif name == "calendar":
            return await handle_calendar(arguments)
        elif name == "maps":
            return await handle_maps(arguments)
        elif name == "check_access":
            return await handle_check_access(arguments)
        elif name == "server_status":
            return await handle_server_status(arguments)
        else:
            return text_response(f"Error: Unknown tool: {name}")

    except Exception as e:
        return handle_tool_error(e, name)


def _get_loader() -> SafeModeLoader:
    if loader is None:
        init_components(config)
    return loader


async def _module(name: str):
    return await _get_loader().ensure_module_ready(name)


def _operation(tool: str, arguments: dict) -> tuple[str | None, str | None]:
    return validate_enum(arguments.get("operation"), "operation", TOOL_OPERATIONS[tool])


async def handle_contacts(arguments: dict) -> list[types.TextContent]:
    """
    Handle the contacts tool.

    Args:
        arguments: {"operation": str, "name": str, "phone": str}
    """
    operation, error = _operation("contacts", arguments)
    if error:
        return validation_error(error)

    if operation == "search":
        name, error = validate_non_empty_string(arguments.get("name"), "name")
        if error:
            return validation_error(error)
        contacts = await _module("contacts")
        matches = await contacts.search(name)
        if not matches:
            return contact_not_found(name, await contacts.suggest(name))
        return json_response(matches)

    if operation == "find_number":
        name, error = validate_non_empty_string(arguments.get("name"), "name")
        if error:
            return validation_error(error)
        contacts = await _module("contacts")
        numbers = await contacts.find_number(name)
        if numbers is None:
            return contact_not_found(name, await contacts.suggest(name))
        if not numbers:
            return text_response(f"Contacts matching '{name}' have no phone numbers.")
        return json_response({"name": name, "phone_numbers": numbers})

    if operation == "lookup_phone":
        phone, error = validate_non_empty_string(arguments.get("phone"), "phone")
        if error:
            return validation_error(error)
        contacts = await _module("contacts")
        display_name = await contacts.find_contact_by_phone(phone)
        if display_name is None:
            return text_response(f"No contact found for phone number {phone}.")
        return json_response({"display_name": display_name})

    contacts = await _module("contacts")
    numbers = await contacts.get_all_numbers()
    if not numbers:
        return empty_result("contacts", hint="Contacts may have timed out; try again.")
    return json_response(numbers)


async def handle_notes(arguments: dict) -> list[types.TextContent]:
    """
    Handle the notes tool.

    Args:
        arguments: {"operation": str, "query": str, "title": str, "body": str, "folder_name": str}
    """
    operation, error = _operation("notes", arguments)
    if error:
        return validation_error(error)

    if operation == "list":
        notes = await _module("notes")
        return records_response("notes", await notes.get_all_notes())

    if operation == "search":
        query, error = validate_non_empty_string(arguments.get("query"), "query")
        if error:
            return validation_error(error)
        notes = await _module("notes")
        return records_response("notes", await notes.find_note(query), f" matching '{query}'")

    if operation == "create":
        title, error = validate_non_empty_string(arguments.get("title"), "title")
        if error:
            return validation_error(error)
        body, error = validate_non_empty_string(arguments.get("body"), "body")
        if error:
            return validation_error(error)
        folder, error = validate_optional_string(arguments.get("folder_name"), "folder_name")
        if error:
            return validation_error(error)
        notes = await _module("notes")
        result = await notes.create_note(title, body, folder)
        message = f"Created note '{result.name}' in folder '{result.folder_name}'"
        if result.used_default_folder:
            message += " (requested folder not found, used the default folder)"
        return success_response(message)

    folder, error = validate_non_empty_string(arguments.get("folder_name"), "folder_name")
    if error:
        return validation_error(error)
    notes = await _module("notes")
    return records_response("notes", await notes.get_notes_from_folder(folder), f" in folder '{folder}'")


async def handle_messages(arguments: dict) -> list[types.TextContent]:
    """
    Handle the messages tool.

    Args:
        arguments: {"operation": str, "phone": str, "message": str,
                    "scheduled_time": str, "id": int, "limit": int}
    """
    operation, error = _operation("messages", arguments)
    if error:
        return validation_error(error)

    max_messages = config["limits"]["max_messages"]

    if operation == "send":
        phone, error = validate_non_empty_string(arguments.get("phone"), "phone")
        if error:
            return validation_error(error)
        message, error = validate_non_empty_string(arguments.get("message"), "message")
        if error:
            return validation_error(error)
        messages = await _module("messages")
        return success_response(await messages.send_message(phone, message), f"Message: {message}")

    if operation == "read":
        phone, error = validate_non_empty_string(arguments.get("phone"), "phone")
        if error:
            return validation_error(error)
        limit, error = validate_limit(arguments, max_val=max_messages)
        if error:
            return validation_error(error)
        messages = await _module("messages")
        return records_response(
            "messages", await messages.read_messages(phone, limit), f" with {phone}",
            hint="Reading message history requires Full Disk Access."
        )

    if operation == "unread":
        limit, error = validate_limit(arguments, max_val=max_messages)
        if error:
            return validation_error(error)
        messages = await _module("messages")
        return records_response("unread messages", await messages.get_unread_messages(limit))

    if operation == "schedule":
        phone, error = validate_non_empty_string(arguments.get("phone"), "phone")
        if error:
            return validation_error(error)
        message, error = validate_non_empty_string(arguments.get("message"), "message")
        if error:
            return validation_error(error)
        fire_at, error = validate_datetime(arguments.get("scheduled_time"), "scheduled_time")
        if error:
            return validation_error(error)
        if fire_at <= datetime.now():
            return validation_error(f"Cannot schedule message in the past: {fire_at.isoformat()}")
        messages = await _module("messages")
        action = messages.schedule_message(phone, message, fire_at)
        return success_response(
            f"Scheduled message #{action.id} to {action.target_address} at {action.fire_at.isoformat()}",
            "Scheduled messages are kept in memory and are lost if the server stops."
        )

    if operation == "list_scheduled":
        messages = await _module("messages")
        return records_response("scheduled messages", messages.list_scheduled())

    if arguments.get("id") is None:
        return validation_error("Missing required parameter: id")
    action_id, error = validate_positive_int(arguments.get("id"), "id", max_val=10 ** 9)
    if error:
        return validation_error(error)
    messages = await _module("messages")
    if not messages.cancel_scheduled(action_id):
        return text_response(f"No pending scheduled message with ID {action_id}.")
    return success_response(f"Cancelled scheduled message #{action_id}")


async def handle_mail(arguments: dict) -> list[types.TextContent]:
    """
    Handle the mail tool.

    Args:
        arguments: {"operation": str, "query": str, "account": str, "to": str,
                    "subject": str, "body": str, "cc": str, "bcc": str, "limit": int}
    """
    operation, error = _operation("mail", arguments)
    if error:
        return validation_error(error)

    max_emails = config["limits"]["max_emails"]

    if operation == "unread":
        limit, error = validate_limit(arguments, max_val=max_emails)
        if error:
            return validation_error(error)
        mail = await _module("mail")
        return records_response("unread emails", await mail.get_unread_mails(limit))

    if operation == "search":
        query, error = validate_non_empty_string(arguments.get("query"), "query")
        if error:
            return validation_error(error)
        limit, error = validate_limit(arguments, max_val=max_emails)
        if error:
            return validation_error(error)
        mail = await _module("mail")
        return records_response("emails", await mail.search_mails(query, limit), f" matching '{query}'")

    if operation == "send":
        fields = {}
        for field in ("to", "subject", "body"):
            fields[field], error = validate_non_empty_string(arguments.get(field), field)
            if error:
                return validation_error(error)
        for field in ("cc", "bcc"):
            fields[field], error = validate_optional_string(arguments.get(field), field)
            if error:
                return validation_error(error)
        mail = await _module("mail")
        return success_response(await mail.send_mail(**fields))

    if operation == "mailboxes":
        account, error = validate_optional_string(arguments.get("account"), "account")
        if error:
            return validation_error(error)
        mail = await _module("mail")
        if account:
            boxes = await mail.get_mailboxes_for_account(account)
        else:
            boxes = await mail.get_mailboxes()
        return json_response(boxes) if boxes else empty_result("mailboxes")

    if operation == "accounts":
        mail = await _module("mail")
        accounts = await mail.get_accounts()
        return json_response(accounts) if accounts else empty_result("mail accounts")

    account, error = validate_non_empty_string(arguments.get("account"), "account")
    if error:
        return validation_error(error)
    limit, error = validate_limit(arguments, max_val=max_emails)
    if error:
        return validation_error(error)
    mail = await _module("mail")
    return records_response("emails", await mail.get_latest_mails(account, limit), f" in {account}")


async def handle_reminders(arguments: dict) -> list[types.TextContent]:
    """
    Handle the reminders tool.

    Args:
        arguments: {"operation": str, "query": str, "name": str,
                    "list_name": str, "notes": str, "due_date": str}
    """
    operation, error = _operation("reminders", arguments)
    if error:
        return validation_error(error)

    if operation == "lists":
        list_name, error = validate_optional_string(arguments.get("list_name"), "list_name")
        if error:
            return validation_error(error)
        reminders = await _module("reminders")
        if list_name:
            return records_response(
                "reminders", await reminders.get_all_reminders(list_name), f" in list '{list_name}'"
            )
        return records_response("reminder lists", await reminders.get_all_lists())

    if operation == "search":
        query, error = validate_non_empty_string(arguments.get("query"), "query")
        if error:
            return validation_error(error)
        reminders = await _module("reminders")
        return records_response("reminders", await reminders.search_reminders(query), f" matching '{query}'")

    if operation == "create":
        name, error = validate_non_empty_string(arguments.get("name"), "name")
        if error:
            return validation_error(error)
        list_name, error = validate_optional_string(arguments.get("list_name"), "list_name")
        if error:
            return validation_error(error)
        notes, error = validate_optional_string(arguments.get("notes"), "notes")
        if error:
            return validation_error(error)
        due_date, error = validate_datetime(arguments.get("due_date"), "due_date", required=False)
        if error:
            return validation_error(error)
        reminders = await _module("reminders")
        reminder = await reminders.create_reminder(name, list_name, notes, due_date)
        return success_response(f"Created reminder '{reminder.name}' in list '{reminder.list_name}'")

    query, error = validate_non_empty_string(arguments.get("query"), "query")
    if error:
        return validation_error(error)
    reminders = await _module("reminders")
    return json_response(await reminders.open_reminder(query))


async def handle_calendar(arguments: dict) -> list[types.TextContent]:
    """
    Handle the calendar tool.

    Args:
        arguments: {"operation": str, "query": str, "title": str, "start_date": str,
                    "end_date": str, "location": str, "notes": str, "is_all_day": bool,
                    "calendar_name": str, "event_id": str, "limit": int}
    """
    operation, error = _operation("calendar", arguments)
    if error:
        return validation_error(error)

    max_events = config["limits"]["max_events"]

    if operation in ("events", "search"):
        query = None
        if operation == "search":
            query, error = validate_non_empty_string(arguments.get("query"), "query")
            if error:
                return validation_error(error)
        limit, error = validate_limit(arguments, default=max_events, max_val=max_events)
        if error:
            return validation_error(error)
        from_date, error = validate_datetime(arguments.get("start_date"), "start_date", required=False)
        if error:
            return validation_error(error)
        to_date, error = validate_datetime(arguments.get("end_date"), "end_date", required=False)
        if error:
            return validation_error(error)
        calendar = await _module("calendar")
        if query is None:
            return records_response("events", await calendar.get_events(limit, from_date, to_date))
        return records_response(
            "events", await calendar.search_events(query, limit, from_date, to_date), f" matching '{query}'"
        )

    if operation == "create":
        title, error = validate_non_empty_string(arguments.get("title"), "title")
        if error:
            return validation_error(error)
        start_date, error = validate_datetime(arguments.get("start_date"), "start_date")
        if error:
            return validation_error(error)
        end_date, error = validate_datetime(arguments.get("end_date"), "end_date")
        if error:
            return validation_error(error)
        if end_date <= start_date:
            return validation_error("End date must be after start date")
        optional = {}
        for field in ("location", "notes", "calendar_name"):
            optional[field], error = validate_optional_string(arguments.get(field), field)
            if error:
                return validation_error(error)
        calendar = await _module("calendar")
        event_id = await calendar.create_event(
            title, start_date, end_date,
            is_all_day=bool(arguments.get("is_all_day", False)),
            **optional
        )
        return success_response(f"Event '{title}' created", f"Event ID: {event_id}")

    event_id, error = validate_non_empty_string(arguments.get("event_id"), "event_id")
    if error:
        return validation_error(error)
    calendar = await _module("calendar")
    return json_response(await calendar.open_event(event_id))


async def handle_maps(arguments: dict) -> list[types.TextContent]:
    """
    Handle the maps tool.

    Args:
        arguments: {"operation": str, "query": str, "from_address": str,
                    "to_address": str, "transport_type": str, "name": str,
                    "address": str, "guide_name": str}
    """
    operation, error = _operation("maps", arguments)
    if error:
        return validation_error(error)

    if operation == "search":
        query, error = validate_non_empty_string(arguments.get("query"), "query")
        if error:
            return validation_error(error)
        maps = await _module("maps")
        return json_response(await maps.search_locations(query))

    if operation == "directions":
        from_address, error = validate_non_empty_string(arguments.get("from_address"), "from_address")
        if error:
            return validation_error(error)
        to_address, error = validate_non_empty_string(arguments.get("to_address"), "to_address")
        if error:
            return validation_error(error)
        transport, error = validate_enum(
            arguments.get("transport_type"), "transport_type",
            ["driving", "walking", "transit"], default="driving"
        )
        if error:
            return validation_error(error)
        maps = await _module("maps")
        return json_response(await maps.get_directions(from_address, to_address, transport))

    if operation == "guides":
        maps = await _module("maps")
        return json_response(await maps.list_guides())

    if operation == "create_guide":
        guide_name, error = validate_non_empty_string(arguments.get("guide_name"), "guide_name")
        if error:
            return validation_error(error)
        maps = await _module("maps")
        return json_response(await maps.create_guide(guide_name))

    address, error = validate_non_empty_string(arguments.get("address"), "address")
    if error:
        return validation_error(error)

    if operation == "add_to_guide":
        guide_name, error = validate_non_empty_string(arguments.get("guide_name"), "guide_name")
        if error:
            return validation_error(error)
        maps = await _module("maps")
        return json_response(await maps.add_to_guide(address, guide_name))

    name, error = validate_non_empty_string(arguments.get("name"), "name")
    if error:
        return validation_error(error)
    maps = await _module("maps")
    if operation == "save":
        return json_response(await maps.save_location(name, address))
    return json_response(await maps.drop_pin(name, address))


async def handle_check_access(arguments: dict) -> list[types.TextContent]:
    """Probe automation access for one application; never cached."""
    app_name, error = validate_enum(arguments.get("app_name"), "app_name", APP_NAMES)
    if error:
        return validation_error(error)
    _get_loader()
    result = await gate.probe(app_name)
    return json_response({"app_name": app_name, **result.to_dict()})


async def handle_server_status(arguments: dict) -> list[types.TextContent]:
    status = _get_loader().status()
    status["version"] = config["version"]
    status["integrations"] = sorted(INTEGRATIONS)
    status["abandoned_dispatches"] = invoker.abandoned_count
    return json_response(status)


async def main():
    """Run the MCP server."""
    cfg = load_config()
    log_file = setup_logging(cfg)
    logger.info("Starting Apple PIM MCP Server...")
    logger.info(f"Server name: {cfg['server_name']}")
    logger.info(f"Version: {cfg['version']}")
    logger.info(f"Logging to {log_file}")

    init_components(cfg)

    # Eager loading runs alongside the transport; early calls wait for it to settle.
    startup = asyncio.ensure_future(loader.start())

    async with stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options()
        )

    if not startup.done():
        startup.cancel()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
