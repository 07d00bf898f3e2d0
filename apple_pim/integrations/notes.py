"""
Notes integration.

Reads enumerate at most max_items notes and clip note bodies to
max_content characters inside the script, so a large library cannot
blow the command timeout.
"""

import html
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from apple_pim.applescript import (
    RECORD_HANDLERS,
    SEPARATOR_PRELUDE,
    escape_applescript_string,
    parse_records,
    parse_sentinel,
)
from apple_pim.errors import InvalidInputError, NativeExecutionError
from apple_pim.integrations.base import AppIntegration

logger = logging.getLogger(__name__)

NOTE_FIELDS = ["name", "content", "folder"]


@dataclass
class Note:
    name: str
    content: str
    folder: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CreateNoteResult:
    """Outcome of create_note; used_default is True when the note landed in the default folder."""
    name: str
    folder_name: str
    used_default_folder: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def body_to_html(body: str) -> str:
    """Notes stores bodies as HTML; keep line breaks visible."""
    return html.escape(body).replace("\n", "<br>")


class NotesIntegration(AppIntegration):
    app_name = "Notes"

    def __init__(self, invoker, gate, config=None):
        super().__init__(invoker, gate, config)
        self.default_folder = self.config["defaults"]["notes_folder"]

    def _notes_script(self, filter_clause: str = "", search_prelude: str = "") -> str:
        return RECORD_HANDLERS + SEPARATOR_PRELUDE + search_prelude + f'''set output to ""
set noteCount to 0
tell application "Notes"
    repeat with f in folders
        if noteCount >= {self.max_items} then exit repeat
        set folderName to name of f
        repeat with n in notes of f
            if noteCount >= {self.max_items} then exit repeat
            try
                set noteName to name of n
                set noteContent to plaintext of n
                {filter_clause}
                set output to output & my txt(noteName) & US & my clip(noteContent, {self.max_content}) & US & folderName & RS
                set noteCount to noteCount + 1
            end try
        end repeat
    end repeat
end tell
return output'''

    @staticmethod
    def _to_notes(output: Optional[str]) -> List[Note]:
        return [Note(**row) for row in parse_records(output, NOTE_FIELDS)]

    async def get_all_notes(self) -> List[Note]:
        """Notes from every folder, up to max_items."""
        notes = self._to_notes(await self.query(self._notes_script()))
        logger.info(f"Retrieved {len(notes)} notes")
        return notes

    async def find_note(self, search_text: str) -> List[Note]:
        """
        Notes whose title or body contains search_text (case-insensitive).

        Blank search text returns [] without dispatching.
        """
        if not search_text or not search_text.strip():
            return []

        term = escape_applescript_string(search_text.strip())
        script = self._notes_script(
            filter_clause=(
                "if not ((noteName contains searchTerm) or (noteContent contains searchTerm)) "
                "then error number -128"
            ),
            search_prelude=f'set searchTerm to "{term}"\n',
        )
        notes = self._to_notes(await self.query(script))
        logger.info(f"Found {len(notes)} notes matching '{search_text}'")
        return notes

    async def create_note(
        self,
        title: str,
        body: str,
        folder_name: Optional[str] = None
    ) -> CreateNoteResult:
        """
        Create a note in folder_name (default from config).

        The default folder is created when missing. Any other missing folder
        falls back to the account's default Notes folder.

        Raises:
            InvalidInputError: Empty title or body
            NativeExecutionError: Notes reported an error
        """
        if not title or not title.strip():
            raise InvalidInputError("Note title cannot be empty")
        if not body or not body.strip():
            raise InvalidInputError("Note body cannot be empty")

        folder = folder_name or self.default_folder
        escaped_folder = escape_applescript_string(folder)
        escaped_title = escape_applescript_string(title.strip())
        escaped_body = escape_applescript_string(body_to_html(body))
        create_missing = "true" if folder == self.default_folder else "false"

        script = f'''tell application "Notes"
    set targetFolder to missing value
    repeat with f in folders
        if name of f is "{escaped_folder}" then
            set targetFolder to f
            exit repeat
        end if
    end repeat
    if targetFolder is missing value and {create_missing} then
        try
            set targetFolder to make new folder with properties {{name:"{escaped_folder}"}}
        end try
    end if
    try
        if targetFolder is missing value then
            make new note with properties {{name:"{escaped_title}", body:"{escaped_body}"}}
            return "SUCCESS:Notes:true"
        end if
        make new note at targetFolder with properties {{name:"{escaped_title}", body:"{escaped_body}"}}
        return "SUCCESS:{escaped_folder}:false"
    on error errMsg
        return "ERROR:" & errMsg
    end try
end tell'''

        detail = await self.command(script)
        actual_folder, _, used_default = detail.rpartition(":")
        result = CreateNoteResult(
            name=title.strip(),
            folder_name=actual_folder or "Notes",
            used_default_folder=used_default == "true",
        )
        logger.info(f"Created note '{result.name}' in {result.folder_name}")
        return result

    async def get_notes_from_folder(self, folder_name: str) -> List[Note]:
        """
        Notes in one folder, up to max_items.

        Raises:
            InvalidInputError: Empty folder name
            NativeExecutionError: Folder does not exist
        """
        if not folder_name or not folder_name.strip():
            raise InvalidInputError("Folder name cannot be empty")

        escaped_folder = escape_applescript_string(folder_name.strip())
        script = RECORD_HANDLERS + SEPARATOR_PRELUDE + f'''set output to ""
set noteCount to 0
tell application "Notes"
    set targetFolder to missing value
    repeat with f in folders
        if name of f is "{escaped_folder}" then
            set targetFolder to f
            exit repeat
        end if
    end repeat
    if targetFolder is missing value then return "ERROR:Folder not found"
    repeat with n in notes of targetFolder
        if noteCount >= {self.max_items} then exit repeat
        try
            set output to output & my txt(name of n) & US & my clip(plaintext of n, {self.max_content}) & US & "{escaped_folder}" & RS
            set noteCount to noteCount + 1
        end try
    end repeat
end tell
return "SUCCESS:" & output'''

        output = await self.query(script)
        if output is None:
            return []
        outcome = parse_sentinel(output)
        if not outcome.ok:
            raise NativeExecutionError(outcome.detail)
        return self._to_notes(outcome.value)
