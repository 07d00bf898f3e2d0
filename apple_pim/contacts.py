"""
Contact resolution: name matching and phone number normalization.

Resolves a human-supplied name or phone number to records from the macOS
Contacts directory, tolerating inconsistent capitalization, emoji or
punctuation decoration in stored names, and country-code/punctuation
differences in phone numbers.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from fuzzywuzzy import fuzz

from apple_pim.access import AccessGate, access_instructions
from apple_pim.applescript import (
    SEPARATOR_PRELUDE,
    FailureKind,
    Invoker,
    parse_records,
)
from apple_pim.errors import AccessDeniedError

logger = logging.getLogger(__name__)

CONTACTS_APP = "Contacts"
DEFAULT_MIN_PHONE_SUFFIX = 10

# Separates multiple phone numbers inside one directory record
PHONE_SEPARATOR = "\x1d"

_DECORATION_RE = re.compile(r"[^\w\s]|_", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_phone_number(phone: Optional[str]) -> str:
    """
    Reduce a phone number to its canonical digits.

    Keeps decimal digits only (any script, converted to ASCII) and drops
    the "00" international dialing prefix, so that "+44 20 7946 0958" and
    "0044 20 7946 0958" collapse to the same form. Idempotent.

    Examples:
        "+1 (415) 555-1234" -> "14155551234"
        "415.555.1234" -> "4155551234"
        "0044 20 7946 0958" -> "442079460958"
    """
    if not phone:
        return ""
    digits = "".join(str(unicodedata.decimal(c)) for c in phone if c.isdecimal())
    while digits.startswith("00"):
        digits = digits[2:]
    return digits


def phones_equivalent(
    canonical1: str,
    canonical2: str,
    min_suffix: int = DEFAULT_MIN_PHONE_SUFFIX
) -> bool:
    """
    Compare two canonical phone numbers.

    Equal numbers match. Otherwise the shorter must be a suffix of the
    longer and have at least min_suffix digits, which tolerates a present
    or missing country code ("19999999999" vs "9999999999").
    """
    if not canonical1 or not canonical2:
        return False
    if canonical1 == canonical2:
        return True

    shorter, longer = sorted((canonical1, canonical2), key=len)
    return len(shorter) >= min_suffix and longer.endswith(shorter)


@dataclass(frozen=True)
class NormalizedPhone:
    raw: str
    canonical_digits: str

    @classmethod
    def from_raw(cls, raw: str) -> "NormalizedPhone":
        return cls(raw=raw, canonical_digits=normalize_phone_number(raw))


@dataclass
class ContactRecord:
    """A directory entry with its phone numbers in directory order."""
    display_name: str
    phone_numbers: List[NormalizedPhone] = field(default_factory=list)

    @classmethod
    def from_raw(cls, display_name: str, phones: List[str]) -> "ContactRecord":
        return cls(
            display_name=display_name,
            phone_numbers=[NormalizedPhone.from_raw(p) for p in phones if p.strip()]
        )

    def to_dict(self) -> dict:
        return {
            "display_name": self.display_name,
            "phone_numbers": [p.raw for p in self.phone_numbers],
        }


def strip_decoration(text: str) -> str:
    """
    Remove emoji and punctuation, collapse whitespace, lowercase.

    "🎉 Jane  O'Brien ✨" -> "jane obrien"
    """
    cleaned = _DECORATION_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", cleaned).strip().lower()


def _is_first_or_last(term: str, tokens: List[str]) -> bool:
    return bool(tokens) and term in (tokens[0], tokens[-1])


# A stage predicate receives (name_lower, name_clean, term_lower, term_clean)
StagePredicate = Callable[[str, str, str, str], bool]

MATCH_STAGES: List[Tuple[str, StagePredicate]] = [
    ("exact", lambda name, clean, term, cterm: name == term),
    ("exact_undecorated", lambda name, clean, term, cterm: clean == term),
    ("prefix", lambda name, clean, term, cterm: name.startswith(term)),
    ("contains", lambda name, clean, term, cterm: term in name),
    ("name_token", lambda name, clean, term, cterm: bool(cterm) and _is_first_or_last(cterm, clean.split())),
    ("token_substring", lambda name, clean, term, cterm: bool(cterm) and any(
        cterm in token for token in clean.split()
    )),
]


def match_contacts(
    term: str,
    directory: List[ContactRecord]
) -> Tuple[Optional[str], List[ContactRecord]]:
    """
    Apply the matching stages in order and stop at the first with results.

    Args:
        term: Search term (already known to be non-blank)
        directory: Contact records in directory order

    Returns:
        (stage_name, matches); stage_name is None when nothing matched.
        Matches keep directory order.
    """
    term_lower = _WHITESPACE_RE.sub(" ", term.strip()).lower()
    term_clean = strip_decoration(term)

    prepared = [
        (record, record.display_name.lower(), strip_decoration(record.display_name))
        for record in directory
    ]

    for stage_name, predicate in MATCH_STAGES:
        matches = [
            record for record, name_lower, name_clean in prepared
            if predicate(name_lower, name_clean, term_lower, term_clean)
        ]
        if matches:
            return stage_name, matches

    return None, []


def suggest_names(term: str, directory: List[ContactRecord], limit: int = 3, threshold: int = 60) -> List[str]:
    """
    Find close names for a "did you mean" hint when resolution fails.

    Uses fuzzywuzzy token_set_ratio (0-100); names below threshold are dropped.
    """
    if not term or not term.strip():
        return []

    scored = [
        (record.display_name, fuzz.token_set_ratio(term.lower(), record.display_name.lower()))
        for record in directory
    ]
    scored = [item for item in scored if item[1] >= threshold]
    scored.sort(key=lambda item: item[1], reverse=True)
    return [name for name, _ in scored[:limit]]


class ContactResolver:
    """
    Resolves names and phone numbers against the Contacts directory.

    The directory is fetched fresh for every request and never stored.
    """

    def __init__(
        self,
        invoker: Invoker,
        gate: AccessGate,
        max_contacts: int = 1000,
        min_phone_suffix: int = DEFAULT_MIN_PHONE_SUFFIX,
        timeout: Optional[float] = None
    ):
        """
        Args:
            invoker: AppleScript invoker
            gate: Access gate used before every directory fetch
            max_contacts: Maximum people enumerated per fetch
            min_phone_suffix: Minimum digits for suffix phone matching
            timeout: Directory fetch timeout (default: invoker default)
        """
        self.invoker = invoker
        self.gate = gate
        self.max_contacts = max_contacts
        self.min_phone_suffix = min_phone_suffix
        self.timeout = timeout

    def _directory_script(self) -> str:
        return SEPARATOR_PRELUDE + f'''set GS to (ASCII character 29)
set output to ""
set personCount to 0
tell application "Contacts"
    repeat with p in people
        if personCount >= {self.max_contacts} then exit repeat
        try
            set personName to name of p
            set phoneValues to value of phones of p
            set AppleScript's text item delimiters to GS
            set phoneText to phoneValues as text
            set AppleScript's text item delimiters to ""
            set output to output & personName & US & phoneText & RS
            set personCount to personCount + 1
        on error
            set AppleScript's text item delimiters to ""
        end try
    end repeat
end tell
return output'''

    async def get_directory(self) -> List[ContactRecord]:
        """
        Fetch every contact (up to max_contacts) in directory order.

        A timeout or native error degrades to an empty directory.

        Raises:
            AccessDeniedError: If Contacts automation is not permitted
        """
        await self.gate.require(CONTACTS_APP)

        outcome = await self.invoker.execute(
            self._directory_script(), app=CONTACTS_APP, timeout=self.timeout
        )
        if not outcome.ok:
            if outcome.kind is FailureKind.ACCESS_DENIED:
                raise AccessDeniedError(CONTACTS_APP, access_instructions(CONTACTS_APP))
            logger.warning(f"Contacts directory unavailable ({outcome.kind.value}): {outcome.detail}")
            return []

        directory = []
        for row in parse_records(outcome.value, ["name", "phones"]):
            if not row["name"]:
                continue
            directory.append(
                ContactRecord.from_raw(row["name"], row["phones"].split(PHONE_SEPARATOR))
            )

        logger.info(f"Fetched {len(directory)} contacts")
        return directory

    async def resolve(self, term: Optional[str]) -> List[ContactRecord]:
        """
        Resolve a search term to contact records.

        Blank terms return [] without touching the native layer.
        """
        if not term or not term.strip():
            return []

        directory = await self.get_directory()
        stage, matches = match_contacts(term, directory)
        if stage:
            logger.info(f"Resolved '{term}' to {len(matches)} contact(s) via {stage} match")
        else:
            logger.info(f"No contact matches '{term}'")
        return matches

    async def resolve_by_phone(self, phone: Optional[str]) -> Optional[ContactRecord]:
        """
        Find the first contact with a number equivalent to phone.

        Inputs without digits return None without touching the native layer.
        """
        query = normalize_phone_number(phone)
        if not query:
            return None

        for record in await self.get_directory():
            for number in record.phone_numbers:
                if phones_equivalent(query, number.canonical_digits, self.min_phone_suffix):
                    logger.info(f"Found contact by phone: {record.display_name}")
                    return record

        logger.info(f"No contact found for phone: {phone}")
        return None

    async def suggest(self, term: str, limit: int = 3) -> List[str]:
        """Close names for term from a fresh directory fetch."""
        if not term or not term.strip():
            return []
        return suggest_names(term, await self.get_directory(), limit=limit)
