"""
Contacts integration: name and phone lookups over the Contacts directory.
"""

import logging
from typing import Any, Dict, List, Optional

from apple_pim.contacts import CONTACTS_APP, ContactResolver
from apple_pim.integrations.base import AppIntegration

logger = logging.getLogger(__name__)


class ContactsIntegration(AppIntegration):
    """Thin wrapper exposing ContactResolver to the tool layer."""

    app_name = CONTACTS_APP

    def __init__(self, invoker, gate, config=None):
        super().__init__(invoker, gate, config)
        self.resolver = ContactResolver(
            invoker,
            gate,
            max_contacts=self.config["limits"]["max_contacts"],
            min_phone_suffix=self.config["contacts"]["min_phone_suffix"],
        )

    async def get_all_numbers(self) -> Dict[str, List[str]]:
        """Map every contact name to its phone numbers."""
        directory = await self.resolver.get_directory()
        return {
            record.display_name: [p.raw for p in record.phone_numbers]
            for record in directory
        }

    async def search(self, name: str) -> List[Dict[str, Any]]:
        """Contacts matching name, as dicts."""
        return [record.to_dict() for record in await self.resolver.resolve(name)]

    async def find_number(self, name: str) -> Optional[List[str]]:
        """
        All phone numbers of the contacts matching name.

        None when no contact matches; an empty list when the matches have
        no phone numbers.
        """
        matches = await self.resolver.resolve(name)
        if not matches:
            return None
        numbers = []
        for record in matches:
            numbers.extend(p.raw for p in record.phone_numbers)
        return numbers

    async def find_contact_by_phone(self, phone: str) -> Optional[str]:
        """Display name of the contact owning phone, or None."""
        record = await self.resolver.resolve_by_phone(phone)
        return record.display_name if record else None

    async def suggest(self, name: str) -> List[str]:
        return await self.resolver.suggest(name)
