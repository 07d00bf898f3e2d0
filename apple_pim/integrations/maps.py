"""
Maps integration.

Maps has no AppleScript dictionary; everything is done by opening
maps:// URLs. Search results shown in Maps cannot be read back, so
search_locations reports the query it opened and an empty location list.
Guides are created through the Maps "New Guide" menu command and are only
known to this process once created here.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from apple_pim.applescript import escape_applescript_string
from apple_pim.errors import InvalidInputError
from apple_pim.integrations.base import AppIntegration

logger = logging.getLogger(__name__)

# maps:// dirflg values
TRANSPORT_FLAGS = {
    "driving": "d",
    "walking": "w",
    "transit": "r",
}


@dataclass
class Location:
    name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def maps_url(**params: str) -> str:
    return "maps://?" + urlencode(params)


class MapsIntegration(AppIntegration):
    app_name = "Maps"

    def __init__(self, invoker, gate, config=None):
        super().__init__(invoker, gate, config)
        # Maps cannot list guides over AppleScript; track the ones made here
        self._guides: Dict[str, List[str]] = {}

    async def _open(self, url: str) -> None:
        script = f'''tell application "Maps" to activate
try
    open location "{escape_applescript_string(url)}"
    return "SUCCESS"
on error errMsg
    return "ERROR:" & errMsg
end try'''
        await self.command(script)
        logger.info(f"Opened {url}")

    async def search_locations(self, query: str) -> Dict[str, Any]:
        """Show query in Maps."""
        if not query or not query.strip():
            raise InvalidInputError("Search query cannot be empty")
        await self._open(maps_url(q=query.strip()))
        return {
            "success": True,
            "message": f"Searching Maps for '{query.strip()}'",
            "locations": [],
        }

    async def get_directions(
        self,
        from_address: str,
        to_address: str,
        transport_type: str = "driving"
    ) -> Dict[str, Any]:
        """
        Open directions between two addresses.

        Raises:
            InvalidInputError: Missing address or unknown transport type
        """
        if not from_address or not from_address.strip() or not to_address or not to_address.strip():
            raise InvalidInputError("Both from_address and to_address are required")
        flag = TRANSPORT_FLAGS.get((transport_type or "driving").lower())
        if flag is None:
            raise InvalidInputError(
                f"Invalid transport type '{transport_type}'. "
                f"Use one of: {', '.join(TRANSPORT_FLAGS)}"
            )

        await self._open(maps_url(saddr=from_address.strip(), daddr=to_address.strip(), dirflg=flag))
        return {
            "success": True,
            "message": f"Showing {transport_type} directions from {from_address} to {to_address}",
        }

    async def drop_pin(self, name: str, address: str) -> Dict[str, Any]:
        """Show a labelled location for address."""
        if not name or not name.strip():
            raise InvalidInputError("Location name cannot be empty")
        if not address or not address.strip():
            raise InvalidInputError("Address cannot be empty")

        await self._open(maps_url(q=name.strip(), address=address.strip()))
        return {
            "success": True,
            "message": f"Dropped pin for '{name.strip()}' at {address.strip()}",
            "location": Location(name=name.strip(), address=address.strip()).to_dict(),
        }

    async def save_location(self, name: str, address: str) -> Dict[str, Any]:
        """
        Show address in Maps so it can be added to Favorites.

        Maps has no scripting interface for favorites; the location is
        opened and the user confirms the save in Maps.
        """
        if not name or not name.strip():
            raise InvalidInputError("Location name cannot be empty")
        if not address or not address.strip():
            raise InvalidInputError("Address cannot be empty")

        await self._open(maps_url(q=address.strip()))
        return {
            "success": True,
            "message": f"Showing '{name.strip()}' at {address.strip()}. Use 'Add to Favorites' in Maps to save it.",
        }

    async def list_guides(self) -> Dict[str, Any]:
        """Open the guides view; also report the guides created by this server."""
        await self._open(maps_url(show="guides"))
        guides = sorted(self._guides)
        return {
            "success": True,
            "message": f"Opened guides in Maps ({len(guides)} created this session)",
            "guides": guides,
        }

    async def create_guide(self, guide_name: str) -> Dict[str, Any]:
        """Create a guide through the Maps "New Guide" menu command."""
        if not guide_name or not guide_name.strip():
            raise InvalidInputError("Guide name cannot be empty")
        guide_name = guide_name.strip()
        if guide_name in self._guides:
            return {"success": False, "message": f"Guide '{guide_name}' already exists"}

        script = f'''tell application "Maps" to activate
try
    delay 1
    tell application "System Events" to tell process "Maps"
        keystroke "n" using {{shift down, command down}}
        delay 1
        keystroke "{escape_applescript_string(guide_name)}"
        key code 36
    end tell
    return "SUCCESS"
on error errMsg
    return "ERROR:" & errMsg
end try'''
        await self.command(script)
        self._guides[guide_name] = []
        logger.info(f"Created Maps guide '{guide_name}'")
        return {"success": True, "message": f"Created guide '{guide_name}'"}

    async def add_to_guide(self, address: str, guide_name: str) -> Dict[str, Any]:
        """
        Show address in Maps for adding to guide_name.

        Fails without touching Maps when the guide was not created through
        create_guide.
        """
        if not address or not address.strip():
            raise InvalidInputError("Address cannot be empty")
        if not guide_name or not guide_name.strip():
            raise InvalidInputError("Guide name cannot be empty")
        guide_name = guide_name.strip()
        if guide_name not in self._guides:
            return {"success": False, "message": f"Guide '{guide_name}' not found"}

        await self._open(maps_url(q=address.strip()))
        self._guides[guide_name].append(address.strip())
        return {
            "success": True,
            "message": f"Showing {address.strip()}. Use 'Add to Guide' in Maps and choose '{guide_name}'.",
        }
