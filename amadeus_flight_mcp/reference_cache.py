"""Process-lifetime memoization of airport and airline lookups."""

import logging
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Lookup = Callable[[str], Awaitable[List[Dict[str, Any]]]]


class ReferenceCache(Generic[T]):
    """
    Code -> entity cache backed by a vendor lookup.

    Unbounded and never evicted: reference data does not change within a
    session and the code space is small. Concurrent misses for the same code
    each call the lookup; the last insert wins with an identical value.
    """

    def __init__(self, name: str, lookup: Lookup, convert: Callable[[Dict[str, Any]], T]):
        self.name = name
        self._lookup = lookup
        self._convert = convert
        self._entries: Dict[str, T] = {}

    def __contains__(self, code: str) -> bool:
        return code in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def resolve(self, code: str) -> Optional[T]:
        """Return the entity for ``code``, or None if the vendor cannot resolve it."""
        if code in self._entries:
            logger.debug("%s cache hit: %s", self.name, code)
            return self._entries[code]

        logger.debug("%s cache miss: %s", self.name, code)
        try:
            records = await self._lookup(code)
        except Exception as e:
            # Not cached, so a later call retries the lookup
            logger.error("Error getting %s %s: %s", self.name, code, e)
            return None

        if not records:
            return None

        entity = self._convert(records[0])
        self._entries[code] = entity
        return entity
