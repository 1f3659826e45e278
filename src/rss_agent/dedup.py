"""Bounded memory of entry ids that have already produced events."""

import logging

logger = logging.getLogger(__name__)

MAX_SEEN_IDS = 500
MEMORY_KEY = "seen_ids"


class SeenIdCache:
    """Most-recently-seen-first list of entry ids, capped at a fixed size.

    Eviction is purely by insertion order: once the list grows past
    ``capacity`` the oldest id falls off the tail.
    """

    def __init__(self, seen_ids: list[str] | None = None, capacity: int = MAX_SEEN_IDS):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._ids: list[str] = list(dict.fromkeys(seen_ids or []))[:capacity]
        self._members: set[str] = set(self._ids)

    @classmethod
    def from_memory(cls, memory: dict, capacity: int = MAX_SEEN_IDS) -> "SeenIdCache":
        """Load the cache from an agent memory blob."""
        return cls(memory.get(MEMORY_KEY) or [], capacity=capacity)

    def to_memory(self, memory: dict) -> dict:
        """Write the cache back into an agent memory blob and return it."""
        memory[MEMORY_KEY] = self.seen_ids
        return memory

    @property
    def seen_ids(self) -> list[str]:
        return list(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._members

    def is_new_and_track(self, entry_id: str) -> bool:
        """Return True and remember the id if it has not been seen before."""
        if entry_id in self._members:
            return False

        self._ids.insert(0, entry_id)
        self._members.add(entry_id)
        while len(self._ids) > self.capacity:
            evicted = self._ids.pop()
            self._members.discard(evicted)
            logger.debug("Evicted seen id %s", evicted)
        return True
