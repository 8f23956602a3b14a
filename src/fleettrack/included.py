"""Lookup table for related entities returned alongside a primary collection."""

from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

from .models import Resource


class IncludedIndex:
    """Index of included resources keyed by (type, id). Built once per fetch."""

    def __init__(self, items: Iterable[Resource] = ()):
        self._items: Dict[Tuple[str, str], Resource] = {}
        for item in items:
            # Full sweeps repeat the same entity across pages; keep the first.
            self._items.setdefault((item.type, item.id), item)

    @classmethod
    def from_payload(cls, payload: Iterable[Dict[str, Any]]) -> "IncludedIndex":
        """Build an index from raw JSON:API "included" objects."""
        return cls(Resource.from_json(item) for item in payload if isinstance(item, dict))

    def lookup(self, type: str, id: Optional[str]) -> Optional[Resource]:
        """Return the included resource, or None if this snapshot does not have it."""
        if id is None:
            return None
        return self._items.get((type, id))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._items.values())
