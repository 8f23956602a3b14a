"""Data models for the FleetTrack engine."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ResourceRef:
    """A (type, id) reference to another resource."""
    type: str
    id: str


@dataclass(frozen=True)
class Resource:
    """Immutable snapshot of one JSON:API resource (vehicle, route, trip, stop)."""
    type: str
    id: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    relationships: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> "Resource":
        """
        Build a Resource from a JSON:API resource object.

        Args:
            payload: Dict with "type", "id" and optional "attributes"/"relationships".

        Returns:
            Resource instance.
        """
        return cls(
            type=str(payload.get("type") or ""),
            id=str(payload.get("id") or ""),
            attributes=dict(payload.get("attributes") or {}),
            relationships=dict(payload.get("relationships") or {}),
        )

    def attr(self, name: str, default: Any = None) -> Any:
        """Return an attribute value, or default when missing or null."""
        value = self.attributes.get(name)
        return default if value is None else value

    def related(self, name: str) -> Optional[ResourceRef]:
        """Return the reference held by a relationship, or None."""
        relationship = self.relationships.get(name) or {}
        data = relationship.get("data") if isinstance(relationship, dict) else None
        if not isinstance(data, dict) or data.get("id") is None:
            return None
        return ResourceRef(type=str(data.get("type") or name), id=str(data["id"]))

    def related_id(self, name: str) -> Optional[str]:
        """Return the id referenced by a relationship, or None."""
        ref = self.related(name)
        return ref.id if ref else None


@dataclass(frozen=True)
class Option:
    """A selection-widget option."""
    value: str
    label: str
    color: Optional[str] = None


@dataclass(frozen=True)
class PageCursor:
    """Offset cursor for forward-only paging."""
    page_size: int
    offset: int = 0
    has_more: bool = True

    @property
    def next_offset(self) -> int:
        return self.offset + self.page_size

    def advance(self, offset: int, received: int) -> "PageCursor":
        """Return the cursor after a page at `offset` returned `received` records."""
        return replace(self, offset=offset, has_more=received >= self.page_size)

    def reset(self, has_more: bool = True) -> "PageCursor":
        return replace(self, offset=0, has_more=has_more)


@dataclass(frozen=True)
class FilterState:
    """Route and trip constraints. An empty list means no constraint."""
    routes: List[str] = field(default_factory=list)
    trips: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.routes and not self.trips


@dataclass(frozen=True)
class RefreshState:
    """Loading/error bookkeeping for one data stream."""
    loading: bool = False
    error: Optional[str] = None
    last_updated: Optional[datetime] = None


@dataclass(frozen=True)
class VehiclePage:
    """Result of one single-page vehicle fetch."""
    vehicles: List[Resource]
    included: List[Resource]
    has_more: bool
    total_items: int
