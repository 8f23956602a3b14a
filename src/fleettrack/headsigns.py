"""Group trip records by headsign while keeping every underlying trip id."""

from typing import Dict, FrozenSet, Iterable, List, Optional

from .models import Option, Resource


def headsign_label(trip: Resource) -> str:
    """Display label for a trip: headsign, else name, else the trip id."""
    return trip.attr("headsign") or trip.attr("name") or trip.id


class HeadsignGroups:
    """
    Mapping of headsign label -> set of trip ids, plus one Option per label.

    Instances are never mutated after construction; merge() returns a new one.
    """

    def __init__(self, trip_ids: Optional[Dict[str, Iterable[str]]] = None, options: Optional[List[Option]] = None):
        self._trip_ids: Dict[str, FrozenSet[str]] = {
            label: frozenset(ids) for label, ids in (trip_ids or {}).items()
        }
        if options is None:
            options = [Option(value=label, label=label) for label in self._trip_ids]
        self._options = list(options)

    @classmethod
    def from_trips(cls, trips: Iterable[Resource]) -> "HeadsignGroups":
        """
        Group one page of trips.

        The first trip seen with a label creates its option; later trips with the
        same label only extend that label's id set.
        """
        trip_ids: Dict[str, set] = {}
        options: List[Option] = []
        for trip in trips:
            label = headsign_label(trip)
            if label not in trip_ids:
                trip_ids[label] = set()
                options.append(Option(value=label, label=label))
            trip_ids[label].add(trip.id)
        return cls(trip_ids, options)

    def merge(self, other: "HeadsignGroups") -> "HeadsignGroups":
        """Union id sets per label; known labels keep their option position."""
        trip_ids: Dict[str, set] = {label: set(ids) for label, ids in self._trip_ids.items()}
        for label, ids in other._trip_ids.items():
            trip_ids.setdefault(label, set()).update(ids)

        by_label: Dict[str, Option] = {option.label: option for option in self._options}
        for option in other._options:
            by_label[option.label] = option
        return HeadsignGroups(trip_ids, list(by_label.values()))

    @property
    def options(self) -> List[Option]:
        return list(self._options)

    @property
    def labels(self) -> List[str]:
        return [option.label for option in self._options]

    def trip_ids(self, label: str) -> FrozenSet[str]:
        """Trip ids grouped under a label (empty if the label is unknown)."""
        return self._trip_ids.get(label, frozenset())

    def translate(self, labels: Iterable[str]) -> List[str]:
        """
        Expand selected labels into the trip ids the service filters on.

        Unknown labels contribute nothing. The result is sorted for stable queries.
        """
        selected = set()
        for label in labels:
            selected |= self.trip_ids(label)
        return sorted(selected)

    def as_dict(self) -> Dict[str, List[str]]:
        return {label: sorted(ids) for label, ids in self._trip_ids.items()}

    def __len__(self) -> int:
        return len(self._trip_ids)

    def __contains__(self, label: str) -> bool:
        return label in self._trip_ids

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeadsignGroups):
            return NotImplemented
        return self._trip_ids == other._trip_ids and self._options == other._options

    def __repr__(self) -> str:
        return f"HeadsignGroups({self.as_dict()!r})"
