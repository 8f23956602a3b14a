"""Main FleetTracker class: filter state and mode switching for the vehicle list."""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, List, Optional

from .api_client import TransitAPIClient
from .models import FilterState, Resource
from .options import TRIP_PAGE_SIZE, RouteOptionLoader, TripOptionLoader
from .pagination import PageNumber, page_numbers
from .poller import DEFAULT_INTERVAL
from .vehicles import DEFAULT_PAGE_SIZE, VehiclePageFetcher, VehicleSweepFetcher

logger = logging.getLogger(__name__)

SEARCH_MIN_LENGTH = 2
FILTER_DIMENSIONS = ("routes", "trips")


@dataclass(frozen=True)
class FleetView:
    """What the presentation layer renders for the current state."""
    vehicles: List[Resource]
    total_items: int
    page: int
    page_size: int
    can_go_previous: bool
    can_go_next: bool
    page_numbers: List[PageNumber]
    loading: bool
    error: Optional[str]
    last_updated: Optional[datetime]
    searching: bool


def normalize_search(text: str) -> str:
    return (text or "").strip().lower()


def is_search_active(text: str) -> bool:
    """A search only kicks in from SEARCH_MIN_LENGTH characters (after trimming)."""
    return len(normalize_search(text)) >= SEARCH_MIN_LENGTH


def filter_by_membership(vehicles: Iterable[Resource], routes: List[str], trips: List[str]) -> List[Resource]:
    """
    Keep vehicles whose route and trip are in the given sets.

    An empty list places no constraint on that dimension. A vehicle without the
    relationship never matches a non-empty constraint.
    """
    vehicles = list(vehicles)
    if not routes and not trips:
        return vehicles

    route_set = set(routes)
    trip_set = set(trips)
    matched = []
    for vehicle in vehicles:
        route_id = vehicle.related_id("route")
        trip_id = vehicle.related_id("trip")
        if route_set and (route_id is None or route_id not in route_set):
            continue
        if trip_set and (trip_id is None or trip_id not in trip_set):
            continue
        matched.append(vehicle)
    return matched


def filter_by_search(vehicles: Iterable[Resource], text: str) -> List[Resource]:
    """Case-insensitive substring match against vehicle id and label."""
    needle = normalize_search(text)
    if not needle:
        return list(vehicles)
    return [
        vehicle
        for vehicle in vehicles
        if needle in vehicle.id.lower() or needle in str(vehicle.attr("label", "")).lower()
    ]


class FleetTracker:
    """
    Filterable, searchable, auto-refreshing view of the vehicle fleet.

    This class owns the filter state and decides, on every transition, how the
    vehicle list is produced:
    - Without an active search: one server-filtered page at a time.
    - With an active search: a full unfiltered sweep, filtered and paged locally.

    All setters are plain synchronous state transitions; any fetches they start
    run on the current event loop, so start() and the setters must be called
    from inside it.
    """

    def __init__(
        self,
        client: Optional[TransitAPIClient] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        refresh_interval: float = DEFAULT_INTERVAL,
        sweep_interval: float = DEFAULT_INTERVAL,
        trip_page_size: int = TRIP_PAGE_SIZE,
    ):
        """
        Initialize the tracker.

        Args:
            client: Service client. Built from environment variables if omitted.
            page_size: Vehicles per page.
            refresh_interval: Seconds between refreshes of the server-filtered page.
            sweep_interval: Seconds between full sweeps while searching.
            trip_page_size: Trips requested per page of trip options.
        """
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.client = client or TransitAPIClient.from_env()
        self.routes = RouteOptionLoader(self.client)
        self.trips = TripOptionLoader(self.client, page_size=trip_page_size)
        self.vehicles = VehiclePageFetcher(self.client, page_size=page_size, refresh_interval=refresh_interval)
        self.all_vehicles = VehicleSweepFetcher(self.client, refresh_interval=sweep_interval)

        self._filters = FilterState()
        self._search_text = ""
        self._page = 1
        self._page_size = page_size
        self._started = False

        self.trips.add_listener(self._on_trips_changed)

    @property
    def filters(self) -> FilterState:
        """Selected routes and selected trip headsign labels."""
        return self._filters

    @property
    def vehicle_filters(self) -> FilterState:
        """Filters as sent to the vehicle streams, with trip labels expanded to trip ids."""
        return FilterState(
            routes=list(self._filters.routes),
            trips=self.trips.translate(self._filters.trips),
        )

    @property
    def search_text(self) -> str:
        return self._search_text

    @property
    def searching(self) -> bool:
        return is_search_active(self._search_text)

    @property
    def page(self) -> int:
        return self._page

    @property
    def page_size(self) -> int:
        return self._page_size

    def start(self) -> None:
        """Load the first page of route options and begin refreshing vehicles."""
        logger.info("Starting fleet tracker")
        self._started = True
        self.routes.reload()
        self._sync()

    def stop(self) -> None:
        """Stop all polling and cancel every in-flight fetch."""
        self._started = False
        self.vehicles.set_active(False)
        self.all_vehicles.set_enabled(False)
        for stream in (self.routes, self.trips, self.vehicles, self.all_vehicles):
            stream.cancel()
        logger.info("Stopped fleet tracker")

    def set_filter(self, dimension: str, values: Iterable[str]) -> None:
        """
        Replace the selection for one filter dimension.

        Args:
            dimension: "routes" or "trips" (trip headsign labels).
            values: New selection; empty means no constraint.

        Raises:
            ValueError: If dimension is unknown.
        """
        if dimension not in FILTER_DIMENSIONS:
            raise ValueError(f"Unknown filter dimension '{dimension}'")

        values = list(values)
        if values == getattr(self._filters, dimension):
            return

        if dimension == "routes":
            # Trip labels picked under the old routes may not exist under the new ones.
            trips = [] if self._filters.routes else list(self._filters.trips)
            self._filters = FilterState(routes=values, trips=trips)
        else:
            self._filters = replace(self._filters, trips=values)
        self._page = 1
        self._sync()

    def set_search_text(self, text: str) -> None:
        """Update the search text; any change returns to the first page."""
        text = text or ""
        if text == self._search_text:
            return
        was_searching = self.searching
        self._search_text = text
        self._page = 1
        if was_searching != self.searching:
            logger.debug(f"Search {'activated' if self.searching else 'cleared'}")
        self._sync()

    def set_page(self, page: int) -> None:
        if page < 1:
            raise ValueError("page must be >= 1")
        if page == self._page:
            return
        self._page = page
        self._sync()

    def set_page_size(self, page_size: int) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        if page_size == self._page_size and self._page == 1:
            return
        self._page_size = page_size
        self._page = 1
        self._sync()

    def reset_all(self) -> None:
        """Clear routes, trips and search text and return to page 1 in one transition."""
        self._filters = FilterState()
        self._search_text = ""
        self._page = 1
        self._sync()

    def refresh_now(self) -> Optional[asyncio.Task]:
        """Refresh whichever vehicle stream currently feeds the view."""
        if self.searching:
            return self.all_vehicles.refresh()
        return self.vehicles.refresh()

    def view(self) -> FleetView:
        """
        Compute the vehicles to display and the pagination affordances.

        Returns:
            FleetView for the current page.
        """
        filters = self.vehicle_filters
        start = (self._page - 1) * self._page_size
        end = self._page * self._page_size

        if self.searching:
            stream = self.all_vehicles
            matched = filter_by_search(
                filter_by_membership(stream.vehicles, filters.routes, filters.trips),
                self._search_text,
            )
            rows = matched[start:end]
            total_items = len(matched)
            can_go_next = len(matched) > end
        else:
            stream = self.vehicles
            # The server already filtered; this pass only drops stray records.
            rows = filter_by_membership(stream.vehicles, filters.routes, filters.trips)
            total_items = stream.total_items
            can_go_next = stream.has_more

        return FleetView(
            vehicles=rows,
            total_items=total_items,
            page=self._page,
            page_size=self._page_size,
            can_go_previous=self._page > 1,
            can_go_next=can_go_next,
            # A local result has an exact total, so the last page is always known.
            page_numbers=page_numbers(
                self._page, total_items, self._page_size, can_go_next and not self.searching
            ),
            loading=stream.loading,
            error=stream.error,
            last_updated=stream.last_updated,
            searching=self.searching,
        )

    def get_included_item(self, type: str, id: Optional[str]) -> Optional[Resource]:
        """Look up a route/trip/stop from the snapshot that feeds the current view."""
        if self.searching:
            return self.all_vehicles.get_included_item(type, id)
        return self.vehicles.get_included_item(type, id)

    def _sync(self) -> None:
        if not self._started:
            return
        self.trips.set_routes(self._filters.routes)
        self._sync_vehicles()

    def _sync_vehicles(self) -> None:
        filters = self.vehicle_filters
        if self.searching:
            # Rest the paged stream first so the new parameters are only stored.
            self.vehicles.set_active(False)
            self.vehicles.configure(page=self._page, page_size=self._page_size, filters=filters)
            self.all_vehicles.set_enabled(True)
        else:
            self.all_vehicles.set_enabled(False)
            self.vehicles.configure(page=self._page, page_size=self._page_size, filters=filters)
            self.vehicles.set_active(True)

    def _on_trips_changed(self) -> None:
        # New headsign groups can change which trip ids the selected labels cover.
        if self._started:
            self._sync_vehicles()
