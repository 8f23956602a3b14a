"""Vehicle collection streams: one server-filtered page, or a full sweep."""

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from .api_client import TransitAPIClient, join_filter, page_params
from .included import IncludedIndex
from .models import FilterState, Resource, VehiclePage
from .pagination import estimate_total_items
from .poller import DEFAULT_INTERVAL, Poller
from .stream import FetchStream

logger = logging.getLogger(__name__)

VEHICLES_ENDPOINT = "/vehicles"
VEHICLE_INCLUDE = "route,trip,stop"
DEFAULT_PAGE_SIZE = 10
SWEEP_PAGE_SIZE = 500


def vehicle_query(page: int, page_size: int, filters: FilterState) -> Dict[str, Any]:
    """
    Build /vehicles query parameters for one page.

    Empty filter lists are omitted entirely so they never constrain the result.
    """
    params: Dict[str, Any] = page_params(page_size, (page - 1) * page_size)
    params["include"] = VEHICLE_INCLUDE
    if filters.routes:
        params["filter[route]"] = join_filter(filters.routes)
    if filters.trips:
        params["filter[trip]"] = join_filter(filters.trips)
    return params


def _resources(items: List[Any]) -> List[Resource]:
    return [Resource.from_json(item) for item in items if isinstance(item, dict)]


class VehiclePageFetcher(FetchStream):
    """Fetches a single page of vehicles with server-side route/trip filters."""

    fallback_error = "Failed to fetch vehicle data. Please try again."

    def __init__(
        self,
        client: TransitAPIClient,
        page_size: int = DEFAULT_PAGE_SIZE,
        refresh_interval: float = DEFAULT_INTERVAL,
    ):
        super().__init__(client)
        self.page = 1
        self.page_size = page_size
        self.filters = FilterState()
        self.active = False
        self.vehicles: List[Resource] = []
        self.included = IncludedIndex()
        self.has_more = False
        self.total_items = 0
        # Parameter changes trigger their own fetch, so ticks never fire on enable.
        self.poller = Poller(self.refresh, refresh_interval, call_on_mount=False)

    def configure(
        self,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        filters: Optional[FilterState] = None,
    ) -> Optional[asyncio.Task]:
        """
        Update the query. Fetches immediately if something changed and the stream is active.

        Returns:
            The fetch task, or None when nothing was fetched.
        """
        new_page = self.page if page is None else page
        new_size = self.page_size if page_size is None else page_size
        new_filters = self.filters if filters is None else replace(
            filters, routes=list(filters.routes), trips=list(filters.trips)
        )
        if new_page < 1 or new_size < 1:
            raise ValueError("page and page_size must be positive")

        changed = (new_page, new_size, new_filters) != (self.page, self.page_size, self.filters)
        self.page, self.page_size, self.filters = new_page, new_size, new_filters
        if changed and self.active:
            return self.refresh()
        return None

    def set_active(self, active: bool) -> Optional[asyncio.Task]:
        """Resume (fetch now and poll) or rest (stop polling) this stream."""
        if active == self.active:
            return None
        self.active = active
        if not active:
            self.poller.disable()
            return None
        self.poller.enable()
        return self.refresh()

    def refresh(self) -> asyncio.Task:
        """Fetch the configured page. Joins an in-flight fetch for the same query."""
        page, page_size, filters = self.page, self.page_size, self.filters
        key = (page, page_size, tuple(filters.routes), tuple(filters.trips))
        return self._launch(key, lambda: self.fetch_page(page, page_size, filters), self._apply)

    async def fetch_page(self, page: int, page_size: int, filters: FilterState) -> VehiclePage:
        """Issue exactly one /vehicles request for the given page."""
        document = await self.client.fetch(VEHICLES_ENDPOINT, vehicle_query(page, page_size, filters))
        vehicles = _resources(document.get("data") or [])
        return VehiclePage(
            vehicles=vehicles,
            included=_resources(document.get("included") or []),
            has_more=len(vehicles) == page_size,
            total_items=estimate_total_items(page, page_size, len(vehicles)),
        )

    def get_included_item(self, type: str, id: Optional[str]) -> Optional[Resource]:
        return self.included.lookup(type, id)

    def _apply(self, result: VehiclePage) -> None:
        self.vehicles = result.vehicles
        self.included = IncludedIndex(result.included)
        self.has_more = result.has_more
        self.total_items = result.total_items


class VehicleSweepFetcher(FetchStream):
    """Pages through every vehicle with no filters, for purely local filtering."""

    fallback_error = "Failed to fetch vehicle data."

    def __init__(
        self,
        client: TransitAPIClient,
        page_size: int = SWEEP_PAGE_SIZE,
        refresh_interval: float = DEFAULT_INTERVAL,
    ):
        super().__init__(client)
        self.page_size = page_size
        self.enabled = False
        self.vehicles: List[Resource] = []
        self.included = IncludedIndex()
        self.poller = Poller(self.refresh, refresh_interval, call_on_mount=True)

    def set_enabled(self, enabled: bool) -> None:
        """Enabling sweeps immediately and then on every poll interval."""
        if enabled == self.enabled:
            return
        self.enabled = enabled
        if enabled:
            self.poller.enable()
        else:
            self.poller.disable()

    def refresh(self) -> Optional[asyncio.Task]:
        """Start a sweep, join the running one, or do nothing while disabled."""
        if not self.enabled:
            return None
        return self._launch("sweep", self.sweep, self._apply)

    async def sweep(self) -> Tuple[List[Resource], List[Resource]]:
        """Fetch pages at increasing offsets until one comes back short."""
        vehicles: List[Resource] = []
        included: List[Resource] = []
        offset = 0
        while True:
            params = page_params(self.page_size, offset)
            params["include"] = VEHICLE_INCLUDE
            document = await self.client.fetch(VEHICLES_ENDPOINT, params)
            data = _resources(document.get("data") or [])
            vehicles.extend(data)
            included.extend(_resources(document.get("included") or []))
            if len(data) < self.page_size:
                break
            offset += self.page_size

        logger.debug(f"Swept {len(vehicles)} vehicles up to offset {offset}")
        return vehicles, included

    def get_included_item(self, type: str, id: Optional[str]) -> Optional[Resource]:
        return self.included.lookup(type, id)

    def _apply(self, result: Tuple[List[Resource], List[Resource]]) -> None:
        vehicles, included = result
        self.vehicles = vehicles
        self.included = IncludedIndex(included)
