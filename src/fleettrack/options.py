"""Page-at-a-time option loaders backing selection widgets."""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from .api_client import TransitAPIClient, join_filter, page_params
from .headsigns import HeadsignGroups
from .models import Option, PageCursor, Resource
from .stream import FetchStream

logger = logging.getLogger(__name__)

ROUTES_ENDPOINT = "/routes"
TRIPS_ENDPOINT = "/trips"
DEFAULT_OPTION_PAGE_SIZE = 20
TRIP_PAGE_SIZE = 100


class OptionLoader(FetchStream):
    """
    Loads options for one endpoint, a page at a time, strictly forward.

    The first page replaces the options; later pages (via load_more) append.
    Disabling the loader or switching endpoint throws all state away.
    """

    fallback_error = "Failed to load data. Please try again."

    def __init__(
        self,
        client: TransitAPIClient,
        endpoint: str,
        label_field: str,
        enabled: bool = True,
        page_size: int = DEFAULT_OPTION_PAGE_SIZE,
    ):
        """
        Initialize the loader. Nothing is fetched until reload() or set_enabled(True).

        Args:
            client: Service client.
            endpoint: Collection path, e.g. "/routes".
            label_field: Attribute used as the option label (falls back to the id).
            enabled: Whether the loader may fetch.
            page_size: Records requested per page.
        """
        super().__init__(client)
        self.endpoint = endpoint
        self.label_field = label_field
        self.enabled = enabled
        self.page_size = page_size
        self.options: List[Option] = []
        self.cursor = PageCursor(page_size=page_size)
        self._loaded = False

    @property
    def has_more(self) -> bool:
        return self.cursor.has_more

    def reload(self) -> Optional[asyncio.Task]:
        """Drop everything loaded so far and start again from offset 0."""
        self._supersede()
        self._reset_results()
        self._publish(loading=False, error=None)
        if not self.enabled:
            return None
        return self._fetch(0)

    def set_enabled(self, enabled: bool) -> Optional[asyncio.Task]:
        if enabled == self.enabled:
            return None
        self.enabled = enabled
        return self.reload()

    def set_endpoint(self, endpoint: str, label_field: Optional[str] = None) -> Optional[asyncio.Task]:
        """Point the loader at another collection; the old cursor is never reused."""
        label_field = label_field or self.label_field
        if endpoint == self.endpoint and label_field == self.label_field:
            return None
        self.endpoint = endpoint
        self.label_field = label_field
        return self.reload()

    def load_more(self) -> Optional[asyncio.Task]:
        """
        Fetch the next page.

        Returns:
            The fetch task, or None if there is nothing more, a fetch is already
            running, or the loader is disabled.
        """
        if not self.has_more or self.in_flight or not self.enabled:
            return None
        offset = self.cursor.next_offset if self._loaded else 0
        return self._fetch(offset)

    def to_option(self, record: Resource) -> Option:
        label = record.attr(self.label_field) or record.id
        return Option(value=record.id, label=str(label))

    def _reset_results(self) -> None:
        self.options = []
        self.cursor = self.cursor.reset()
        self._loaded = False

    def _params(self, offset: int) -> Dict[str, Any]:
        return page_params(self.page_size, offset)

    def _fetch(self, offset: int) -> asyncio.Task:
        endpoint = self.endpoint
        params = self._params(offset)

        async def work() -> List[Resource]:
            document = await self.client.fetch(endpoint, params)
            return [Resource.from_json(item) for item in document.get("data") or [] if isinstance(item, dict)]

        return self._launch((endpoint, offset), work, lambda records: self._apply(offset, records))

    def _apply(self, offset: int, records: List[Resource]) -> None:
        page_options = [self.to_option(record) for record in records]
        self.options = page_options if offset == 0 else self.options + page_options
        self.cursor = self.cursor.advance(offset, len(records))
        self._loaded = True


class RouteOptionLoader(OptionLoader):
    """Route options labelled by long name, then short name, carrying the route colour."""

    fallback_error = "Failed to fetch routes."

    def __init__(self, client: TransitAPIClient, enabled: bool = True, page_size: int = DEFAULT_OPTION_PAGE_SIZE):
        super().__init__(client, ROUTES_ENDPOINT, "long_name", enabled=enabled, page_size=page_size)

    def to_option(self, record: Resource) -> Option:
        label = record.attr("long_name") or record.attr("short_name") or record.id
        return Option(value=record.id, label=label, color=record.attr("color"))


class TripOptionLoader(OptionLoader):
    """
    Trip options for the selected routes, grouped by headsign.

    The service rejects unfiltered trip queries, so with no routes selected the
    loader holds no options and never contacts the service. Selecting other
    routes cancels whatever trip fetch is still running.
    """

    fallback_error = "Failed to fetch trips."

    def __init__(self, client: TransitAPIClient, page_size: int = TRIP_PAGE_SIZE):
        super().__init__(client, TRIPS_ENDPOINT, "headsign", enabled=False, page_size=page_size)
        self.routes: List[str] = []
        self.groups = HeadsignGroups()
        self.cursor = PageCursor(page_size=page_size, has_more=False)

    def set_routes(self, routes: Iterable[str]) -> Optional[asyncio.Task]:
        """
        Change the route filter and restart paging from offset 0.

        Returns:
            The fetch task, or None if the routes are unchanged or empty.
        """
        routes = list(routes)
        if routes == self.routes:
            return None
        self.routes = routes
        self.enabled = bool(routes)
        logger.debug(f"Trip options now filtered by routes {routes}")
        return self.reload()

    def translate(self, labels: Iterable[str]) -> List[str]:
        """Trip ids behind the selected headsign labels."""
        return self.groups.translate(labels)

    def _reset_results(self) -> None:
        super()._reset_results()
        self.groups = HeadsignGroups()
        self.cursor = self.cursor.reset(has_more=bool(self.routes))

    def _params(self, offset: int) -> Dict[str, Any]:
        params = page_params(self.page_size, offset)
        params["filter[route]"] = join_filter(self.routes)
        return params

    def _apply(self, offset: int, records: List[Resource]) -> None:
        page_groups = HeadsignGroups.from_trips(records)
        self.groups = page_groups if offset == 0 else self.groups.merge(page_groups)
        self.options = self.groups.options
        # A full page that yields no options at all is treated as exhausted.
        has_more = len(records) == self.page_size and len(page_groups.options) > 0
        self.cursor = PageCursor(page_size=self.page_size, offset=offset, has_more=has_more)
        self._loaded = True
