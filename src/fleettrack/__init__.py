"""FleetTrack - live transit fleet monitoring client for JSON:API services."""

__version__ = "0.1.0"

from .models import Resource, ResourceRef, Option, PageCursor, FilterState, RefreshState, VehiclePage
from .api_client import TransitAPIClient, ServiceError
from .poller import Poller
from .included import IncludedIndex
from .headsigns import HeadsignGroups, headsign_label
from .options import OptionLoader, RouteOptionLoader, TripOptionLoader
from .vehicles import VehiclePageFetcher, VehicleSweepFetcher
from .fleet_tracker import FleetTracker, FleetView

__all__ = [
    "FleetTracker",
    "FleetView",
    "TransitAPIClient",
    "ServiceError",
    "Poller",
    "VehiclePageFetcher",
    "VehicleSweepFetcher",
    "OptionLoader",
    "RouteOptionLoader",
    "TripOptionLoader",
    "HeadsignGroups",
    "headsign_label",
    "IncludedIndex",
    "Resource",
    "ResourceRef",
    "Option",
    "PageCursor",
    "FilterState",
    "RefreshState",
    "VehiclePage",
]
