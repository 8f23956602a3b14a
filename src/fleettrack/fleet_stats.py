"""Fleet-wide status summaries for dashboard and map views."""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

import pandas as pd

from .models import Resource

STATUS_IN_TRANSIT = "IN_TRANSIT_TO"
STATUS_STOPPED = "STOPPED_AT"
STATUS_INCOMING = "INCOMING_AT"
ALL_STATUSES = "all"

FRAME_COLUMNS = [
    "id",
    "label",
    "current_status",
    "latitude",
    "longitude",
    "speed",
    "bearing",
    "updated_at",
    "route_id",
    "trip_id",
    "stop_id",
]


@dataclass(frozen=True)
class FleetStats:
    """Vehicle counts by status."""
    total: int
    in_transit: int
    stopped: int
    incoming: int
    operating_percentage: int  # in transit + incoming, as a rounded percentage


def vehicles_frame(vehicles: Iterable[Resource]) -> pd.DataFrame:
    """
    Tabulate vehicles, one row per vehicle in input order.

    Missing attributes become NaN/NaT; updated_at is parsed to UTC timestamps.
    """
    rows = [
        {
            "id": vehicle.id,
            "label": vehicle.attr("label"),
            "current_status": vehicle.attr("current_status"),
            "latitude": vehicle.attr("latitude"),
            "longitude": vehicle.attr("longitude"),
            "speed": vehicle.attr("speed"),
            "bearing": vehicle.attr("bearing"),
            "updated_at": vehicle.attr("updated_at"),
            "route_id": vehicle.related_id("route"),
            "trip_id": vehicle.related_id("trip"),
            "stop_id": vehicle.related_id("stop"),
        }
        for vehicle in vehicles
    ]
    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    frame["updated_at"] = pd.to_datetime(frame["updated_at"], utc=True, errors="coerce")
    for column in ("latitude", "longitude", "speed", "bearing"):
        frame[column] = pd.to_numeric(frame[column], errors="coerce")
    return frame


def summarize(vehicles: Iterable[Resource]) -> FleetStats:
    """Count vehicles per status and the share currently operating."""
    frame = vehicles_frame(vehicles)
    counts = frame["current_status"].value_counts()
    total = len(frame)
    in_transit = int(counts.get(STATUS_IN_TRANSIT, 0))
    stopped = int(counts.get(STATUS_STOPPED, 0))
    incoming = int(counts.get(STATUS_INCOMING, 0))

    operating = 0
    if total:
        operating = int(math.floor((in_transit + incoming) / total * 100 + 0.5))

    return FleetStats(
        total=total,
        in_transit=in_transit,
        stopped=stopped,
        incoming=incoming,
        operating_percentage=operating,
    )


def recent_vehicles(vehicles: Iterable[Resource], limit: int = 5) -> List[Resource]:
    """Most recently updated vehicles first; vehicles without a timestamp go last."""
    vehicles = list(vehicles)
    frame = vehicles_frame(vehicles)
    ordered = frame.sort_values("updated_at", ascending=False, na_position="last", kind="stable")
    return [vehicles[i] for i in ordered.index[:limit]]


def mappable_vehicles(vehicles: Iterable[Resource], status: Optional[str] = None) -> List[Resource]:
    """
    Vehicles that can be placed on a map, optionally limited to one status.

    Args:
        vehicles: Vehicle resources.
        status: e.g. "STOPPED_AT"; None or "all" keeps every status.
    """
    vehicles = list(vehicles)
    frame = vehicles_frame(vehicles)
    mask = frame["latitude"].notna() & frame["longitude"].notna()
    if status and status != ALL_STATUSES:
        mask &= frame["current_status"] == status
    return [vehicles[i] for i in frame.index[mask]]
