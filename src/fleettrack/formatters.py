"""Human-readable renderings of optional vehicle fields."""

from datetime import datetime, timezone
from typing import Optional, Union

STATUS_LABELS = {
    "IN_TRANSIT_TO": "In Transit",
    "STOPPED_AT": "Stopped",
    "INCOMING_AT": "Incoming",
}
UNKNOWN = "Unknown"
NOT_AVAILABLE = "N/A"


def status_label(status: Optional[str]) -> str:
    """Label for a vehicle's current_status; unknown codes are shown as-is."""
    if not status:
        return UNKNOWN
    return STATUS_LABELS.get(status, status)


def format_coordinates(latitude: Optional[float], longitude: Optional[float]) -> str:
    if latitude is None or longitude is None:
        return "Coordinates unavailable"
    return f"{latitude:.6f}, {longitude:.6f}"


def format_speed(speed: Optional[float]) -> str:
    """Speed in m/s with the km/h equivalent."""
    if speed is None:
        return NOT_AVAILABLE
    return f"{speed} m/s ({round(speed * 3.6)} km/h)"


def format_bearing(bearing: Optional[float]) -> str:
    if bearing is None:
        return NOT_AVAILABLE
    return f"{bearing}°"


def _parse(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment


def format_relative_time(value: Optional[Union[str, datetime]], now: Optional[datetime] = None) -> str:
    """
    Describe how long ago a timestamp was, e.g. "42 seconds ago".

    Older than a day falls back to an absolute date and time. Unparseable or
    missing values yield "Unknown".
    """
    if not value:
        return UNKNOWN
    try:
        moment = _parse(value)
    except ValueError:
        return UNKNOWN
    now = _parse(now) if now else datetime.now(timezone.utc)
    seconds = int((now - moment).total_seconds())

    if seconds < 60:
        return f"{seconds} seconds ago"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    return moment.strftime("%d %b %Y, %H:%M:%S")


def format_distance_to_now(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Compact age of a refresh timestamp, e.g. "just now", "12s ago", "3m ago"."""
    if moment is None:
        return "never"
    moment = _parse(moment)
    now = _parse(now) if now else datetime.now(timezone.utc)
    seconds = int((now - moment).total_seconds())

    if seconds < 5:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    return f"{seconds // 3600}h ago"
