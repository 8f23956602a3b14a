"""Example usage of FleetTracker."""

import asyncio
import logging
import sys
from pathlib import Path

# Add src to path so we can import fleettrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fleettrack.api_client import TransitAPIClient
from fleettrack.fleet_stats import summarize
from fleettrack.fleet_tracker import FleetTracker
from fleettrack.formatters import format_coordinates, format_relative_time, status_label

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def print_view(tracker: FleetTracker):
    """
    Display the current page of vehicles.

    Args:
        tracker: A started FleetTracker.
    """
    view = tracker.view()
    print(f"\n{'='*70}")
    mode = "search" if view.searching else "server filter"
    print(f"Page {view.page} ({mode}), about {view.total_items} vehicles")
    print(f"{'='*70}\n")

    if view.error:
        print(f"Error: {view.error}")

    for vehicle in view.vehicles:
        route = tracker.get_included_item("route", vehicle.related_id("route"))
        route_name = route.attr("long_name", route.id) if route else "No route"
        print(f"{vehicle.attr('label', vehicle.id):<12} {route_name:<24} {status_label(vehicle.attr('current_status'))}")
        print(f"  {format_coordinates(vehicle.attr('latitude'), vehicle.attr('longitude'))}"
              f"  updated {format_relative_time(vehicle.attr('updated_at'))}")

    if not view.vehicles:
        print("  No vehicles found")

    pages = " ".join(str(p) for p in view.page_numbers)
    print(f"\nPages: {pages}")


async def run(routes, search):
    tracker = FleetTracker(TransitAPIClient.from_env())
    tracker.start()
    try:
        if routes:
            tracker.set_filter("routes", routes)
        if search:
            tracker.set_search_text(search)

        # Give the first fetches a moment to land
        await asyncio.sleep(3)
        print_view(tracker)

        if tracker.searching:
            stats = summarize(tracker.all_vehicles.vehicles)
            print(f"\nFleet: {stats.total} vehicles, {stats.operating_percentage}% operating")
    finally:
        tracker.stop()
        tracker.client.close()


if __name__ == "__main__":
    # Usage: example.py [route,route...] [search text]
    route_arg = sys.argv[1].split(",") if len(sys.argv) > 1 and sys.argv[1] else []
    search_arg = " ".join(sys.argv[2:])
    try:
        asyncio.run(run(route_arg, search_arg))
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
    except ValueError as e:
        logger.error(f"Bad configuration: {e}")
        sys.exit(1)
