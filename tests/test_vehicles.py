"""Tests for the vehicle streams and the included-entity index."""

import unittest

from fakes import FakeClient, route, settle, stop, trip, vehicle

from fleettrack.included import IncludedIndex
from fleettrack.models import FilterState, Resource
from fleettrack.vehicles import VehiclePageFetcher, VehicleSweepFetcher, vehicle_query


def vehicles(start, count, **kwargs):
    return [vehicle(f"V{i}", **kwargs) for i in range(start, start + count)]


class TestVehicleQuery(unittest.TestCase):
    """Query parameter construction."""

    def test_empty_filters_are_omitted(self):
        params = vehicle_query(3, 10, FilterState())
        self.assertEqual(params, {
            "page[limit]": 10,
            "page[offset]": 20,
            "include": "route,trip,stop",
        })

    def test_filters_are_comma_joined(self):
        params = vehicle_query(1, 5, FilterState(routes=["Red", "Blue"], trips=["T1", "T2"]))
        self.assertEqual(params["filter[route]"], "Red,Blue")
        self.assertEqual(params["filter[trip]"], "T1,T2")
        self.assertEqual(params["page[offset]"], 0)


class TestIncludedIndex(unittest.TestCase):
    """Lookup by (type, id)."""

    def test_lookup(self):
        index = IncludedIndex.from_payload([route("Red", long_name="Red Line"), trip("T1"), stop("S1")])
        self.assertEqual(index.lookup("route", "Red").attr("long_name"), "Red Line")
        self.assertIsNotNone(index.lookup("stop", "S1"))
        self.assertIsNone(index.lookup("route", "T1"))
        self.assertIsNone(index.lookup("trip", None))
        self.assertEqual(len(index), 3)

    def test_first_occurrence_wins(self):
        index = IncludedIndex.from_payload([route("Red", long_name="First"), route("Red", long_name="Second")])
        self.assertEqual(len(index), 1)
        self.assertEqual(index.lookup("route", "Red").attr("long_name"), "First")


class TestVehiclePageFetcher(unittest.IsolatedAsyncioTestCase):
    """Single-page mode."""

    async def asyncSetUp(self):
        self.client = FakeClient()
        self.fetcher = VehiclePageFetcher(self.client, page_size=2)
        self.fetcher.active = True

    async def asyncTearDown(self):
        self.fetcher.poller.close()

    async def fetch(self, data, included=None):
        task = self.fetcher.refresh()
        await settle()
        self.client.resolve(len(self.client.calls) - 1, data, included)
        await task

    async def test_full_page_estimates_one_more_item(self):
        """A full page overstates the total on an exact boundary; kept on purpose."""
        self.fetcher.configure(page=2)
        await settle()
        self.client.resolve(0, vehicles(0, 2))
        await settle()

        self.assertTrue(self.fetcher.has_more)
        self.assertEqual(self.fetcher.total_items, 2 * 2 + 1)

    async def test_short_page_pins_total(self):
        self.fetcher.configure(page=3)
        await settle()
        self.client.resolve(0, vehicles(0, 1))
        await settle()

        self.assertFalse(self.fetcher.has_more)
        self.assertEqual(self.fetcher.total_items, (3 - 1) * 2 + 1)
        self.assertEqual(self.client.calls[0].params["page[offset]"], 4)

    async def test_included_items_are_indexed(self):
        await self.fetch(
            [vehicle("V1", route="Red", trip="T1", stop="S1")],
            [route("Red", long_name="Red Line"), trip("T1", headsign="Ashmont"), stop("S1", name="Park St")],
        )
        self.assertEqual(self.fetcher.get_included_item("stop", "S1").attr("name"), "Park St")
        self.assertIsNone(self.fetcher.get_included_item("stop", "S2"))
        self.assertIsNotNone(self.fetcher.last_updated)

    async def test_index_reflects_only_latest_fetch(self):
        await self.fetch([vehicle("V1")], [route("Red")])
        await self.fetch([vehicle("V1")], [route("Blue")])
        self.assertIsNone(self.fetcher.get_included_item("route", "Red"))
        self.assertIsNotNone(self.fetcher.get_included_item("route", "Blue"))

    async def test_failure_keeps_previous_snapshot(self):
        await self.fetch(vehicles(0, 2))

        task = self.fetcher.refresh()
        await settle()
        self.client.fail(1, detail="Service unavailable")
        await task

        self.assertEqual(self.fetcher.error, "Service unavailable")
        self.assertEqual([v.id for v in self.fetcher.vehicles], ["V0", "V1"])
        self.assertFalse(self.fetcher.loading)

    async def test_failure_without_detail_uses_fallback(self):
        task = self.fetcher.refresh()
        await settle()
        self.client.fail(0)
        await task
        self.assertEqual(self.fetcher.error, VehiclePageFetcher.fallback_error)

    async def test_success_clears_previous_error(self):
        task = self.fetcher.refresh()
        await settle()
        self.client.fail(0)
        await task
        await self.fetch(vehicles(0, 1))
        self.assertIsNone(self.fetcher.error)

    async def test_refresh_joins_identical_fetch(self):
        first = self.fetcher.refresh()
        second = self.fetcher.refresh()
        self.assertIs(first, second)
        await settle()
        self.assertEqual(len(self.client.calls), 1)
        self.client.resolve(0, [])
        await first

    async def test_new_parameters_supersede_running_fetch(self):
        first = self.fetcher.configure(page=2)
        await settle()
        second = self.fetcher.configure(page=3)
        await settle()

        self.client.resolve(1, vehicles(10, 1))
        await second
        self.client.resolve(0, vehicles(0, 2))
        await settle()

        self.assertTrue(first.cancelled())
        self.assertEqual([v.id for v in self.fetcher.vehicles], ["V10"])

    async def test_unchanged_configuration_does_not_fetch(self):
        self.assertIsNone(self.fetcher.configure(page=1, page_size=2, filters=FilterState()))

    async def test_inactive_stream_only_stores_parameters(self):
        self.fetcher.active = False
        self.assertIsNone(self.fetcher.configure(page=4))
        await settle()
        self.assertEqual(self.client.calls, [])
        self.assertEqual(self.fetcher.page, 4)

    async def test_set_active_fetches_and_polls(self):
        fetcher = VehiclePageFetcher(self.client, page_size=2)
        task = fetcher.set_active(True)
        self.assertTrue(fetcher.poller.running)
        await settle()
        self.client.resolve(0, [])
        await task
        fetcher.set_active(False)
        self.assertFalse(fetcher.poller.running)

    async def test_rejects_invalid_page(self):
        with self.assertRaises(ValueError):
            self.fetcher.configure(page=0)


class TestVehicleSweepFetcher(unittest.IsolatedAsyncioTestCase):
    """Full-sweep mode."""

    async def asyncSetUp(self):
        self.client = FakeClient()
        self.sweeper = VehicleSweepFetcher(self.client, page_size=2)

    async def asyncTearDown(self):
        self.sweeper.poller.close()

    async def test_disabled_sweeper_does_nothing(self):
        self.assertIsNone(self.sweeper.refresh())
        await settle()
        self.assertEqual(self.client.calls, [])

    async def test_sweeps_until_short_page(self):
        self.sweeper.enabled = True
        task = self.sweeper.refresh()
        await settle()
        self.client.resolve(0, vehicles(0, 2), [route("Red")])
        await settle()
        self.client.resolve(1, vehicles(2, 2), [route("Red"), route("Blue")])
        await settle()
        self.client.resolve(2, vehicles(4, 1), [stop("S1")])
        await task

        offsets = [call.params["page[offset]"] for call in self.client.calls]
        self.assertEqual(offsets, [0, 2, 4])
        for call in self.client.calls:
            self.assertNotIn("filter[route]", call.params)
            self.assertNotIn("filter[trip]", call.params)
            self.assertEqual(call.params["include"], "route,trip,stop")
        self.assertEqual(len(self.sweeper.vehicles), 5)
        self.assertEqual(len(self.sweeper.included), 3)
        self.assertIsNotNone(self.sweeper.get_included_item("stop", "S1"))

    async def test_failure_mid_sweep_keeps_previous_snapshot(self):
        self.sweeper.enabled = True
        self.client.responder = lambda endpoint, params: {"data": vehicles(0, 1), "included": []}
        await self.sweeper.refresh()
        self.assertEqual(len(self.sweeper.vehicles), 1)

        self.client.responder = None
        task = self.sweeper.refresh()
        await settle()
        self.client.resolve(1, vehicles(0, 2))
        await settle()
        self.client.fail(2, detail="Gateway timeout")
        await task

        self.assertEqual(self.sweeper.error, "Gateway timeout")
        self.assertEqual([v.id for v in self.sweeper.vehicles], ["V0"])

    async def test_enable_sweeps_immediately(self):
        self.sweeper.set_enabled(True)
        await settle()
        self.assertEqual(len(self.client.calls), 1)
        self.assertTrue(self.sweeper.loading)
        self.sweeper.set_enabled(False)
        self.assertFalse(self.sweeper.poller.running)


class TestResource(unittest.TestCase):
    """Tolerance for missing fields."""

    def test_missing_relationships_and_attributes(self):
        record = Resource.from_json({"type": "vehicle", "id": "V1"})
        self.assertIsNone(record.related_id("route"))
        self.assertIsNone(record.attr("speed"))
        self.assertEqual(record.attr("speed", 0), 0)

    def test_null_relationship_data(self):
        record = Resource.from_json(vehicle("V1"))
        self.assertIsNone(record.related("trip"))


if __name__ == "__main__":
    unittest.main()
