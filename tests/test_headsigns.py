"""Tests for headsign grouping."""

import unittest

from fakes import trip

from fleettrack.headsigns import HeadsignGroups, headsign_label
from fleettrack.models import Option, Resource


def trips(*payloads):
    return [Resource.from_json(payload) for payload in payloads]


class TestHeadsignLabel(unittest.TestCase):
    """Label fallback order."""

    def test_prefers_headsign(self):
        self.assertEqual(headsign_label(Resource.from_json(trip("T1", headsign="Downtown", name="X"))), "Downtown")

    def test_falls_back_to_name_then_id(self):
        self.assertEqual(headsign_label(Resource.from_json(trip("T1", name="Express"))), "Express")
        self.assertEqual(headsign_label(Resource.from_json(trip("T1"))), "T1")

    def test_empty_headsign_falls_back(self):
        self.assertEqual(headsign_label(Resource.from_json(trip("T1", headsign="", name="Local"))), "Local")


class TestHeadsignGroups(unittest.TestCase):
    """Grouping, merging and translation."""

    def test_groups_trips_sharing_a_headsign(self):
        groups = HeadsignGroups.from_trips(trips(
            trip("T1", headsign="Downtown"),
            trip("T2", headsign="Downtown"),
            trip("T3", headsign="Uptown"),
        ))

        self.assertEqual(groups.options, [
            Option(value="Downtown", label="Downtown"),
            Option(value="Uptown", label="Uptown"),
        ])
        self.assertEqual(groups.as_dict(), {"Downtown": ["T1", "T2"], "Uptown": ["T3"]})
        self.assertEqual(groups.translate(["Downtown"]), ["T1", "T2"])

    def test_repeated_trip_id_is_not_duplicated(self):
        groups = HeadsignGroups.from_trips(trips(
            trip("T1", headsign="Downtown"),
            trip("T1", headsign="Downtown"),
        ))
        self.assertEqual(groups.trip_ids("Downtown"), frozenset({"T1"}))

    def test_merge_unions_ids_and_keeps_one_option_per_label(self):
        first = HeadsignGroups.from_trips(trips(trip("T1", headsign="Downtown"), trip("T3", headsign="Uptown")))
        second = HeadsignGroups.from_trips(trips(trip("T2", headsign="Downtown"), trip("T4", headsign="Airport")))

        merged = first.merge(second)

        self.assertEqual(merged.labels, ["Downtown", "Uptown", "Airport"])
        self.assertEqual(merged.as_dict()["Downtown"], ["T1", "T2"])
        # Inputs are left untouched.
        self.assertEqual(first.as_dict()["Downtown"], ["T1"])
        self.assertNotIn("Airport", first)

    def test_translate_ignores_unknown_labels(self):
        groups = HeadsignGroups.from_trips(trips(trip("T3", headsign="Uptown")))
        self.assertEqual(groups.translate(["Nowhere"]), [])
        self.assertEqual(groups.translate(["Nowhere", "Uptown"]), ["T3"])

    def test_translate_unions_overlapping_labels(self):
        groups = HeadsignGroups({"A": ["T1", "T2"], "B": ["T2", "T3"]})
        self.assertEqual(groups.translate(["A", "B"]), ["T1", "T2", "T3"])

    def test_empty_groups(self):
        groups = HeadsignGroups()
        self.assertEqual(len(groups), 0)
        self.assertEqual(groups.options, [])
        self.assertEqual(groups.translate(["A"]), [])


if __name__ == "__main__":
    unittest.main()
