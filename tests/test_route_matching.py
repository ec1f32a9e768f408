"""Tests for route patterns, path splitting and query handling."""

from __future__ import annotations

import unittest

from racemanager.exceptions import RouteNotFoundError, RouterError
from racemanager.routing.matching import (
    RouteTable,
    build_path,
    encode_query,
    parse_query,
    split_path,
)
from racemanager.routing.route import PathSegment, RouteDescriptor, parse_pattern


class PatternTests(unittest.TestCase):
    def test_parse_pattern_marks_dynamic_segments(self) -> None:
        self.assertEqual(parse_pattern("/"), ())
        self.assertEqual(
            parse_pattern("/drivers/:driverId"),
            (
                PathSegment("drivers"),
                PathSegment(":driverId", is_param=True, param_name="driverId"),
            ),
        )

    def test_unnamed_parameter_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            parse_pattern("/drivers/:")

    def test_descriptor_defaults(self) -> None:
        route = RouteDescriptor("/races", "races")
        self.assertEqual(route.name, "races")
        self.assertTrue(route.requires_auth)
        self.assertEqual(route.layout, "default")
        self.assertFalse(route.is_dynamic)
        self.assertEqual(RouteDescriptor("/", "feed").name, "home")
        self.assertEqual(RouteDescriptor("/races/:raceId", "races").param_names, ("raceId",))


class SplitAndQueryTests(unittest.TestCase):
    def test_split_path_drops_fragment(self) -> None:
        self.assertEqual(split_path("/races?season=2024#top"), ("/races", "season=2024"))
        self.assertEqual(split_path("/races"), ("/races", ""))
        self.assertEqual(split_path("?tab=1"), ("/", "tab=1"))

    def test_parse_query(self) -> None:
        self.assertEqual(parse_query("?a=1&b=two"), {"a": "1", "b": "two"})
        self.assertEqual(parse_query("a=1&b=two"), {"a": "1", "b": "two"})

    def test_parse_query_last_value_wins_and_keeps_blank(self) -> None:
        self.assertEqual(parse_query("a=1&a=2&flag"), {"a": "2", "flag": ""})

    def test_parse_query_decodes(self) -> None:
        self.assertEqual(parse_query("q=grand%20prix&x=a+b"), {"q": "grand prix", "x": "a b"})

    def test_encode_query_drops_none(self) -> None:
        self.assertEqual(encode_query({"season": 2024, "tab": None, "q": "a b"}), "season=2024&q=a+b")


class RouteTableTests(unittest.TestCase):
    def setUp(self) -> None:
        self.table = RouteTable(
            [
                RouteDescriptor("/", "feed", name="Feed"),
                RouteDescriptor("/drivers", "drivers", name="Drivers"),
                RouteDescriptor("/drivers/:driverId", "drivers", name="Driver Profile"),
                RouteDescriptor("/:section", "section", name="Section"),
                RouteDescriptor("/races", "races", name="Races"),
            ]
        )

    def test_dynamic_match_binds_params(self) -> None:
        route, params = self.table.match("/drivers/42")
        self.assertEqual(route.name, "Driver Profile")
        self.assertEqual(params, {"driverId": "42"})

    def test_segment_counts_must_match(self) -> None:
        with self.assertRaises(RouteNotFoundError):
            self.table.match("/drivers/42/extra")
        route, _ = self.table.match("/drivers")
        self.assertEqual(route.name, "Drivers")

    def test_static_route_preferred_over_earlier_dynamic(self) -> None:
        route, params = self.table.match("/races")
        self.assertEqual(route.name, "Races")
        self.assertEqual(params, {})

    def test_first_dynamic_match_in_registration_order(self) -> None:
        route, params = self.table.match("/standings")
        self.assertEqual(route.name, "Section")
        self.assertEqual(params, {"section": "standings"})

    def test_root_and_trailing_slash(self) -> None:
        self.assertEqual(self.table.match("/")[0].name, "Feed")
        self.assertEqual(self.table.match("/drivers/")[0].name, "Drivers")

    def test_params_are_url_decoded(self) -> None:
        _, params = self.table.match("/drivers/max%20v")
        self.assertEqual(params, {"driverId": "max v"})

    def test_by_name(self) -> None:
        self.assertEqual(self.table.by_name("Races").pattern, "/races")
        self.assertIsNone(self.table.by_name("Nope"))

    def test_frozen_table_rejects_new_routes(self) -> None:
        self.table.freeze()
        with self.assertRaises(RouterError):
            self.table.add(RouteDescriptor("/teams", "teams"))

    def test_build_path_reports_missing_params(self) -> None:
        route = RouteDescriptor("/championships/:championshipId/races/:raceId", "races")
        path, missing = build_path(route, {"championshipId": "f1 2024"})
        self.assertEqual(path, "/championships/f1%202024/races/:raceId")
        self.assertEqual(missing, ["raceId"])


if __name__ == "__main__":
    unittest.main()
