"""
Tests for ValhallaClient - map-matches one chunk via trace_attributes.
"""

import unittest
from unittest.mock import MagicMock, patch

import requests

from route_geoprocessor.data_ingestion.valhalla_client import (
    ValhallaClient,
    edge_duration_seconds,
)
from route_geoprocessor.exceptions import AttributionFetchError

COORDS = [(6.0, 45.0, 100.0), (6.001, 45.001, 101.0), (6.002, 45.002, None)]


def response_with(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


class TestValhallaClient(unittest.TestCase):
    """Tests for the Valhalla trace_attributes fetcher."""

    def setUp(self):
        self.client = ValhallaClient(endpoint="http://valhalla.test/trace_attributes")
        self.client.session = MagicMock()

    def test_request_body(self):
        self.client.session.post.return_value = response_with({"edges": []})

        self.client.fetch_segments(COORDS)

        call_args = self.client.session.post.call_args
        self.assertEqual(call_args[0][0], "http://valhalla.test/trace_attributes")
        body = call_args[1]["json"]
        self.assertEqual(body["shape"][0], {"lat": 45.0, "lon": 6.0})
        self.assertEqual(len(body["shape"]), 3)
        self.assertEqual(body["costing"], "bicycle")
        self.assertIn("bicycle", body["costing_options"])
        self.assertEqual(body["shape_match"], "map_snap")
        self.assertEqual(body["filters"]["action"], "include")
        self.assertIn("edge.begin_shape_index", body["filters"]["attributes"])
        self.assertIn("edge.surface", body["filters"]["attributes"])

    def test_edges_become_segments(self):
        self.client.session.post.return_value = response_with(
            {
                "edges": [
                    {
                        "begin_shape_index": 0,
                        "end_shape_index": 1,
                        "length": 0.5,
                        "speed": 20,
                        "surface": "paved_smooth",
                        "road_class": "residential",
                        "use": "road",
                        "lane_count": 2,
                    },
                    {"begin_shape_index": 1, "end_shape_index": 2, "length": 1.0, "speed": 15},
                ]
            }
        )

        segments = self.client.fetch_segments(COORDS)

        self.assertEqual(len(segments), 2)
        first, second = segments
        self.assertEqual((first.start_index, first.end_index), (0, 1))
        self.assertEqual(first.surface, "paved_smooth")
        self.assertEqual(first.road_class, "residential")
        self.assertEqual(first.lane_count, 2)
        self.assertEqual(first.duration_seconds, 90)  # 0.5 km at 20 km/h
        self.assertEqual(first.length_km, 0.5)
        self.assertEqual(second.surface, "unknown")
        self.assertEqual(second.duration_seconds, 240)

    def test_zero_span_edge_folds_into_previous_segment(self):
        self.client.session.post.return_value = response_with(
            {
                "edges": [
                    {"begin_shape_index": 0, "end_shape_index": 1, "length": 0.5, "speed": 20},
                    {"begin_shape_index": 1, "end_shape_index": 1, "length": 0.05, "speed": 10},
                    {"begin_shape_index": 1, "end_shape_index": 2, "length": 1.0, "speed": 15},
                ]
            }
        )

        segments = self.client.fetch_segments(COORDS)

        self.assertEqual([(s.start_index, s.end_index) for s in segments], [(0, 1), (1, 2)])
        self.assertAlmostEqual(segments[0].length_km, 0.55)
        self.assertEqual(segments[0].duration_seconds, 90 + 18)
        self.assertEqual(segments[1].duration_seconds, 240)

    def test_leading_zero_span_edge_folds_into_next_segment(self):
        self.client.session.post.return_value = response_with(
            {
                "edges": [
                    {"begin_shape_index": 0, "end_shape_index": 0, "length": 0.1, "speed": 20},
                    {"begin_shape_index": 0, "end_shape_index": 2, "length": 1.0, "speed": 20},
                ]
            }
        )

        segments = self.client.fetch_segments(COORDS)

        self.assertEqual(len(segments), 1)
        self.assertEqual((segments[0].start_index, segments[0].end_index), (0, 2))
        self.assertAlmostEqual(segments[0].length_km, 1.1)
        self.assertEqual(segments[0].duration_seconds, 18 + 180)

    def test_backwards_edge_is_failure(self):
        self.client.session.post.return_value = response_with(
            {"edges": [{"begin_shape_index": 2, "end_shape_index": 1, "length": 1.0, "speed": 10}]}
        )

        with self.assertRaises(AttributionFetchError):
            self.client.fetch_segments(COORDS)

    def test_missing_edges_is_failure(self):
        self.client.session.post.return_value = response_with({"shape": []})

        with self.assertRaises(AttributionFetchError):
            self.client.fetch_segments(COORDS)

    def test_edges_not_a_list_is_failure(self):
        self.client.session.post.return_value = response_with({"edges": "nope"})

        with self.assertRaises(AttributionFetchError):
            self.client.fetch_segments(COORDS)

    def test_malformed_edge_is_failure(self):
        self.client.session.post.return_value = response_with(
            {"edges": [{"begin_shape_index": 0, "length": 1.0, "speed": 10}]}
        )

        with self.assertRaises(AttributionFetchError):
            self.client.fetch_segments(COORDS)

    def test_http_error_is_failure(self):
        response = MagicMock()
        error = requests.exceptions.HTTPError("400 Client Error")
        error.response = MagicMock(text='{"error": "too many shape points"}')
        response.raise_for_status.side_effect = error
        self.client.session.post.return_value = response

        with self.assertRaises(AttributionFetchError):
            self.client.fetch_segments(COORDS)

    def test_network_error_is_failure(self):
        self.client.session.post.side_effect = requests.exceptions.ConnectionError("down")

        with self.assertRaises(AttributionFetchError):
            self.client.fetch_segments(COORDS)

    def test_invalid_json_is_failure(self):
        response = MagicMock()
        response.raise_for_status = MagicMock()
        response.json.side_effect = ValueError("Expecting value")
        self.client.session.post.return_value = response

        with self.assertRaises(AttributionFetchError):
            self.client.fetch_segments(COORDS)

    @patch("route_geoprocessor.data_ingestion.valhalla_client.requests_cache.CachedSession")
    def test_session_caches_post_requests(self, mock_session_cls):
        ValhallaClient()

        kwargs = mock_session_cls.call_args[1]
        self.assertIn("POST", kwargs["allowable_methods"])


class TestEdgeDuration(unittest.TestCase):
    def test_duration_from_length_and_speed(self):
        self.assertEqual(edge_duration_seconds(10, 20), 1800)

    def test_rounds_to_nearest_second(self):
        self.assertEqual(edge_duration_seconds(1, 7), 514)  # 514.29 s
        self.assertEqual(edge_duration_seconds(1, 13), 277)  # 276.92 s

    def test_non_positive_inputs(self):
        self.assertEqual(edge_duration_seconds(0, 20), 0)
        self.assertEqual(edge_duration_seconds(1, 0), 0)
        self.assertEqual(edge_duration_seconds(-1, 10), 0)


if __name__ == "__main__":
    unittest.main()
