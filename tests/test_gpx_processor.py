import os
import tempfile
import unittest

from gpx_samples import SIMPLE_GPX, make_gpx

from route_geoprocessor.data_ingestion.gpx_processor import GPXProcessor, gpx_to_coordinates
from route_geoprocessor.exceptions import InvalidGPXError


class TestGPXProcessor(unittest.TestCase):
    def setUp(self):
        self.processor = GPXProcessor()

    def test_load_and_parse(self):
        self.processor.load_from_string(SIMPLE_GPX)
        self.assertIsNotNone(self.processor._raw_gpx)
        if self.processor._raw_gpx:
            self.assertEqual(len(self.processor._raw_gpx.tracks), 1)

    def test_coordinates_are_lon_lat_ele_in_document_order(self):
        self.processor.load_from_string(SIMPLE_GPX)
        coords = self.processor.extract_coordinates()

        self.assertEqual(len(coords), 5)
        self.assertEqual(coords[0], (6.0, 45.0, 100.0))
        self.assertEqual(coords[-1], (6.0, 45.004, 120.0))
        self.assertEqual([c[1] for c in coords], [45.0, 45.001, 45.002, 45.003, 45.004])

    def test_missing_elevation_is_none(self):
        gpx = make_gpx([(45.0, 6.0, 100.0), (45.001, 6.0, None), (45.002, 6.0, 90.0)])
        coords = gpx_to_coordinates(gpx)

        self.assertIsNotNone(coords)
        self.assertIsNone(coords[1][2])
        self.assertEqual(coords[2][2], 90.0)

    def test_only_first_segment_is_used(self):
        gpx = make_gpx(
            [(45.0, 6.0, 1.0), (45.001, 6.0, 2.0)],
            [(46.0, 7.0, 3.0), (46.001, 7.0, 4.0), (46.002, 7.0, 5.0)],
        )
        coords = gpx_to_coordinates(gpx)

        self.assertEqual(len(coords), 2)
        self.assertEqual(coords[0][:2], (6.0, 45.0))

    def test_route_points_used_when_no_track(self):
        gpx = (
            '<gpx version="1.1" creator="test">'
            "<rte>"
            '<rtept lat="45.0" lon="6.0"><ele>10</ele></rtept>'
            '<rtept lat="45.1" lon="6.1"><ele>20</ele></rtept>'
            "</rte>"
            "</gpx>"
        )
        coords = gpx_to_coordinates(gpx)

        self.assertEqual(coords, [(6.0, 45.0, 10.0), (6.1, 45.1, 20.0)])

    def test_no_track_structure_yields_no_geometry(self):
        gpx = '<gpx version="1.1" creator="test"><wpt lat="45.0" lon="6.0"/></gpx>'
        self.assertIsNone(gpx_to_coordinates(gpx))

        self.processor.load_from_string(gpx)
        with self.assertRaises(InvalidGPXError):
            self.processor.extract_coordinates()

    def test_single_point_track_yields_no_geometry(self):
        self.assertIsNone(gpx_to_coordinates(make_gpx([(45.0, 6.0, 100.0)])))

    def test_malformed_xml_yields_no_geometry(self):
        self.assertIsNone(gpx_to_coordinates("<gpx><trk><trkseg><trkpt lat="))

        with self.assertRaises(InvalidGPXError):
            self.processor.load_from_string("not xml at all")

    def test_extract_before_load_raises(self):
        with self.assertRaises(ValueError):
            self.processor.extract_coordinates()

    def test_load_from_file(self):
        fd, path = tempfile.mkstemp(suffix=".gpx")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(SIMPLE_GPX)
            processor = GPXProcessor(file_path=path)
            processor.load_from_file()
            self.assertEqual(len(processor.extract_coordinates()), 5)
        finally:
            os.remove(path)


if __name__ == "__main__":
    unittest.main()
