import logging
from typing import Any, List, Optional

import gpxpy
import gpxpy.gpx

from route_geoprocessor.exceptions import InvalidGPXError
from route_geoprocessor.models import Coordinate

logger = logging.getLogger(__name__)


class GPXProcessor:
    """
    Extracts route geometry from GPX documents.

    Only the first line-like geometry is kept: the first track segment with
    at least two points, or, for documents without tracks, the first route.
    Extra tracks and segments are ignored rather than treated as errors.
    """

    MIN_POINTS = 2

    def __init__(self, file_path: Optional[str] = None):
        """
        Args:
            file_path: Path to a GPX file. Optional if loading from a string.
        """
        self.file_path = file_path
        self._raw_gpx: Optional[Any] = None

    def load_from_file(self) -> None:
        """Loads and parses the GPX file from the file_path."""
        if not self.file_path:
            raise ValueError("file_path must be set to load from file")

        logger.info(f"Loading GPX file from {self.file_path}")
        with open(self.file_path, "r", encoding="utf-8") as f:
            self.load_from_string(f.read())

    def load_from_string(self, gpx_content: str) -> None:
        """Parses GPX data from a string. Raises InvalidGPXError on malformed input."""
        try:
            self._raw_gpx = gpxpy.parse(gpx_content)
        except (gpxpy.gpx.GPXException, ValueError) as e:
            self._raw_gpx = None
            raise InvalidGPXError(f"Could not parse GPX: {e}") from e

    def extract_coordinates(self) -> List[Coordinate]:
        """
        Returns the first line geometry as (lon, lat, elevation) tuples,
        in document order. Elevation is None where the point has no <ele>.
        """
        if self._raw_gpx is None:
            raise ValueError("GPX data not loaded. Call load_* first.")

        for track in self._raw_gpx.tracks:
            for segment in track.segments:
                if len(segment.points) >= self.MIN_POINTS:
                    return [self._to_coordinate(p) for p in segment.points]

        for route in self._raw_gpx.routes:
            if len(route.points) >= self.MIN_POINTS:
                return [self._to_coordinate(p) for p in route.points]

        raise InvalidGPXError("No line geometry found in GPX")

    @staticmethod
    def _to_coordinate(point: Any) -> Coordinate:
        elevation = float(point.elevation) if point.elevation is not None else None
        return (float(point.longitude), float(point.latitude), elevation)


def gpx_to_coordinates(gpx_content: str) -> Optional[List[Coordinate]]:
    """
    Convenience wrapper: parse GPX text and return its first line geometry,
    or None when the document is malformed or has no usable geometry.
    """
    processor = GPXProcessor()
    try:
        processor.load_from_string(gpx_content)
        return processor.extract_coordinates()
    except InvalidGPXError as e:
        logger.error(f"Error parsing GPX: {e}")
        return None
