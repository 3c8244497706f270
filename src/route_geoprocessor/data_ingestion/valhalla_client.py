import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import requests
import requests_cache
from pydantic import BaseModel, ConfigDict, ValidationError

from route_geoprocessor.config.settings import settings
from route_geoprocessor.exceptions import AttributionFetchError
from route_geoprocessor.models import Coordinate, RouteSegment

logger = logging.getLogger(__name__)

EDGE_ATTRIBUTES = [
    "edge.surface",
    "edge.begin_shape_index",
    "edge.end_shape_index",
    "edge.length",
    "edge.speed",
    "edge.road_class",
    "edge.use",
    "edge.bicycle_type",
    "edge.lane_count",
    "edge.cycle_lane",
    "edge.bicycle_network",
]


class ValhallaEdge(BaseModel):
    model_config = ConfigDict(extra="ignore")

    begin_shape_index: int
    end_shape_index: int
    length: float  # km
    speed: float  # km/h
    surface: Optional[str] = None
    road_class: Optional[str] = None
    use: Optional[str] = None
    bicycle_type: Optional[str] = None
    lane_count: Optional[int] = None
    cycle_lane: Optional[str] = None
    bicycle_network: Optional[int] = None


def edge_duration_seconds(length_km: float, speed_kmh: float) -> int:
    """Travel time over an edge, rounded half-up to the second."""
    if length_km <= 0 or speed_kmh <= 0:
        return 0
    return int(math.floor((length_km / speed_kmh) * 3600 + 0.5))


def edge_to_segment(edge: ValhallaEdge) -> RouteSegment:
    return RouteSegment(
        start_index=edge.begin_shape_index,
        end_index=edge.end_shape_index,
        duration_seconds=edge_duration_seconds(edge.length, edge.speed),
        length_km=max(edge.length, 0.0),
        surface=edge.surface or "unknown",
        road_class=edge.road_class,
        speed_kmh=edge.speed,
        use=edge.use,
        bicycle_type=edge.bicycle_type,
        lane_count=edge.lane_count,
        cycle_lane=edge.cycle_lane,
        bicycle_network=edge.bicycle_network,
    )


def _extended(segment: RouteSegment, length_km: float, duration_seconds: float) -> RouteSegment:
    return segment.model_copy(
        update={
            "length_km": segment.length_km + length_km,
            "duration_seconds": segment.duration_seconds + duration_seconds,
        }
    )


def edges_to_segments(edges: Sequence[ValhallaEdge]) -> List[RouteSegment]:
    """
    Converts matched edges to segments in travel order.

    Several short edges can fall between the same two shape points, so
    Valhalla reports some edges with `end_shape_index == begin_shape_index`.
    Those cover no coordinates of their own: their length and travel time
    are folded into the previous segment, or into the next one when they
    lead the chunk.
    """
    segments: List[RouteSegment] = []
    carried_km = 0.0
    carried_seconds = 0.0

    for edge in edges:
        if edge.end_shape_index == edge.begin_shape_index:
            length_km = max(edge.length, 0.0)
            seconds = edge_duration_seconds(edge.length, edge.speed)
            if segments:
                segments[-1] = _extended(segments[-1], length_km, seconds)
            else:
                carried_km += length_km
                carried_seconds += seconds
            continue

        segment = edge_to_segment(edge)
        if carried_km or carried_seconds:
            segment = _extended(segment, carried_km, carried_seconds)
            carried_km, carried_seconds = 0.0, 0.0
        segments.append(segment)

    return segments


class ValhallaClient:
    """
    Client for the Valhalla `trace_attributes` endpoint.
    Map-matches one chunk of a route onto the road network and returns the
    matched edges as RouteSegments.

    Uses persistent caching (30 days by default) keyed on the request body,
    so an unchanged chunk is never sent upstream twice.
    """

    def __init__(self, endpoint: Optional[str] = None):
        self.endpoint = endpoint or settings.VALHALLA_ENDPOINT
        self.costing = settings.VALHALLA_COSTING
        self.timeout = settings.VALHALLA_TIMEOUT_SECONDS
        self.session = requests_cache.CachedSession(
            settings.VALHALLA_CACHE_NAME,
            backend=settings.VALHALLA_CACHE_BACKEND,
            expire_after=settings.VALHALLA_CACHE_EXPIRE_SECONDS,
            allowable_methods=("GET", "POST"),
        )

    def build_request(self, coordinates: Sequence[Coordinate]) -> Dict[str, Any]:
        """Builds the trace_attributes body. Valhalla wants lat/lon objects."""
        return {
            "shape": [{"lat": c[1], "lon": c[0]} for c in coordinates],
            "costing": self.costing,
            "costing_options": {
                self.costing: {"bicycle_type": settings.VALHALLA_BICYCLE_TYPE},
            },
            "shape_match": "map_snap",
            "filters": {
                "attributes": EDGE_ATTRIBUTES,
                "action": "include",
            },
        }

    def fetch_segments(self, coordinates: Sequence[Coordinate]) -> List[RouteSegment]:
        """
        Map-matches one chunk and returns its segments, indexed relative to
        the first coordinate of the chunk.

        Raises:
            AttributionFetchError: on transport errors, non-2xx responses, or a
                response without a valid `edges` list.
        """
        body = self.build_request(coordinates)

        try:
            response = self.session.post(self.endpoint, json=body, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Valhalla API error: {e}")
            if getattr(e, "response", None) is not None:
                logger.error(f"Response body: {e.response.text}")
            raise AttributionFetchError(f"Valhalla request failed: {e}") from e
        except ValueError as e:
            raise AttributionFetchError(f"Valhalla returned invalid JSON: {e}") from e

        edges = data.get("edges") if isinstance(data, dict) else None
        if not isinstance(edges, list):
            logger.error("Valhalla API response missing edges")
            raise AttributionFetchError("Valhalla response missing edges")

        try:
            return edges_to_segments([ValhallaEdge(**edge) for edge in edges])
        except (TypeError, ValidationError) as e:
            raise AttributionFetchError(f"Valhalla returned a malformed edge: {e}") from e
