import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from route_geoprocessor.config.settings import settings
from route_geoprocessor.data_ingestion.valhalla_client import ValhallaClient
from route_geoprocessor.exceptions import AttributionFetchError
from route_geoprocessor.feature_engineering.chunker import chunk_coordinates
from route_geoprocessor.models import Coordinate, RouteSegment
from route_geoprocessor.protocols import AttributionFetcher

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class AttributionClient:
    """
    Attributes a whole route, however long, against a size-limited
    map-matching service.

    The route is split into chunks within the service's point and distance
    caps, each chunk is fetched in order, and the per-chunk segments are
    re-indexed into the route's coordinate space. The result is
    all-or-nothing: one failed chunk discards everything fetched so far.
    """

    def __init__(
        self,
        fetcher: Optional[AttributionFetcher] = None,
        max_points: Optional[int] = None,
        max_distance_km: Optional[float] = None,
        chunk_delay: Optional[float] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.fetcher = fetcher if fetcher is not None else ValhallaClient()
        self.max_points = max_points if max_points is not None else settings.MAX_POINTS
        self.max_distance_km = (
            max_distance_km if max_distance_km is not None else settings.MAX_DISTANCE_KM
        )
        self.chunk_delay = chunk_delay if chunk_delay is not None else settings.CHUNK_DELAY_SECONDS
        self._sleep = sleep

    async def get_route_attributes(
        self, coordinates: Sequence[Coordinate]
    ) -> Optional[List[RouteSegment]]:
        """
        Fetches and stitches segments for the full coordinate sequence.

        Returns:
            Segments indexed into `coordinates`, or None when any chunk fails.
            None means "attribution unavailable for now", not a broken route.

        Raises:
            InsufficientPointsError: if fewer than 2 coordinates are given.
        """
        chunks = chunk_coordinates(coordinates, self.max_points, self.max_distance_km)

        segments: List[RouteSegment] = []
        index_offset = 0

        for i, chunk in enumerate(chunks):
            if i > 0 and self.chunk_delay > 0:
                await self._sleep(self.chunk_delay)

            try:
                chunk_segments = await asyncio.to_thread(self.fetcher.fetch_segments, chunk)
            except AttributionFetchError as e:
                logger.warning(
                    f"Attribution fetch failed for chunk {i + 1}/{len(chunks)}, "
                    f"discarding {len(segments)} stitched segments: {e}"
                )
                return None

            segments.extend(segment.shifted(index_offset) for segment in chunk_segments)
            # The last point of this chunk is the first point of the next one
            index_offset += len(chunk) - 1

        logger.info(
            f"Attributed {len(coordinates)} points: "
            f"{len(segments)} segments from {len(chunks)} chunk(s)"
        )
        return segments
