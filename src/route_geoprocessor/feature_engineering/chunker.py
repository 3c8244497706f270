import logging
from typing import List, Sequence

from route_geoprocessor.exceptions import InsufficientPointsError
from route_geoprocessor.models import Chunk, Coordinate
from route_geoprocessor.utils.geo import step_distances_km

logger = logging.getLogger(__name__)


def chunk_coordinates(
    coordinates: Sequence[Coordinate], max_points: int, max_distance_km: float
) -> List[Chunk]:
    """
    Splits a route into chunks the attribution service will accept.

    Chunks are built greedily from the start. A chunk is closed when adding
    the next point would push it past `max_points` or its accumulated length
    past `max_distance_km`. The next chunk starts with the closed chunk's
    last point, so consecutive chunks share exactly one coordinate and
    per-chunk indices map back to the route with a running offset of
    len(chunk) - 1.

    A chunk always takes at least one edge, even one longer than the
    distance limit on its own.
    """
    if len(coordinates) < 2:
        raise InsufficientPointsError(
            f"At least 2 points are required for attribution, got {len(coordinates)}"
        )

    steps = step_distances_km(coordinates)

    chunks: List[Chunk] = []
    current: Chunk = [coordinates[0]]
    current_distance = 0.0

    for i in range(1, len(coordinates)):
        point = coordinates[i]
        step = float(steps[i - 1])

        too_many_points = len(current) + 1 > max_points
        too_long = current_distance + step > max_distance_km

        if len(current) > 1 and (too_many_points or too_long):
            chunks.append(current)
            current = [current[-1], point]
            current_distance = step
        else:
            current.append(point)
            current_distance += step

    if len(current) > 1:
        chunks.append(current)

    if len(chunks) > 1:
        logger.info(
            f"Split {len(coordinates)} points into {len(chunks)} chunks "
            f"(limits: {max_points} points, {max_distance_km} km)"
        )

    return chunks
