import logging
from typing import Sequence

import numpy as np

from route_geoprocessor.models import Coordinate, ElevationStats

logger = logging.getLogger(__name__)


def elevation_array(coordinates: Sequence[Coordinate]) -> np.ndarray:
    """Elevations as a float array, with NaN where a point has no elevation."""
    return np.array(
        [c[2] if len(c) > 2 and c[2] is not None else np.nan for c in coordinates],
        dtype=float,
    )


def calculate_elevation_stats(coordinates: Sequence[Coordinate]) -> ElevationStats:
    """
    Accumulates total ascent and descent from adjacent elevation deltas.

    Pairs where either point lacks an elevation are skipped, not interpolated.
    Units follow the input elevations (meters for GPX).
    """
    if len(coordinates) < 2:
        return ElevationStats()

    deltas = np.diff(elevation_array(coordinates))
    # NaN deltas (missing elevation on either side) fail both comparisons
    ascent = deltas[deltas > 0].sum()
    descent = -deltas[deltas < 0].sum()

    skipped = int(np.isnan(deltas).sum())
    if skipped:
        logger.debug(f"Skipped {skipped} of {len(deltas)} elevation transitions with missing data")

    return ElevationStats(total_ascent=float(ascent), total_descent=float(descent))
