"""
Great-circle distance helpers.
"""

from typing import Sequence

import numpy as np

from route_geoprocessor.models import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Great-circle distance between two points, in kilometers."""
    return float(step_distances_km([(lon1, lat1, None), (lon2, lat2, None)])[0])


def step_distances_km(coordinates: Sequence[Coordinate]) -> np.ndarray:
    """
    Vectorized Haversine distance between consecutive coordinates.

    Returns an array of length len(coordinates) - 1 where element i is the
    distance from point i to point i + 1, in kilometers.
    """
    if len(coordinates) < 2:
        return np.zeros(0)

    lons = np.radians(np.array([c[0] for c in coordinates], dtype=float))
    lats = np.radians(np.array([c[1] for c in coordinates], dtype=float))

    dlat = lats[1:] - lats[:-1]
    dlon = lons[1:] - lons[:-1]

    a = np.sin(dlat / 2) ** 2 + np.cos(lats[:-1]) * np.cos(lats[1:]) * np.sin(dlon / 2) ** 2
    # Rounding can push a marginally above 1 for antipodal points
    c = 2 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))

    return c * EARTH_RADIUS_KM
