from typing import List, Sequence

import numpy as np

from route_geoprocessor.feature_engineering.elevation import elevation_array
from route_geoprocessor.models import Coordinate
from route_geoprocessor.utils.geo import step_distances_km


def compute_grades(geometry: Sequence[Coordinate]) -> List[float]:
    """
    Grade (%) of each edge of the polyline: element i covers point i to i + 1.

    Grade = (d_ele / d_dist) * 100. Edges with zero length or a missing
    elevation get 0.0.
    """
    if len(geometry) < 2:
        return []

    d_ele = np.diff(elevation_array(geometry))
    d_dist = step_distances_km(geometry) * 1000.0

    with np.errstate(divide="ignore", invalid="ignore"):
        grade = (d_ele / d_dist) * 100.0
        grade = np.nan_to_num(grade, nan=0.0, posinf=0.0, neginf=0.0)

    return [round(float(g), 2) for g in grade]
