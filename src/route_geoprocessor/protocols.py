"""
Protocol interfaces for external collaborators.

These protocols define the contracts the pipeline relies on, so the
map-matching transport and the storage layer can be swapped or faked in
tests without touching the chunking, ingestion or scheduling logic.
"""

from typing import Any, Iterator, List, Optional, Protocol, Sequence, runtime_checkable

from route_geoprocessor.models import Coordinate, RouteSegment, StoredRoute


@runtime_checkable
class AttributionFetcher(Protocol):
    """Protocol for a single map-matching request over one chunk."""

    def fetch_segments(self, coordinates: Sequence[Coordinate]) -> List[RouteSegment]:
        """
        Fetch attributed segments for one chunk of coordinates.

        Parameters
        ----------
        coordinates : Sequence[Coordinate]
            (lon, lat, elevation) tuples, within the service's request limits.

        Returns
        -------
        List[RouteSegment]
            Segments indexed relative to the first coordinate of the chunk.

        Raises
        ------
        AttributionFetchError
            On transport errors, non-2xx responses or malformed payloads.
        """
        ...


@runtime_checkable
class GradeCalculator(Protocol):
    """Protocol for the derived per-edge grade computation run on geometry writes."""

    def __call__(self, geometry: Sequence[Coordinate]) -> List[float]:
        ...


@runtime_checkable
class RouteStore(Protocol):
    """Protocol for route persistence."""

    def find_by_source_url(self, source_url: str) -> Optional[StoredRoute]:
        """Return the route ingested from `source_url`, if any."""
        ...

    def get_route(self, route_id: int) -> Optional[StoredRoute]:
        """Return a route by id, if any."""
        ...

    def list_routes(self) -> Iterator[StoredRoute]:
        """Iterate over every stored route."""
        ...

    def insert_route(self, **fields: Any) -> StoredRoute:
        """
        Insert a new route.

        Parameters
        ----------
        **fields
            StoredRoute fields except `id` and `created_at`, which the store assigns.

        Returns
        -------
        StoredRoute
            The persisted record.
        """
        ...

    def update_route(self, route_id: int, **fields: Any) -> StoredRoute:
        """
        Partially update a route; fields not passed are left untouched.
        Must be atomic per record.
        """
        ...

    def find_routes_missing_attribution(self, limit: int) -> List[StoredRoute]:
        """Return up to `limit` routes whose segments have never been stored."""
        ...
