import logging
from typing import Optional

from route_geoprocessor.data_ingestion.attribution_client import AttributionClient
from route_geoprocessor.data_ingestion.gpx_processor import gpx_to_coordinates
from route_geoprocessor.exceptions import InvalidGPXError
from route_geoprocessor.feature_engineering.elevation import calculate_elevation_stats
from route_geoprocessor.models import ProcessedRoute

logger = logging.getLogger(__name__)


class RouteProcessingPipeline:
    """
    Orchestrates GPX processing: extract geometry -> elevation stats ->
    (optionally) map-matched attribution.
    """

    def __init__(self, attribution_client: Optional[AttributionClient] = None):
        self._attribution_client = attribution_client

    @property
    def attribution_client(self) -> AttributionClient:
        # Built lazily so ingestion-only use never opens the HTTP cache
        if self._attribution_client is None:
            self._attribution_client = AttributionClient()
        return self._attribution_client

    async def process(self, gpx_content: str, use_attribution: bool = False) -> ProcessedRoute:
        """
        Executes the pipeline for one GPX document.

        Args:
            gpx_content: Raw GPX XML text.
            use_attribution: Call the map-matching service. When it is
                unavailable the route is still returned, with segments=None.

        Raises:
            InvalidGPXError: if the document has no usable line geometry.
        """
        geometry = gpx_to_coordinates(gpx_content)
        if geometry is None:
            raise InvalidGPXError("GPX has no usable line geometry")

        stats = calculate_elevation_stats(geometry)

        segments = None
        if use_attribution:
            segments = await self.attribution_client.get_route_attributes(geometry)

        logger.info(
            f"Processed route: {len(geometry)} points, "
            f"+{stats.total_ascent:.0f}m/-{stats.total_descent:.0f}m, "
            f"{'no' if segments is None else len(segments)} segments"
        )
        return ProcessedRoute(
            geometry=geometry,
            total_ascent=stats.total_ascent,
            total_descent=stats.total_descent,
            segments=segments,
        )
