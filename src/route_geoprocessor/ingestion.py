import logging
from typing import Any, Dict, Iterable, List, Optional

from route_geoprocessor.exceptions import InvalidGPXError, RouteNotFoundError
from route_geoprocessor.models import (
    UNTITLED_ROUTE,
    IngestDecision,
    IngestResult,
    ProcessedRoute,
    RecomputeSummary,
    RouteSubmission,
    StoredRoute,
)
from route_geoprocessor.pipeline import RouteProcessingPipeline
from route_geoprocessor.protocols import RouteStore

logger = logging.getLogger(__name__)


def merge_tags(existing: Iterable[str], incoming: Iterable[str]) -> List[str]:
    """Set union of two tag collections; existing tags keep their order, new ones follow."""
    merged: List[str] = []
    seen = set()
    for tag in list(existing) + list(incoming):
        if tag not in seen:
            seen.add(tag)
            merged.append(tag)
    return merged


def computed_route_values(processed: ProcessedRoute) -> Dict[str, Any]:
    """Storage fields derived from a processed route. Grades are the store's job."""
    return {
        "geometry": processed.geometry,
        "total_ascent": processed.total_ascent,
        "total_descent": processed.total_descent,
        "segments": processed.segments,
    }


class IngestionCoordinator:
    """
    Smart ingestion of scraped routes.

    Each submission is matched against the store by source URL and turned
    into exactly one write: a create, a full update when the GPX changed, or
    a tags-only update when it did not. Attribution is skipped by default
    on this path to spare the map-matching service's rate limit; the
    reprocessing scheduler picks the route up later.
    """

    def __init__(self, store: RouteStore, pipeline: Optional[RouteProcessingPipeline] = None):
        self.store = store
        self.pipeline = pipeline or RouteProcessingPipeline()

    async def ingest(self, submission: RouteSubmission, use_attribution: bool = False) -> IngestResult:
        """
        Creates or updates the route for `submission.source_url`.

        Raises:
            InvalidGPXError: if the GPX has no usable geometry. Nothing is written.
        """
        existing = self.store.find_by_source_url(submission.source_url)
        gpx_changed = existing is not None and existing.gpx_content != submission.gpx_content

        # A tags-only update keeps the stored segments, so never attribute for one
        attribute = use_attribution and (existing is None or gpx_changed)
        processed = await self.pipeline.process(submission.gpx_content, use_attribution=attribute)

        if existing is None:
            route = self.store.insert_route(
                source_url=submission.source_url,
                title=submission.title or UNTITLED_ROUTE,
                gpx_content=submission.gpx_content,
                tags=merge_tags([], submission.tags),
                **computed_route_values(processed),
            )
            logger.info(f"Created route {route.id} from {submission.source_url}")
            return IngestResult(decision=IngestDecision.CREATE, route_id=route.id)

        tags = merge_tags(existing.tags, submission.tags)

        fields: Dict[str, Any] = {"tags": tags}
        if submission.title:
            fields["title"] = submission.title

        if gpx_changed:
            # Stored segment indices belong to the old geometry
            fields["gpx_content"] = submission.gpx_content
            fields.update(computed_route_values(processed))
            decision = IngestDecision.FULL_UPDATE
        else:
            decision = IngestDecision.TAGS_ONLY_UPDATE

        self.store.update_route(existing.id, **fields)
        logger.info(f"Updated route {existing.id} ({decision.value}) from {submission.source_url}")
        return IngestResult(decision=decision, route_id=existing.id, gpx_changed=gpx_changed)

    async def recompute_route(self, route_id: int, use_attribution: bool = True) -> StoredRoute:
        """
        Recomputes geometry, elevation stats and attribution for one stored route.

        Raises:
            RouteNotFoundError: if no route has this id.
            InvalidGPXError: if the route has no GPX content or it cannot be processed.
        """
        route = self.store.get_route(route_id)
        if route is None:
            raise RouteNotFoundError(f"Route {route_id} not found")
        if not route.gpx_content:
            raise InvalidGPXError(f"Route {route_id} has no GPX content")

        processed = await self.pipeline.process(route.gpx_content, use_attribution=use_attribution)
        return self.store.update_route(route_id, **computed_route_values(processed))

    async def recompute_all(self) -> RecomputeSummary:
        """
        Recomputes geometry and elevation stats for every stored route.

        Attribution is never requested here and stored segments are left
        as they are. One route failing does not stop the others.
        """
        summary = RecomputeSummary()

        for route in self.store.list_routes():
            if not route.gpx_content:
                summary.error_count += 1
                continue
            try:
                processed = await self.pipeline.process(route.gpx_content, use_attribution=False)
                values = computed_route_values(processed)
                values.pop("segments")
                self.store.update_route(route.id, **values)
                summary.success_count += 1
            except InvalidGPXError as e:
                logger.error(f"Failed to process GPX for route {route.id}: {e}")
                summary.error_count += 1
            except Exception as e:
                logger.error(f"Error recomputing route {route.id}: {e}")
                summary.error_count += 1

        logger.info(f"Bulk recompute done: {summary.success_count} ok, {summary.error_count} failed")
        return summary
