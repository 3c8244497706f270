"""
Value types shared by the geoprocessing pipeline.

Coordinates are plain `(lon, lat, elevation)` tuples, matching GeoJSON
ordering. Everything else is a Pydantic model so it can be handed to the
storage collaborator with `model_dump()`.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

Coordinate = Tuple[float, float, Optional[float]]
Chunk = List[Coordinate]

UNTITLED_ROUTE = "Untitled Route"


class RouteSegment(BaseModel):
    """
    A stretch of the route between two coordinate indices, annotated with
    road and surface metadata by the map-matching service.
    """

    model_config = ConfigDict(frozen=True)

    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)
    duration_seconds: float = Field(default=0.0, ge=0)
    length_km: float = Field(default=0.0, ge=0)
    surface: str = "unknown"
    road_class: Optional[str] = None
    speed_kmh: Optional[float] = None
    use: Optional[str] = None
    bicycle_type: Optional[str] = None
    lane_count: Optional[int] = None
    cycle_lane: Optional[str] = None
    bicycle_network: Optional[int] = None

    @model_validator(mode="after")
    def _check_index_order(self) -> "RouteSegment":
        if self.end_index <= self.start_index:
            raise ValueError(
                f"end_index ({self.end_index}) must be greater than start_index ({self.start_index})"
            )
        return self

    def shifted(self, offset: int) -> "RouteSegment":
        """Returns a copy re-expressed in a parent coordinate space."""
        return self.model_copy(
            update={"start_index": self.start_index + offset, "end_index": self.end_index + offset}
        )


class ElevationStats(BaseModel):
    total_ascent: float = 0.0
    total_descent: float = 0.0


class ProcessedRoute(BaseModel):
    """
    Result of running one GPX document through the pipeline.
    Built fresh for every ingestion or recompute and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    geometry: List[Coordinate] = Field(min_length=2)
    total_ascent: float = Field(ge=0)
    total_descent: float = Field(ge=0)
    segments: Optional[List[RouteSegment]] = None

    @property
    def has_attribution(self) -> bool:
        return self.segments is not None


class IngestDecision(str, Enum):
    CREATE = "create"
    FULL_UPDATE = "full_update"
    TAGS_ONLY_UPDATE = "tags_only_update"


class RouteSubmission(BaseModel):
    """An incoming route, keyed by the URL it was scraped from."""

    source_url: str = Field(min_length=1)
    gpx_content: str = Field(min_length=1)
    title: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class IngestResult(BaseModel):
    decision: IngestDecision
    route_id: int
    gpx_changed: Optional[bool] = None

    @property
    def created(self) -> bool:
        return self.decision is IngestDecision.CREATE

    @property
    def updated(self) -> bool:
        return not self.created


class StoredRoute(BaseModel):
    """A route record as returned by the storage collaborator."""

    model_config = ConfigDict(extra="ignore")

    id: int
    source_url: str
    title: Optional[str] = None
    gpx_content: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    geometry: Optional[List[Coordinate]] = None
    total_ascent: Optional[float] = None
    total_descent: Optional[float] = None
    segments: Optional[List[RouteSegment]] = None
    grades: Optional[List[float]] = None
    created_at: Optional[datetime] = None


class ReprocessingReport(BaseModel):
    candidates: int = 0
    succeeded: List[int] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)


class RecomputeSummary(BaseModel):
    success_count: int = 0
    error_count: int = 0
