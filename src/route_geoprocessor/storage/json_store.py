import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from route_geoprocessor.feature_engineering.grades import compute_grades
from route_geoprocessor.models import StoredRoute
from route_geoprocessor.protocols import GradeCalculator

logger = logging.getLogger(__name__)

STORE_FILE = "routes.json"


class JsonRouteStore:
    """
    Persists routes to a local JSON file.

    Reference implementation of the RouteStore protocol: ids are assigned
    sequentially, `source_url` is unique, and every read-modify-write runs
    under one lock so two updates to the same route cannot interleave.
    Grades are derived from geometry whenever geometry is written.
    """

    def __init__(self, store_file: str = STORE_FILE, grade_calculator: GradeCalculator = compute_grades):
        self.store_file = store_file
        self.grade_calculator = grade_calculator
        self._lock = threading.RLock()

    def _load_raw(self) -> Dict[str, Any]:
        if not os.path.exists(self.store_file):
            return {"next_id": 1, "routes": []}
        with open(self.store_file, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save_raw(self, data: Dict[str, Any]) -> None:
        tmp_file = f"{self.store_file}.tmp"
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_file, self.store_file)

    def _routes(self) -> List[StoredRoute]:
        return [StoredRoute(**raw) for raw in self._load_raw()["routes"]]

    def _with_grades(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        if fields.get("geometry") is not None:
            fields["grades"] = self.grade_calculator(fields["geometry"])
        return fields

    def find_by_source_url(self, source_url: str) -> Optional[StoredRoute]:
        with self._lock:
            return next((r for r in self._routes() if r.source_url == source_url), None)

    def get_route(self, route_id: int) -> Optional[StoredRoute]:
        with self._lock:
            return next((r for r in self._routes() if r.id == route_id), None)

    def list_routes(self) -> Iterator[StoredRoute]:
        with self._lock:
            routes = self._routes()
        return iter(routes)

    def insert_route(self, **fields: Any) -> StoredRoute:
        with self._lock:
            data = self._load_raw()
            source_url = fields.get("source_url")
            if any(raw["source_url"] == source_url for raw in data["routes"]):
                raise ValueError(f"A route with source_url {source_url!r} already exists")

            fields = self._with_grades(dict(fields))
            fields.pop("id", None)
            fields.setdefault("created_at", datetime.now(timezone.utc))
            route = StoredRoute(id=data["next_id"], **fields)

            data["routes"].append(route.model_dump(mode="json"))
            data["next_id"] = route.id + 1
            self._save_raw(data)

        logger.info(f"Inserted route {route.id} ({route.source_url})")
        return route

    def update_route(self, route_id: int, **fields: Any) -> StoredRoute:
        unknown = set(fields) - (set(StoredRoute.model_fields) - {"id"})
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        with self._lock:
            data = self._load_raw()
            for i, raw in enumerate(data["routes"]):
                if raw["id"] == route_id:
                    break
            else:
                raise KeyError(f"Route {route_id} not found")

            current = StoredRoute(**raw)
            route = current.model_copy(update=self._with_grades(dict(fields)))
            # model_copy skips validation; round-trip to coerce the new values
            route = StoredRoute(**route.model_dump())

            data["routes"][i] = route.model_dump(mode="json")
            self._save_raw(data)

        logger.debug(f"Updated route {route_id}: {sorted(fields)}")
        return route

    def find_routes_missing_attribution(self, limit: int) -> List[StoredRoute]:
        with self._lock:
            pending = [r for r in self._routes() if r.segments is None]
        return pending[:limit]

    def reset(self) -> None:
        with self._lock:
            if os.path.exists(self.store_file):
                os.remove(self.store_file)
                logger.info("Route store reset.")
