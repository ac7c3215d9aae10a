import json
import logging
from pathlib import Path
from typing import List, Sequence

logger = logging.getLogger(__name__)


def _in_ring(lng: float, lat: float, ring: Sequence[Sequence[float]]) -> bool:
    """Ray casting over one GeoJSON ring of [lng, lat] positions."""
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lng < x_cross:
                inside = not inside
        j = i
    return inside


def point_in_polygon(lat: float, lng: float, coordinates: List) -> bool:
    """Whether (lat, lng) falls inside a GeoJSON Polygon's coordinates.

    The first ring is the outer boundary, any further rings are holes.
    """
    if not coordinates or not _in_ring(lng, lat, coordinates[0]):
        return False
    return not any(_in_ring(lng, lat, hole) for hole in coordinates[1:])


def point_in_geometry(lat: float, lng: float, geometry: dict) -> bool:
    if geometry.get("type") == "Polygon":
        return point_in_polygon(lat, lng, geometry.get("coordinates", []))
    if geometry.get("type") == "MultiPolygon":
        return any(point_in_polygon(lat, lng, polygon) for polygon in geometry.get("coordinates", []))
    return False


class CampusBoundary:
    def __init__(self, feature_collection: dict):
        self.feature_collection = feature_collection
        self.geometries = [
            feature["geometry"] for feature in feature_collection.get("features", []) if feature.get("geometry")
        ]

    @classmethod
    def from_file(cls, path) -> "CampusBoundary":
        with open(Path(path), encoding="utf-8") as f:
            data = json.load(f)
        logger.info(f"Campus boundary loaded from {path}")
        return cls(data)

    def contains(self, lat: float, lng: float) -> bool:
        return any(point_in_geometry(lat, lng, geometry) for geometry in self.geometries)
