from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class PointValidation(BaseModel):
    """Outcome of checking a point against the 2GIS catalog."""

    found: bool
    fixed: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    distance_km: Optional[float] = None
    matched_query: Optional[str] = None

    @field_serializer("distance_km")
    def _serialize_distance(self, value: Optional[float]) -> Optional[float]:
        # JSON has no infinity
        if value is None or math.isinf(value):
            return None
        return value


class RoutePoint(BaseModel):
    """A stop on the route.

    Only the fields the coordinate check needs are typed; descriptive payload
    (category, quiz, tips, transition, ...) is kept as-is in the model extras.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    point_number: int
    name: str
    coordinates: Coordinates
    search_queries: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("search_queries", "alternateQueries", "alternate_queries"),
    )
    validation: Optional[PointValidation] = None


class RouteStatistics(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_points: int = 0
    total_distance: Optional[float] = None
    total_walk_time: Optional[float] = None
    total_transit_time: Optional[float] = None


class GeneratedRoute(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    name: str = ""
    description: str = ""
    points: List[RoutePoint] = Field(default_factory=list)
    statistics: RouteStatistics = Field(default_factory=RouteStatistics)


@dataclass(frozen=True)
class PlaceMatch:
    name: str
    address: Optional[str]
    lat: float
    lon: float
    source_id: str


@dataclass(frozen=True)
class ValidationVerdict:
    found: bool
    resolved: Optional[Tuple[float, float]]
    displacement_km: float
    confidence: float
    fixed: bool
    matched_query: Optional[str] = None

    @classmethod
    def not_found(cls) -> "ValidationVerdict":
        return cls(
            found=False,
            resolved=None,
            displacement_km=math.inf,
            confidence=0.0,
            fixed=False,
        )

    def to_point_validation(self) -> PointValidation:
        return PointValidation(
            found=self.found,
            fixed=self.fixed,
            confidence=self.confidence,
            distance_km=self.displacement_km,
            matched_query=self.matched_query,
        )
