from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from walkquest.models.route import GeneratedRoute


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StartLocation(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None


class PersonalizationAnswers(CamelModel):
    time_available: str = Field(
        ...,
        alias="timeAvailable",
        pattern="^(30min|1hour|2hours|3hours|halfday|fullday)$",
    )
    budget: str = Field(default="moderate", pattern="^(free|budget|moderate|premium)$")
    vibes: List[str] = Field(..., min_length=1)
    food_preferences: List[str] = Field(default_factory=list, alias="foodPreferences")
    mental_state: str = Field(default="curious", alias="mentalState")
    open_to_events: str = Field(default="maybe", alias="openToEvents", pattern="^(yes|no|maybe)$")
    start_location: StartLocation = Field(..., alias="startLocation")
    previous_visits: Optional[List[str]] = Field(default=None, alias="previousVisits")
    disliked_places: Optional[List[str]] = Field(default=None, alias="dislikedPlaces")
    favorite_places: Optional[List[str]] = Field(default=None, alias="favoritePlaces")


class GenerateRouteRequest(CamelModel):
    # Validated by the endpoint so that a missing field maps to 400
    answers: Optional[Dict[str, Any]] = None
    region_id: Optional[str] = Field(default=None, alias="regionId")
    desired_points: Optional[int] = Field(default=None, alias="desiredPoints", ge=1, le=12)
    validate_coordinates: bool = Field(default=True, alias="validate")


class RefineRouteRequest(CamelModel):
    route: GeneratedRoute
    feedback: str = Field(..., min_length=1)
    region_id: Optional[str] = Field(default=None, alias="regionId")


class ValidateRouteRequest(CamelModel):
    route: GeneratedRoute
    region_id: Optional[str] = Field(default=None, alias="regionId")
    max_distance_km: Optional[float] = Field(default=None, alias="maxDistanceKm", gt=0)
    desired_points: Optional[int] = Field(default=None, alias="desiredPoints", ge=1)
    recompute_statistics: Optional[bool] = Field(default=None, alias="recomputeStatistics")


class RouteEnvelope(BaseModel):
    route: GeneratedRoute


class RegionResolveRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class RegionResolveResponse(CamelModel):
    address: Optional[str] = None
    region_id: str = Field(..., alias="regionId")


class InteractionSession(CamelModel):
    session_id: str = Field(..., alias="sessionId")
    files: List[str] = []
