import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter
from fastapi.responses import ORJSONResponse
from pydantic import ValidationError

from walkquest.core.exceptions import GenerationError
from walkquest.models.schemas import (
    GenerateRouteRequest,
    PersonalizationAnswers,
    RefineRouteRequest,
    RouteEnvelope,
    ValidateRouteRequest,
)
from walkquest.services.regions import normalize_region_id
from walkquest.services.route_generator import route_generator
from walkquest.services.validation import coordinate_validator

router = APIRouter()
logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, details: Optional[Any] = None) -> ORJSONResponse:
    payload: Dict[str, Any] = {"error": error}
    if details is not None:
        payload["details"] = details
    return ORJSONResponse(payload, status_code=status_code)


@router.post("/generate", response_model=RouteEnvelope)
async def generate_route(request: GenerateRouteRequest):
    """Generate a personalised route and verify its coordinates in 2GIS"""

    if not request.answers:
        return _error(400, "Missing answers")

    try:
        answers = PersonalizationAnswers.model_validate(request.answers)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        return _error(400, "Invalid answers", fields)

    try:
        route = await route_generator.generate(
            answers,
            region_id=request.region_id,
            desired_points=request.desired_points,
            validate=request.validate_coordinates,
        )
    except GenerationError as e:
        logger.error(f"Route generation failed: {e.message}")
        return _error(500, "Failed to generate route", e.message)
    except Exception as e:
        logger.exception("Route generation crashed")
        return _error(500, "Failed to generate route", str(e))

    return RouteEnvelope(route=route)


@router.post("/refine", response_model=RouteEnvelope)
async def refine_route(request: RefineRouteRequest):
    """Adjust an existing route according to user feedback"""

    try:
        route = await route_generator.refine(
            request.route,
            request.feedback,
            region_id=request.region_id,
        )
    except GenerationError as e:
        logger.error(f"Route refinement failed: {e.message}")
        return _error(500, "Failed to refine route", e.message)
    except Exception as e:
        logger.exception("Route refinement crashed")
        return _error(500, "Failed to refine route", str(e))

    return RouteEnvelope(route=route)


@router.post("/validate", response_model=RouteEnvelope)
async def validate_route(request: ValidateRouteRequest) -> RouteEnvelope:
    """Re-check coordinates of a client-supplied route"""

    route = await coordinate_validator.validate_route(
        request.route,
        normalize_region_id(request.region_id),
        max_displacement_km=request.max_distance_km,
        desired_point_count=request.desired_points,
        recompute_statistics=request.recompute_statistics,
    )
    return RouteEnvelope(route=route)
