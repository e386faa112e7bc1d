import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from walkquest.core.config import settings
from walkquest.core.exceptions import GenerationError
from walkquest.core.tracing import session_scope
from walkquest.models.route import GeneratedRoute
from walkquest.models.schemas import PersonalizationAnswers
from walkquest.services.context import (
    WeatherSnapshot,
    available_places_for,
    city_time_of_day,
    load_weather_snapshot,
)
from walkquest.services.interaction_log import (
    InteractionRecorder,
    interaction_recorder,
    make_session_id,
)
from walkquest.services.llm import LLMService, get_llm_service, strip_code_fences
from walkquest.services.prompts import PromptContext, build_refine_prompt, build_system_prompt
from walkquest.services.regions import normalize_region_id
from walkquest.services.validation import (
    CoordinateValidator,
    coordinate_validator,
    reconcile_statistics,
)

logger = logging.getLogger(__name__)

WeatherLoader = Callable[[float, float], Awaitable[WeatherSnapshot]]


def parse_route_payload(raw_text: str) -> GeneratedRoute:
    cleaned = strip_code_fences(raw_text)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse LLM response: {cleaned[:500]}")
        raise GenerationError("Invalid JSON response from LLM", raw_text=raw_text) from e

    if not isinstance(data, dict):
        raise GenerationError("LLM response is not a JSON object", raw_text=raw_text)

    route_data = data.get("route", data)
    if not isinstance(route_data, dict):
        raise GenerationError("LLM response has no route object", raw_text=raw_text)

    try:
        return GeneratedRoute.model_validate(route_data)
    except ValidationError as e:
        logger.error(f"LLM route does not match schema: {e.error_count()} errors")
        raise GenerationError(f"Invalid route structure: {e}", raw_text=raw_text) from e


class RouteGenerator:
    """Prompt → LLM → parse → coordinate validation → reconciled route."""

    def __init__(
        self,
        llm: Optional[LLMService] = None,
        validator: Optional[CoordinateValidator] = None,
        recorder: Optional[InteractionRecorder] = None,
        weather_loader: WeatherLoader = load_weather_snapshot,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._llm = llm
        self.validator = validator or coordinate_validator
        self.recorder = recorder or interaction_recorder
        self.weather_loader = weather_loader
        self.clock = clock

    @property
    def llm(self) -> LLMService:
        if self._llm is None:
            self._llm = get_llm_service()
        return self._llm

    async def generate(
        self,
        answers: PersonalizationAnswers,
        region_id: Optional[str] = None,
        desired_points: Optional[int] = None,
        validate: bool = True,
    ) -> GeneratedRoute:
        now = self.clock()
        region = normalize_region_id(region_id)
        start = answers.start_location
        context = PromptContext(
            answers=answers,
            weather=await self.weather_loader(start.lat, start.lng),
            time_of_day=city_time_of_day(now),
            available_places=available_places_for(region),
        )
        prompt = build_system_prompt(context, settings.DEFAULT_CITY, desired_points)

        logger.info(
            f"Generating route: time={answers.time_available}, vibes={answers.vibes}, "
            f"region={region}"
        )
        route = await self._complete(prompt, now)

        if validate:
            route = await self.validator.validate_route(
                route,
                region,
                desired_point_count=desired_points,
            )

        return reconcile_statistics(route)

    async def refine(
        self,
        route: GeneratedRoute,
        feedback: str,
        region_id: Optional[str] = None,
    ) -> GeneratedRoute:
        current = route.model_dump(mode="json", exclude={"points": {"__all__": {"validation"}}})
        prompt = build_refine_prompt(current, feedback)

        logger.info(f"Refining route {route.id or route.name!r}: {feedback[:80]}")
        refined = await self._complete(prompt, self.clock())
        refined = await self.validator.validate_route(refined, normalize_region_id(region_id))
        return reconcile_statistics(refined)

    async def _complete(self, prompt: str, now: datetime) -> GeneratedRoute:
        session_id = make_session_id(now)
        with session_scope(session_id):
            try:
                raw_text = await self.llm.generate(prompt)
                route = parse_route_payload(raw_text)
            except GenerationError as e:
                self.recorder.record_error(make_session_id(now, prefix="error"), prompt, e)
                raise

            response: Dict[str, Any] = {"route": route.model_dump(mode="json")}
            self.recorder.record(session_id, {"prompt": prompt, "response": response})
            logger.info(f"LLM proposed {len(route.points)} points")
        return route


route_generator = RouteGenerator()
