"""Coordinate verification for LLM-generated routes.

LLM coordinates for city sights are often hundreds of metres off, sometimes
kilometres. Every point is re-resolved by name against the 2GIS catalog,
which is treated as ground truth: resolved coordinates always replace the
proposed ones, and points that cannot be found, or land too far from where
the LLM put them, are dropped from the route.

Points are checked one at a time with a pause between them; the 2GIS key
has a low request quota.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from walkquest.core.config import settings
from walkquest.models.route import (
    GeneratedRoute,
    RoutePoint,
    RouteStatistics,
    ValidationVerdict,
)
from walkquest.services.geo import haversine_km, minutes_from_distance, route_length_km
from walkquest.services.places import PlacesResolver, places_resolver

logger = logging.getLogger(__name__)

# (displacement above, confidence), checked top to bottom
CONFIDENCE_STEPS: Tuple[Tuple[float, float], ...] = (
    (5.0, 0.2),
    (1.5, 0.5),
    (0.5, 0.7),
    (0.1, 0.9),
)
FIX_THRESHOLD_KM = 0.01

Sleeper = Callable[[float], Awaitable[None]]


def confidence_for_displacement(distance_km: float) -> float:
    for threshold, confidence in CONFIDENCE_STEPS:
        if distance_km > threshold:
            return confidence
    return 1.0


def reconcile_statistics(route: GeneratedRoute) -> GeneratedRoute:
    """Force ``total_points`` to match the points actually present."""
    if route.statistics.total_points != len(route.points):
        logger.info(
            f"Statistics mismatch: total_points={route.statistics.total_points}, "
            f"actual={len(route.points)}"
        )
        route.statistics.total_points = len(route.points)
    return route


class CoordinateValidator:
    def __init__(
        self,
        resolver: Optional[PlacesResolver] = None,
        point_pause_seconds: Optional[float] = None,
        query_pause_seconds: Optional[float] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.resolver = resolver or places_resolver
        self.point_pause_seconds = (
            settings.POINT_PAUSE_SECONDS if point_pause_seconds is None else point_pause_seconds
        )
        self.query_pause_seconds = (
            settings.QUERY_RETRY_PAUSE_SECONDS if query_pause_seconds is None else query_pause_seconds
        )
        self._sleep = sleep

    async def validate_point(
        self,
        name: str,
        region_id: str,
        proposed_lat: float,
        proposed_lon: float,
        search_queries: Optional[Sequence[str]] = None,
    ) -> ValidationVerdict:
        # Alternates replace the name, they are not appended to it
        queries = list(search_queries) if search_queries else [name]

        logger.info(f"🔍 Searching in 2GIS: \"{name}\" in region {region_id}")
        if search_queries:
            logger.info(f"   Alternative queries: {', '.join(search_queries)}")

        match = None
        matched_query = None
        for query in queries:
            match = await self.resolver.resolve(query, region_id)
            if match is not None:
                matched_query = query
                if query != name:
                    logger.info(f"   ✓ Found using alternative query: \"{query}\"")
                break
            await self._sleep(self.query_pause_seconds)

        if match is None:
            logger.warning(f"❌ No 2GIS results for \"{name}\" (tried {len(queries)} queries)")
            return ValidationVerdict.not_found()

        distance = haversine_km(proposed_lat, proposed_lon, match.lat, match.lon)
        fixed = distance > FIX_THRESHOLD_KM

        if fixed:
            logger.info(f"✅ Fixed \"{name}\": moved {distance:.2f}km")
            logger.info(f"   Found: {match.name}")
            logger.info(f"   Address: {match.address or 'N/A'}")
        else:
            logger.info(f"✓ \"{name}\" coordinates OK ({distance:.3f}km diff)")

        return ValidationVerdict(
            found=True,
            resolved=(match.lat, match.lon),
            displacement_km=distance,
            confidence=confidence_for_displacement(distance),
            fixed=fixed,
            matched_query=matched_query,
        )

    async def validate_route(
        self,
        route: GeneratedRoute,
        region_id: str,
        max_displacement_km: Optional[float] = None,
        desired_point_count: Optional[int] = None,
        recompute_statistics: Optional[bool] = None,
    ) -> GeneratedRoute:
        if not route.points:
            return route

        if max_displacement_km is None:
            max_displacement_km = settings.MAX_DISPLACEMENT_KM
        if recompute_statistics is None:
            recompute_statistics = settings.RECOMPUTE_ROUTE_STATISTICS

        total = len(route.points)
        logger.info(f"🔍 Validating {total} points through 2GIS with region_id={region_id}...")
        logger.info(f"   Max allowed distance: {max_displacement_km}km")
        if desired_point_count:
            logger.info(f"   Target points count: {desired_point_count}")

        checked: List[RoutePoint] = []
        for index, point in enumerate(route.points):
            if index > 0:
                await self._sleep(self.point_pause_seconds)

            logger.info(f"[{index + 1}/{total}] {point.name}")
            verdict = await self.validate_point(
                point.name,
                region_id,
                point.coordinates.lat,
                point.coordinates.lon,
                point.search_queries,
            )

            updated = point.model_copy(deep=True)
            if verdict.resolved is not None:
                updated.coordinates.lat, updated.coordinates.lon = verdict.resolved
            updated.validation = verdict.to_point_validation()
            checked.append(updated)

        kept: List[RoutePoint] = []
        dropped: List[RoutePoint] = []
        for p in checked:
            if p.validation.found and p.validation.distance_km < max_displacement_km:
                kept.append(p)
            else:
                dropped.append(p)

        logger.info(
            f"📊 Validation results: generated={total}, "
            f"found={sum(1 for p in checked if p.validation.found)}, "
            f"good={len(kept)}, dropped={len(dropped)}"
        )
        for p in dropped:
            reason = (
                "not found in 2GIS"
                if not p.validation.found
                else f"too far ({p.validation.distance_km:.2f}km)"
            )
            logger.info(f"   - {p.name} ({reason})")

        if desired_point_count and len(kept) > desired_point_count:
            logger.info(f"✂️ Trimming to {desired_point_count} points (from {len(kept)})")
            kept = kept[:desired_point_count]

        for number, p in enumerate(kept, 1):
            p.point_number = number

        statistics = route.statistics.model_copy(deep=True)
        statistics.total_points = len(kept)
        if recompute_statistics:
            self._recompute_statistics(statistics, kept)

        logger.info(f"✅ Final route: {len(kept)} points")

        return route.model_copy(
            update={"points": kept, "statistics": statistics},
            deep=True,
        )

    def _recompute_statistics(self, statistics: RouteStatistics, points: List[RoutePoint]) -> None:
        distance = route_length_km((p.coordinates.lat, p.coordinates.lon) for p in points)
        statistics.total_distance = round(distance, 2)
        statistics.total_walk_time = round(
            minutes_from_distance(distance, settings.DEFAULT_WALK_SPEED_KMH)
        )


coordinate_validator = CoordinateValidator()
