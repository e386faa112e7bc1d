import os
import sys
from pathlib import Path

os.environ.setdefault("TWOGIS_API_KEY", "test-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("INTERACTION_LOG_ENABLED", "false")
os.environ.setdefault("WEATHER_ENABLED", "false")

ROOT_DIR = Path(__file__).resolve().parents[2]
BACKEND_DIR = ROOT_DIR / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from typing import Dict, List, Optional, Tuple

import pytest

from walkquest.models.route import GeneratedRoute, PlaceMatch
from walkquest.services.validation import CoordinateValidator

ANSWERS = {
    "timeAvailable": "2hours",
    "budget": "free",
    "vibes": ["history", "architecture"],
    "foodPreferences": [],
    "mentalState": "curious",
    "openToEvents": "no",
    "startLocation": {"lat": 59.9343, "lng": 30.3351, "address": "Невский проспект"},
}


class FakeResolver:
    """Answers from a fixed ``query -> (lat, lon)`` table, records every query."""

    def __init__(self, places: Dict[str, Tuple[float, float]]):
        self.places = places
        self.calls: List[Tuple[str, str]] = []

    async def resolve(self, query: str, region_id: str) -> Optional[PlaceMatch]:
        self.calls.append((query, region_id))
        if query not in self.places:
            return None
        lat, lon = self.places[query]
        return PlaceMatch(name=query, address=None, lat=lat, lon=lon, source_id=query)


async def no_sleep(seconds: float) -> None:
    return None


def make_point(number: int, name: str, lat: float, lon: float, **extra) -> dict:
    return {
        "point_number": number,
        "name": name,
        "coordinates": {"lat": lat, "lon": lon},
        **extra,
    }


def make_route(points: List[dict], **statistics) -> GeneratedRoute:
    return GeneratedRoute.model_validate(
        {
            "id": "route-1",
            "name": "Тестовый маршрут",
            "description": "",
            "points": points,
            "statistics": {"total_points": len(points), **statistics},
        }
    )


@pytest.fixture
def make_validator():
    def factory(places: Dict[str, Tuple[float, float]]) -> CoordinateValidator:
        return CoordinateValidator(
            resolver=FakeResolver(places),
            point_pause_seconds=0,
            query_pause_seconds=0,
            sleep=no_sleep,
        )

    return factory
