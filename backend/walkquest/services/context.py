from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

import httpx

from walkquest.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Europe/Moscow"

TIME_OF_DAY_PHASES: Tuple[Tuple[str, int, int], ...] = (
    ("morning", 6, 12),
    ("afternoon", 12, 18),
    ("evening", 18, 22),
)


@dataclass(frozen=True)
class WeatherSnapshot:
    temperature_c: Optional[float]
    condition: str
    recommendation: Optional[str] = None

    def summary(self) -> str:
        parts = []
        if self.temperature_c is not None:
            parts.append(f"{int(round(self.temperature_c))}°C")
        parts.append(self.condition)
        text = ", ".join(parts)
        if self.recommendation:
            text += f". {self.recommendation}"
        return text


DEFAULT_WEATHER = WeatherSnapshot(
    temperature_c=15.0,
    condition="облачно",
    recommendation="Возьмите зонт на всякий случай",
)


# Well-known sights offered to the LLM as anchors, by 2GIS region id
SEED_PLACES: Dict[str, List[Dict[str, Any]]] = {
    "38": [
        {
            "name": "Государственный Эрмитаж",
            "address": "Дворцовая площадь, 2",
            "coordinates": {"lat": 59.9398, "lon": 30.3146},
            "category": "museum",
            "opening_hours": "10:30-18:00 (вт, чт, сб, вс), 10:30-21:00 (ср, пт)",
            "ticket_price": 500,
        },
        {
            "name": "Петропавловская крепость",
            "address": "о. Заячий",
            "coordinates": {"lat": 59.9504, "lon": 30.3164},
            "category": "monument",
            "opening_hours": "10:00-18:00",
            "ticket_price": 300,
        },
    ],
}

def resolve_time_of_day(moment: datetime) -> str:
    hour = moment.hour
    for phase, start, end in TIME_OF_DAY_PHASES:
        if start <= hour < end:
            return phase
    return "night"


def city_timezone() -> ZoneInfo:
    try:
        return ZoneInfo(settings.CITY_TIMEZONE)
    except Exception:
        logger.warning(f"Unknown CITY_TIMEZONE {settings.CITY_TIMEZONE!r}, using {DEFAULT_TIMEZONE}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def city_time_of_day(moment: datetime) -> str:
    """Time-of-day phase as seen in the city, whatever the server zone."""
    return resolve_time_of_day(moment.astimezone(city_timezone()))


def available_places_for(region_id: str) -> List[Dict[str, Any]]:
    return [dict(place) for place in SEED_PLACES.get(region_id, [])]


def _safe_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


async def load_weather_snapshot(lat: float, lon: float) -> WeatherSnapshot:
    """Current weather at the start point, or a neutral default.

    Live lookup is opt-in (``WEATHER_ENABLED``); any failure falls back to the
    default snapshot since weather only flavours the prompt.
    """
    if not settings.WEATHER_ENABLED:
        return DEFAULT_WEATHER

    url = f"https://wttr.in/{lat},{lon}"
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(url, params={"format": "j1", "lang": "ru"})
            response.raise_for_status()
        payload = response.json()
        current = (payload.get("current_condition") or [None])[0] or {}
    except Exception as exc:
        logger.warning(f"Weather lookup failed: {exc}")
        return DEFAULT_WEATHER

    description = (
        (current.get("lang_ru") or current.get("weatherDesc") or [{}])[0].get("value", "")
    ).strip()
    temperature = _safe_float(current.get("temp_C"))
    precipitation = _safe_float(current.get("precipMM")) or 0.0
    wind = _safe_float(current.get("windspeedKmph")) or 0.0

    if precipitation >= 1.0:
        recommendation = "Сегодня дождливо — возьмите зонт"
    elif precipitation > 0.1:
        recommendation = "Возможен лёгкий дождь, захватите ветровку"
    elif wind >= 25:
        recommendation = "На улице ветрено, планируйте остановки в помещениях"
    else:
        recommendation = "Погода располагает к прогулке"

    return WeatherSnapshot(
        temperature_c=temperature,
        condition=description.lower() or DEFAULT_WEATHER.condition,
        recommendation=recommendation,
    )
