from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from walkquest.models.schemas import PersonalizationAnswers
from walkquest.services.context import WeatherSnapshot

TIME_PREFERENCES: Dict[str, str] = {
    "30min": "30 минут — короткая прогулка",
    "1hour": "1 час — небольшой маршрут",
    "2hours": "2 часа — обычная прогулка",
    "3hours": "3 часа — насыщенный маршрут",
    "halfday": "полдня (4–5 часов)",
    "fullday": "целый день (6+ часов)",
}

BUDGETS: Dict[str, str] = {
    "free": "бесплатно (только бесплатные места)",
    "budget": "эконом (до 1000 ₽)",
    "moderate": "средний (1000–3000 ₽)",
    "premium": "премиум (от 3000 ₽)",
}

MENTAL_STATES: Dict[str, str] = {
    "energetic": "энергичный — хочет активности",
    "relaxed": "расслабленный — хочет спокойствия",
    "curious": "любопытный — хочет узнать новое",
    "social": "общительный — хочет людей вокруг",
    "contemplative": "задумчивый — хочет тишины",
    "adventurous": "авантюрный — хочет приключений",
}

# Extra candidates requested on top of the target so that enough points
# survive coordinate validation
SPARE_POINTS = 2

RESPONSE_FORMAT = """{
  "route": {
    "id": "unique-route-id",
    "name": "Название маршрута",
    "description": "Почему маршрут подходит пользователю",
    "points": [
      {
        "point_number": 1,
        "name": "Официальное название места, как в 2GIS",
        "search_queries": ["Официальное название", "Короткое название", "Название + улица"],
        "description": "2-3 предложения о месте",
        "category": "history | art | architecture | nature | food | culture | photography | science | music | sports",
        "coordinates": {"lat": 59.9343, "lon": 30.3351},
        "visit_duration_minutes": 30,
        "price_level": "free | budget | moderate | premium",
        "quiz": {
          "questions": [
            {
              "question": "Вопрос о месте?",
              "options": ["Вариант 1", "Вариант 2", "Вариант 3"],
              "correct_answer": 0,
              "points": 10,
              "explanation": "Почему ответ верный"
            }
          ],
          "total_points": 30
        },
        "tips": ["Совет"],
        "transition": {
          "method": "walk | transit | taxi",
          "duration_minutes": 15,
          "distance_km": 1.2,
          "description": "Как добраться до следующей точки"
        }
      }
    ],
    "statistics": {
      "total_walk_time": 45,
      "total_transit_time": 0,
      "total_distance": 3.5,
      "total_points": 4,
      "estimated_cost": {"min": 500, "max": 1000, "currency": "RUB"},
      "calories_burned": 250,
      "carbon_footprint": 0.5
    },
    "personalization_score": 95,
    "reasoning": "Почему выбран именно этот маршрут"
  }
}"""


@dataclass
class PromptContext:
    answers: PersonalizationAnswers
    weather: Optional[WeatherSnapshot] = None
    time_of_day: Optional[str] = None
    available_places: List[Dict[str, Any]] = field(default_factory=list)
    current_events: List[Dict[str, Any]] = field(default_factory=list)


def _optional_line(label: str, values: Optional[List[str]]) -> str:
    if not values:
        return ""
    return f"{label}: {', '.join(values)}\n"


def build_system_prompt(
    context: PromptContext,
    city: str,
    desired_points: Optional[int] = None,
) -> str:
    answers = context.answers
    start = answers.start_location

    profile = (
        f"Время: {TIME_PREFERENCES.get(answers.time_available, answers.time_available)}\n"
        f"Бюджет: {BUDGETS.get(answers.budget, answers.budget)}\n"
        f"Интересы: {', '.join(answers.vibes)}\n"
        f"Еда: {', '.join(answers.food_preferences) or 'без предпочтений'}\n"
        f"Состояние: {MENTAL_STATES.get(answers.mental_state, answers.mental_state)}\n"
        f"Открыт к мероприятиям: {answers.open_to_events}\n"
        f"Старт: lat {start.lat}, lng {start.lng}"
        f"{f' ({start.address})' if start.address else ''}\n"
    )
    profile += _optional_line("Уже посещал", answers.previous_visits)
    profile += _optional_line("Не понравилось", answers.disliked_places)
    profile += _optional_line("Любимые места", answers.favorite_places)

    environment = ""
    if context.weather:
        environment += f"Погода: {context.weather.summary()}\n"
    if context.time_of_day:
        environment += f"Время суток: {context.time_of_day}\n"

    places = ""
    if context.available_places:
        places = (
            "\n## ИЗВЕСТНЫЕ МЕСТА ГОРОДА\n"
            "Можно использовать как опорные точки, но не ограничивайся ими:\n"
            f"{json.dumps(context.available_places, ensure_ascii=False, indent=2)}\n"
        )

    events = ""
    if context.current_events:
        events = (
            "\n## ТЕКУЩИЕ МЕРОПРИЯТИЯ\n"
            f"{json.dumps(context.current_events, ensure_ascii=False, indent=2)}\n"
        )

    points_rule = ""
    if desired_points:
        points_rule = (
            f"- Предложи {desired_points + SPARE_POINTS} точек: часть может не пройти "
            "проверку координат\n"
        )

    return f"""Ты — эксперт по образовательному туризму, город: {city}. Составь персональный пеший маршрут по ответам пользователя.

## ПРОФИЛЬ ПОЛЬЗОВАТЕЛЯ

{profile}
{environment}{places}{events}
## ТРЕБОВАНИЯ

1. Маршрут соответствует интересам и состоянию пользователя
2. Переходы между точками короткие и логичные, первая точка ближе всего к старту
3. Общее время укладывается в доступное с запасом 10-15%
4. Бюджет не превышен; для "free" — только бесплатные места
5. Разные типы мест, а не только музеи
6. Для каждой точки квиз из 3-5 неочевидных вопросов с тремя вариантами ответа
7. Места из "Не понравилось" не включай, из "Уже посещал" — только если нет альтернатив
8. В дождь больше крытых мест, в хорошую погоду — открытых

## КООРДИНАТЫ

- Используй только реально существующие места, которые есть в каталоге 2GIS
- "name" — официальное название без описательных слов ("исторический", "здание")
- "search_queries" — 2-4 варианта названия для поиска в 2GIS, первым — официальное
- Координаты указывай максимально точно, они будут проверены
{points_rule}- statistics.total_points равно длине массива points

## ФОРМАТ ОТВЕТА

Верни ТОЛЬКО валидный JSON без markdown и комментариев:

{RESPONSE_FORMAT}
"""


def build_refine_prompt(route: Dict[str, Any], feedback: str) -> str:
    return f"""Вот текущий маршрут:

{json.dumps(route, ensure_ascii=False, indent=2)}

Отзыв пользователя: "{feedback}"

Скорректируй маршрут с учётом отзыва. Сохрани для каждой точки "search_queries" и точные координаты.
Верни ТОЛЬКО обновлённый JSON в том же формате: {{"route": {{...}}}}"""
