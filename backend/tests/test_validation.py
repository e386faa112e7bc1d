import math

import pytest

from conftest import FakeResolver, make_point, make_route, no_sleep
from walkquest.services.geo import haversine_km
from walkquest.services.validation import (
    CoordinateValidator,
    confidence_for_displacement,
    reconcile_statistics,
)

HERMITAGE = (59.9398, 30.3146)
ST_ISAAC = (59.9341, 30.3061)
KAZAN_CATHEDRAL = (59.9343, 30.3245)
SMOLNY = (59.9489, 30.3966)


def _offset(coords, km_north: float):
    # one degree of latitude is ~111.2 km
    return coords[0] + km_north / 111.2, coords[1]


@pytest.mark.parametrize(
    "distance, expected",
    [
        (0.0, 1.0),
        (0.1, 1.0),
        (0.2, 0.9),
        (0.5, 0.9),
        (1.0, 0.7),
        (1.5, 0.7),
        (3.0, 0.5),
        (5.0, 0.5),
        (5.1, 0.2),
        (math.inf, 0.2),
    ],
)
def test_confidence_steps(distance, expected) -> None:
    assert confidence_for_displacement(distance) == expected


def test_confidence_is_monotonic() -> None:
    distances = [i * 0.05 for i in range(0, 200)]
    scores = [confidence_for_displacement(d) for d in distances]
    assert all(a >= b for a, b in zip(scores, scores[1:]))


@pytest.mark.asyncio
async def test_validate_point_uses_alternate_queries_in_order(make_validator) -> None:
    validator = make_validator({"City Theatre": ST_ISAAC})

    verdict = await validator.validate_point(
        "Old Theatre", "38", *ST_ISAAC, search_queries=["Old Theatre", "City Theatre"]
    )

    assert verdict.found
    assert verdict.resolved == ST_ISAAC
    assert verdict.matched_query == "City Theatre"
    assert [q for q, _ in validator.resolver.calls] == ["Old Theatre", "City Theatre"]


@pytest.mark.asyncio
async def test_validate_point_alternates_replace_name(make_validator) -> None:
    validator = make_validator({"Old Theatre": ST_ISAAC})

    verdict = await validator.validate_point(
        "Old Theatre", "38", *ST_ISAAC, search_queries=["City Theatre"]
    )

    assert not verdict.found
    assert [q for q, _ in validator.resolver.calls] == ["City Theatre"]


@pytest.mark.asyncio
async def test_validate_point_not_found(make_validator) -> None:
    validator = make_validator({})

    verdict = await validator.validate_point("Nowhere", "38", *HERMITAGE)

    assert not verdict.found
    assert verdict.resolved is None
    assert verdict.confidence == 0.0
    assert math.isinf(verdict.displacement_km)
    assert not verdict.fixed


@pytest.mark.asyncio
async def test_validate_point_marks_fix_above_ten_metres(make_validator) -> None:
    moved = _offset(HERMITAGE, 0.3)
    validator = make_validator({"Эрмитаж": HERMITAGE})

    verdict = await validator.validate_point("Эрмитаж", "38", *moved)

    assert verdict.fixed
    assert verdict.confidence == 0.9
    assert verdict.displacement_km == pytest.approx(haversine_km(*moved, *HERMITAGE))


@pytest.mark.asyncio
async def test_validate_point_pauses_after_each_miss() -> None:
    pauses = []

    async def record_sleep(seconds: float) -> None:
        pauses.append(seconds)

    validator = CoordinateValidator(
        resolver=FakeResolver({"C": HERMITAGE}),
        point_pause_seconds=0.3,
        query_pause_seconds=0.15,
        sleep=record_sleep,
    )

    await validator.validate_point("A", "38", *HERMITAGE, search_queries=["A", "B", "C"])

    assert pauses == [0.15, 0.15]


@pytest.mark.asyncio
async def test_all_points_resolve_cleanly(make_validator) -> None:
    places = {"Эрмитаж": HERMITAGE, "Исаакиевский собор": ST_ISAAC, "Казанский собор": KAZAN_CATHEDRAL}
    route = make_route(
        [
            make_point(1, "Эрмитаж", *_offset(HERMITAGE, 0.003)),
            make_point(2, "Исаакиевский собор", *_offset(ST_ISAAC, 0.004)),
            make_point(3, "Казанский собор", *KAZAN_CATHEDRAL),
        ]
    )
    validator = make_validator(places)

    result = await validator.validate_route(route, "38")

    assert [p.point_number for p in result.points] == [1, 2, 3]
    assert all(not p.validation.fixed for p in result.points)
    assert all(p.validation.confidence == 1.0 for p in result.points)
    assert (result.points[0].coordinates.lat, result.points[0].coordinates.lon) == HERMITAGE
    assert result.statistics.total_points == 3


@pytest.mark.asyncio
async def test_unresolvable_point_is_dropped(make_validator) -> None:
    places = {"Эрмитаж": HERMITAGE, "Казанский собор": KAZAN_CATHEDRAL}
    route = make_route(
        [
            make_point(1, "Эрмитаж", *HERMITAGE),
            make_point(2, "Несуществующее место", *ST_ISAAC, search_queries=["Место 1", "Место 2"]),
            make_point(3, "Казанский собор", *KAZAN_CATHEDRAL),
        ]
    )
    validator = make_validator(places)

    result = await validator.validate_route(route, "38")

    assert [p.name for p in result.points] == ["Эрмитаж", "Казанский собор"]
    assert [p.point_number for p in result.points] == [1, 2]
    assert result.statistics.total_points == 2


@pytest.mark.asyncio
async def test_point_too_far_is_dropped(make_validator) -> None:
    places = {"Эрмитаж": HERMITAGE, "Казанский собор": KAZAN_CATHEDRAL}
    route = make_route(
        [
            make_point(1, "Эрмитаж", *_offset(HERMITAGE, 3.0)),
            make_point(2, "Казанский собор", *KAZAN_CATHEDRAL),
        ]
    )
    validator = make_validator(places)

    result = await validator.validate_route(route, "38", max_displacement_km=1.5)

    assert [p.name for p in result.points] == ["Казанский собор"]
    assert result.points[0].point_number == 1
    assert result.statistics.total_points == 1


@pytest.mark.asyncio
async def test_filter_keeps_exactly_close_found_points(make_validator) -> None:
    places = {
        "A": HERMITAGE,
        "B": ST_ISAAC,
        "C": KAZAN_CATHEDRAL,
        "D": SMOLNY,
    }
    route = make_route(
        [
            make_point(1, "A", *_offset(HERMITAGE, 0.2)),
            make_point(2, "B", *_offset(ST_ISAAC, 0.9)),
            make_point(3, "C", *_offset(KAZAN_CATHEDRAL, 1.2)),
            make_point(4, "D", *_offset(SMOLNY, 0.05)),
            make_point(5, "E", *SMOLNY),
        ]
    )
    validator = make_validator(places)

    result = await validator.validate_route(route, "38", max_displacement_km=1.0)

    assert [p.name for p in result.points] == ["A", "B", "D"]
    for p in result.points:
        assert p.validation.found
        assert p.validation.distance_km < 1.0


@pytest.mark.asyncio
async def test_trim_keeps_prefix_of_survivors(make_validator) -> None:
    places = {name: HERMITAGE for name in "ABCDE"}
    route = make_route(
        [
            make_point(1, "A", *HERMITAGE),
            make_point(2, "B", *_offset(HERMITAGE, 0.6)),
            make_point(3, "X", *HERMITAGE),
            make_point(4, "C", *_offset(HERMITAGE, 0.05)),
            make_point(5, "D", *HERMITAGE),
            make_point(6, "E", *HERMITAGE),
        ]
    )
    validator = make_validator(places)

    result = await validator.validate_route(route, "38", desired_point_count=3)

    # Lower confidence of "B" does not push it out of the prefix
    assert [p.name for p in result.points] == ["A", "B", "C"]
    assert [p.point_number for p in result.points] == [1, 2, 3]
    assert result.statistics.total_points == 3


@pytest.mark.asyncio
async def test_no_trim_when_fewer_survivors_than_desired(make_validator) -> None:
    route = make_route([make_point(1, "A", *HERMITAGE), make_point(2, "B", *HERMITAGE)])
    validator = make_validator({"A": HERMITAGE})

    result = await validator.validate_route(route, "38", desired_point_count=5)

    assert [p.name for p in result.points] == ["A"]


@pytest.mark.asyncio
async def test_empty_route_is_returned_unchanged(make_validator) -> None:
    route = make_route([])
    validator = make_validator({})

    result = await validator.validate_route(route, "38")

    assert result is route
    assert validator.resolver.calls == []


@pytest.mark.asyncio
async def test_every_point_dropped_gives_empty_route(make_validator) -> None:
    route = make_route([make_point(1, "A", *HERMITAGE)], total_distance=2.5)
    validator = make_validator({})

    result = await validator.validate_route(route, "38")

    assert result.points == []
    assert result.statistics.total_points == 0
    assert result.statistics.total_distance == 2.5


@pytest.mark.asyncio
async def test_validation_is_idempotent(make_validator) -> None:
    places = {"A": HERMITAGE, "B": ST_ISAAC, "C": KAZAN_CATHEDRAL}
    route = make_route(
        [
            make_point(1, "A", *_offset(HERMITAGE, 0.4)),
            make_point(2, "Nope", *ST_ISAAC),
            make_point(3, "B", *_offset(ST_ISAAC, 2.0)),
            make_point(4, "C", *KAZAN_CATHEDRAL),
        ]
    )
    validator = make_validator(places)

    first = await validator.validate_route(route, "38")
    second = await validator.validate_route(first, "38")

    assert [p.name for p in second.points] == [p.name for p in first.points] == ["A", "C"]
    assert [p.point_number for p in second.points] == [p.point_number for p in first.points]
    assert [p.coordinates for p in second.points] == [p.coordinates for p in first.points]
    assert second.statistics.total_points == first.statistics.total_points == 2


@pytest.mark.asyncio
async def test_input_route_is_not_mutated(make_validator) -> None:
    route = make_route(
        [make_point(1, "Nope", *ST_ISAAC), make_point(2, "A", *_offset(HERMITAGE, 0.3))]
    )
    snapshot = route.model_dump()
    validator = make_validator({"A": HERMITAGE})

    await validator.validate_route(route, "38")

    assert route.model_dump() == snapshot


@pytest.mark.asyncio
async def test_opaque_point_data_passes_through(make_validator) -> None:
    quiz = {"questions": [{"question": "?", "options": ["a", "b", "c"], "correct_answer": 1}]}
    route = make_route(
        [make_point(1, "A", *HERMITAGE, category="art", quiz=quiz, tips=["Берите билеты онлайн"])],
        estimated_cost={"min": 500, "max": 1000, "currency": "RUB"},
    )
    validator = make_validator({"A": HERMITAGE})

    result = await validator.validate_route(route, "38")
    dumped = result.model_dump(mode="json")

    assert dumped["points"][0]["quiz"] == quiz
    assert dumped["points"][0]["category"] == "art"
    assert dumped["points"][0]["tips"] == ["Берите билеты онлайн"]
    assert dumped["statistics"]["estimated_cost"]["currency"] == "RUB"
    assert dumped["points"][0]["validation"]["matched_query"] == "A"


@pytest.mark.asyncio
async def test_statistics_not_recomputed_by_default(make_validator) -> None:
    route = make_route(
        [make_point(1, "A", *HERMITAGE), make_point(2, "B", *SMOLNY)],
        total_distance=12.0,
        total_walk_time=180,
    )
    validator = make_validator({"A": HERMITAGE, "B": SMOLNY})

    result = await validator.validate_route(route, "38", recompute_statistics=False)

    assert result.statistics.total_distance == 12.0
    assert result.statistics.total_walk_time == 180


@pytest.mark.asyncio
async def test_statistics_recomputed_when_requested(make_validator) -> None:
    route = make_route(
        [make_point(1, "A", *HERMITAGE), make_point(2, "Nope", *ST_ISAAC), make_point(3, "B", *SMOLNY)],
        total_distance=12.0,
        total_walk_time=180,
        estimated_cost={"min": 0, "max": 0, "currency": "RUB"},
    )
    validator = make_validator({"A": HERMITAGE, "B": SMOLNY})

    result = await validator.validate_route(route, "38", recompute_statistics=True)

    expected = haversine_km(*HERMITAGE, *SMOLNY)
    assert result.statistics.total_distance == round(expected, 2)
    assert result.statistics.total_walk_time == round(expected / 4.5 * 60)
    assert result.statistics.model_dump()["estimated_cost"] == {"min": 0, "max": 0, "currency": "RUB"}


@pytest.mark.asyncio
async def test_points_are_checked_in_order_with_pauses() -> None:
    events = []

    class RecordingResolver(FakeResolver):
        async def resolve(self, query, region_id):
            events.append(("resolve", query))
            return await super().resolve(query, region_id)

    async def record_sleep(seconds: float) -> None:
        events.append(("sleep", seconds))

    validator = CoordinateValidator(
        resolver=RecordingResolver({"A": HERMITAGE, "B": ST_ISAAC, "C": SMOLNY}),
        point_pause_seconds=0.3,
        query_pause_seconds=0.15,
        sleep=record_sleep,
    )
    route = make_route([make_point(i + 1, name, *HERMITAGE) for i, name in enumerate("ABC")])

    await validator.validate_route(route, "38", max_displacement_km=100)

    assert events == [
        ("resolve", "A"),
        ("sleep", 0.3),
        ("resolve", "B"),
        ("sleep", 0.3),
        ("resolve", "C"),
    ]


@pytest.mark.asyncio
async def test_region_is_passed_to_resolver(make_validator) -> None:
    validator = make_validator({"A": HERMITAGE})

    await validator.validate_route(make_route([make_point(1, "A", *HERMITAGE)]), "117")

    assert validator.resolver.calls == [("A", "117")]


def test_reconcile_statistics_fixes_total_points() -> None:
    route = make_route([make_point(1, "A", *HERMITAGE)])
    route.statistics.total_points = 7

    assert reconcile_statistics(route).statistics.total_points == 1
    assert reconcile_statistics(route).statistics.total_points == 1
