import logging
import warnings

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SAWarning
from sqlalchemy.orm import sessionmaker

from busmap.exceptions import ConflictError, NotFoundError, ValidationError
from busmap.v1.crud import routes as route_crud
from busmap.v1.models import Route, RouteLeg, StopTime
from busmap.v1.schemas.routes import RouteRequest


def _request(bus_number="12", direction=0, stop_ids=(101, 102, 103), description=None):
    return RouteRequest(
        bus_number=bus_number,
        direction=direction,
        stop_ids=list(stop_ids),
        description=description,
    )


def _stop_time_rows(db, route_id):
    return db.execute(
        select(StopTime.stop_id, StopTime.stop_sequence)
        .join(RouteLeg, RouteLeg.leg_id == StopTime.leg_id)
        .where(RouteLeg.route_id == route_id)
        .order_by(StopTime.stop_sequence)
    ).all()


def test_create_route_example(db) -> None:
    route = route_crud.create_route(db, _request())

    assert route.route_id == "12_0"
    assert route.bus_number == "12"
    assert route.route_short_name == "Tuyến 12"
    assert route.route_long_name == "A đến C"
    assert route.direction == 0
    assert route.direction_name == "Outbound"
    assert route.stop_count == 3
    assert route.created_at is not None


def test_create_route_keeps_submitted_stop_order(db) -> None:
    route_crud.create_route(db, _request(stop_ids=(104, 101, 105, 102)))

    points = route_crud.get_route_with_stops(db, "12_0")

    assert [p.name for p in points] == ["D", "A", "E", "B"]
    assert [p.sequence for p in points] == [0, 1, 2, 3]
    assert points[0].lat == pytest.approx(21.0368)
    assert points[0].lon == pytest.approx(105.8349)


def test_create_route_allows_revisiting_a_stop(db) -> None:
    route = route_crud.create_route(db, _request(stop_ids=(101, 102, 101)))

    assert route.stop_count == 3
    assert route.route_long_name == "A đến A"
    assert [p.name for p in route_crud.get_route_with_stops(db, "12_0")] == ["A", "B", "A"]


def test_create_route_twice_conflicts_and_keeps_first(db) -> None:
    route_crud.create_route(db, _request(stop_ids=(101, 102, 103)))

    with pytest.raises(ConflictError) as excinfo:
        route_crud.create_route(db, _request(stop_ids=(104, 105)))

    assert isinstance(excinfo.value, ValidationError)
    assert excinfo.value.status_code == 409
    assert [row.stop_id for row in _stop_time_rows(db, "12_0")] == [101, 102, 103]
    assert db.get(Route, "12_0").route_long_name == "A đến C"


def test_create_route_conflict_detected_by_database(engine, monkeypatch) -> None:
    """Another session stores the same route between the existence check and the insert."""
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    first, second = SessionLocal(), SessionLocal()
    real_get = first.get

    def get_after_concurrent_create(entity, ident, **kwargs):
        if entity is Route:
            route_crud.create_route(second, _request(stop_ids=(104, 105)))
            return None
        return real_get(entity, ident, **kwargs)

    monkeypatch.setattr(first, "get", get_after_concurrent_create)

    with pytest.raises(ConflictError) as excinfo:
        route_crud.create_route(first, _request(stop_ids=(101, 102, 103)))

    assert excinfo.value.details == {"routeId": "12_0"}
    first.close()
    second.close()

    check = SessionLocal()
    assert check.scalar(select(func.count()).select_from(StopTime)) == 2
    assert [row.stop_id for row in _stop_time_rows(check, "12_0")] == [104, 105]
    check.close()


def test_create_route_reports_every_invalid_field(db) -> None:
    with pytest.raises(ValidationError) as excinfo:
        route_crud.create_route(db, _request(bus_number="  ", direction=3, stop_ids=(101,)))

    assert set(excinfo.value.details) == {"busNumber", "direction", "stopIds"}
    assert db.scalar(select(func.count()).select_from(Route)) == 0


def test_create_route_rejects_missing_stop_list(db) -> None:
    with pytest.raises(ValidationError) as excinfo:
        route_crud.create_route(db, RouteRequest(bus_number="12", direction=0))

    assert set(excinfo.value.details) == {"stopIds"}


def test_create_route_reports_all_missing_stops(db) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        route_crud.create_route(db, _request(stop_ids=(101, 999, 102, 998, 999)))

    assert excinfo.value.resource_type == "Stop"
    assert excinfo.value.details == {"missingStopIds": [999, 998]}
    assert excinfo.value.message == "Stop not found with id: 999, 998"
    assert db.get(Route, "12_0") is None


def test_create_route_rolls_back_when_expansion_fails(db, monkeypatch) -> None:
    def broken_expand(route, ordered_stops):
        raise RuntimeError("disk full")

    monkeypatch.setattr(route_crud, "expand_route", broken_expand)

    with pytest.raises(RuntimeError):
        route_crud.create_route(db, _request())

    assert db.get(Route, "12_0") is None
    assert db.scalar(select(func.count()).select_from(RouteLeg)) == 0


def test_get_route_with_stops_unknown_route(db) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        route_crud.get_route_with_stops(db, "99_0")

    assert excinfo.value.resource_type == "Route"
    assert excinfo.value.resource_id == "99_0"


def test_get_route_with_stops_empty_route_is_not_an_error(db, caplog) -> None:
    db.add(Route(route_id="5_0", bus_number="5", direction=0, route_short_name="Tuyến 5"))
    db.commit()

    with caplog.at_level(logging.WARNING):
        points = route_crud.get_route_with_stops(db, "5_0")

    assert points == []
    assert "has no stops" in caplog.text


def test_get_route_with_stops_matches_route_id_exactly(db) -> None:
    route_crud.create_route(db, _request(bus_number="1", stop_ids=(101, 102)))
    route_crud.create_route(db, _request(bus_number="11", stop_ids=(103, 104, 105)))

    assert len(route_crud.get_route_with_stops(db, "1_0")) == 2


def test_update_route_replaces_stop_list(db) -> None:
    route_crud.create_route(db, _request(stop_ids=(101, 102, 103)))

    route = route_crud.update_route(db, "12_0", _request(stop_ids=(102, 103), description="Short turn"))

    assert route.stop_count == 2
    assert route.route_long_name == "B đến C"
    assert route.description == "Short turn"
    assert [(row.stop_id, row.stop_sequence) for row in _stop_time_rows(db, "12_0")] == [(102, 0), (103, 1)]
    assert db.scalar(select(func.count()).select_from(StopTime)) == 2
    assert db.scalar(select(func.count()).select_from(RouteLeg)) == 2


def test_update_route_keeps_identity(db) -> None:
    route_crud.create_route(db, _request(stop_ids=(101, 102, 103)))

    route = route_crud.update_route(db, "12_0", _request(bus_number="99", direction=1, stop_ids=(104, 105)))

    assert route.route_id == "12_0"
    assert route.bus_number == "12"
    assert route.direction == 0
    assert route.route_short_name == "Tuyến 12"
    assert route.route_long_name == "D đến E"
    assert db.get(Route, "99_1") is None


def test_update_route_unknown_route(db) -> None:
    with pytest.raises(NotFoundError):
        route_crud.update_route(db, "12_0", _request())


def test_update_route_unknown_stop_leaves_route_untouched(db) -> None:
    route_crud.create_route(db, _request(stop_ids=(101, 102, 103)))

    with pytest.raises(NotFoundError):
        route_crud.update_route(db, "12_0", _request(stop_ids=(101, 555)))

    assert [row.stop_id for row in _stop_time_rows(db, "12_0")] == [101, 102, 103]


def test_update_route_invalid_request(db) -> None:
    route_crud.create_route(db, _request())

    with pytest.raises(ValidationError) as excinfo:
        route_crud.update_route(db, "12_0", _request(stop_ids=()))

    assert set(excinfo.value.details) == {"stopIds"}


def test_delete_route_removes_legs_and_stop_times(db) -> None:
    route_crud.create_route(db, _request(stop_ids=(101, 102, 103)))
    route_crud.create_route(db, _request(direction=1, stop_ids=(103, 102)))

    route_crud.delete_route(db, "12_0")

    assert db.get(Route, "12_0") is None
    assert _stop_time_rows(db, "12_0") == []
    assert db.scalar(select(func.count()).select_from(RouteLeg).where(RouteLeg.route_id == "12_0")) == 0
    assert len(_stop_time_rows(db, "12_1")) == 2
    with pytest.raises(NotFoundError):
        route_crud.get_route_with_stops(db, "12_0")


def test_delete_route_with_loaded_legs_deletes_once(db) -> None:
    route_crud.create_route(db, _request(stop_ids=(101, 102, 103)))
    route = db.get(Route, "12_0")
    assert sum(len(leg.stop_times) for leg in route.legs) == 3

    with warnings.catch_warnings():
        warnings.simplefilter("error", SAWarning)
        route_crud.delete_route(db, "12_0")

    assert db.scalar(select(func.count()).select_from(RouteLeg)) == 0
    assert db.scalar(select(func.count()).select_from(StopTime)) == 0


def test_delete_route_unknown_route(db) -> None:
    with pytest.raises(NotFoundError):
        route_crud.delete_route(db, "12_0")


def test_route_can_be_recreated_after_delete(db) -> None:
    route_crud.create_route(db, _request(stop_ids=(101, 102, 103)))
    route_crud.delete_route(db, "12_0")

    route = route_crud.create_route(db, _request(stop_ids=(105, 104)))

    assert route.stop_count == 2
    assert [row.stop_id for row in _stop_time_rows(db, "12_0")] == [105, 104]


def test_search_routes(db) -> None:
    route_crud.create_route(db, _request(bus_number="12", direction=0))
    route_crud.create_route(db, _request(bus_number="12", direction=1))
    route_crud.create_route(db, _request(bus_number="7", direction=0))

    by_bus = route_crud.search_routes(db, bus_number="12")
    by_direction = route_crud.search_routes(db, direction=0)
    both = route_crud.search_routes(db, bus_number="12", direction=1)

    assert [r.route_id for r in by_bus] == ["12_0", "12_1"]
    assert [r.route_id for r in by_direction] == ["12_0", "7_0"]
    assert [r.route_id for r in both] == ["12_1"]
    assert len(route_crud.search_routes(db)) == 3


def test_search_routes_matches_substring_of_route_id(db) -> None:
    route_crud.create_route(db, _request(bus_number="112", direction=0))

    assert [r.route_id for r in route_crud.search_routes(db, bus_number="12")] == ["112_0"]


def test_statistics_without_routes(db) -> None:
    stats = route_crud.get_route_statistics(db)

    assert stats.total_routes == 0
    assert stats.routes_by_direction == {"Outbound": 0, "Return": 0}
    assert stats.average_stops_per_route == 0.0


def test_statistics(db) -> None:
    route_crud.create_route(db, _request(bus_number="12", direction=0, stop_ids=(101, 102, 103)))
    route_crud.create_route(db, _request(bus_number="12", direction=1, stop_ids=(103, 102)))

    stats = route_crud.get_route_statistics(db)

    assert stats.total_routes == 2
    assert stats.routes_by_direction == {"Outbound": 1, "Return": 1}
    assert stats.average_stops_per_route == pytest.approx(2.5)


def test_get_all_routes_pages(db) -> None:
    for bus_number in ("1", "2", "3"):
        route_crud.create_route(db, _request(bus_number=bus_number))

    first = route_crud.get_all_routes(db, page=0, size=2)
    second = route_crud.get_all_routes(db, page=1, size=2)

    assert [r.route_id for r in first.content] == ["1_0", "2_0"]
    assert [r.route_id for r in second.content] == ["3_0"]
    assert first.total_elements == 3
    assert first.total_pages == 2
    assert all(r.stop_count == 3 for r in first.content)


def test_get_all_routes_caps_page_size(db) -> None:
    page = route_crud.get_all_routes(db, page=0, size=10_000)

    assert page.size == 100
    assert page.total_pages == 0


def test_get_all_routes_page_past_the_end(db) -> None:
    route_crud.create_route(db, _request())

    page = route_crud.get_all_routes(db, page=10**20, size=10)

    assert page.content == []
    assert page.total_elements == 1
    assert page.total_pages == 1
