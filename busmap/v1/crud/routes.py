import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from . import stops as stop_store
from ..models.route_legs import RouteLeg
from ..models.routes import Route
from ..models.stop_times import StopTime
from ..models.stops import Stop
from ..schemas.common import Page
from ..schemas.routes import RouteRequest, RouteResponse, RouteStatistics, RouteStopPoint
from ..utils.route_builder import (
    DIRECTION_NAMES,
    MIN_STOPS_PER_ROUTE,
    build_route,
    direction_name,
    is_valid_direction,
    long_name_for,
    route_id_for,
    short_name_for,
)
from ..utils.sequencer import expand_route
from ...config import settings
from ...exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_BUS_NUMBER_LENGTH = 40
MAX_DESCRIPTION_LENGTH = 500


def validate_route_request(request: RouteRequest):
    """
    Check a create/update request and report every problem at once.

    Raises:
        ValidationError: With one message per invalid field
    """
    errors = {}

    bus_number = request.bus_number
    if bus_number is None or not bus_number.strip():
        errors["busNumber"] = "must not be blank"
    elif len(bus_number.strip()) > MAX_BUS_NUMBER_LENGTH:
        errors["busNumber"] = f"must be at most {MAX_BUS_NUMBER_LENGTH} characters"

    if not is_valid_direction(request.direction):
        errors["direction"] = "must be 0 (Outbound) or 1 (Return)"

    if not request.stop_ids or len(request.stop_ids) < MIN_STOPS_PER_ROUTE:
        errors["stopIds"] = f"a route needs at least {MIN_STOPS_PER_ROUTE} stops"

    if request.description is not None and len(request.description) > MAX_DESCRIPTION_LENGTH:
        errors["description"] = f"must be at most {MAX_DESCRIPTION_LENGTH} characters"

    if errors:
        raise ValidationError("Validation failed", details=errors)


def _get_route_or_404(db: Session, route_id: str) -> Route:
    route = db.get(Route, route_id)
    if route is None:
        raise NotFoundError("Route", route_id)
    return route


def _stop_counts(db: Session, route_ids: Iterable[str]) -> Dict[str, int]:
    route_ids = list(route_ids)
    counts = {route_id: 0 for route_id in route_ids}
    if not route_ids:
        return counts

    rows = db.execute(
        select(RouteLeg.route_id, func.count(StopTime.id))
        .join(StopTime, StopTime.leg_id == RouteLeg.leg_id)
        .where(RouteLeg.route_id.in_(route_ids))
        .group_by(RouteLeg.route_id)
    )
    for route_id, stop_count in rows:
        counts[route_id] = stop_count
    return counts


def _to_response(route: Route, stop_count: int) -> RouteResponse:
    return RouteResponse(
        route_id=route.route_id,
        bus_number=route.bus_number,
        route_short_name=route.route_short_name,
        route_long_name=route.route_long_name,
        direction=route.direction,
        direction_name=direction_name(route.direction),
        stop_count=stop_count,
        description=route.description,
        created_at=route.created_at,
        updated_at=route.updated_at,
    )


def _write_stop_sequence(db: Session, route: Route, ordered_stops: Sequence[Stop]) -> int:
    pairs = expand_route(route, ordered_stops)
    # Legs must be in the database before any stop-time points at them
    db.add_all([leg for leg, _ in pairs])
    db.flush()
    db.add_all([stop_time for _, stop_time in pairs])
    db.flush()
    return len(pairs)


def _clear_stop_sequence(db: Session, route_id: str):
    leg_ids = select(RouteLeg.leg_id).where(RouteLeg.route_id == route_id)
    db.execute(
        delete(StopTime).where(StopTime.leg_id.in_(leg_ids)),
        execution_options={"synchronize_session": "fetch"},
    )
    db.execute(
        delete(RouteLeg).where(RouteLeg.route_id == route_id),
        execution_options={"synchronize_session": "fetch"},
    )


def create_route(db: Session, request: RouteRequest) -> RouteResponse:
    """
    Create a route with its legs and stop-times in one transaction.

    Args:
        db: Database session
        request: Bus number, direction, ordered stop ids and optional description

    Returns:
        The stored route as a RouteResponse

    Raises:
        ValidationError: If any request field is invalid
        ConflictError: If a route with the same bus number and direction exists
        NotFoundError: If any stop id is unknown
    """
    validate_route_request(request)
    bus_number = request.bus_number.strip()
    route_id = route_id_for(bus_number, request.direction)

    if db.get(Route, route_id) is not None:
        logger.warning("Route %s already exists", route_id)
        raise ConflictError(f"Route {route_id} already exists", details={"routeId": route_id})

    ordered_stops = stop_store.get_stops_in_order(db, request.stop_ids)

    try:
        route = build_route(bus_number, request.direction, ordered_stops, request.description)
        db.add(route)
        db.flush()
        stop_count = _write_stop_sequence(db, route, ordered_stops)
        db.commit()
    except IntegrityError as e:
        # Another request stored the same route id between the check and the insert
        db.rollback()
        logger.warning("Route %s already exists (rejected by the database)", route_id)
        raise ConflictError(f"Route {route_id} already exists", details={"routeId": route_id}) from e
    except Exception:
        db.rollback()
        logger.error("Creation of route %s rolled back", route_id)
        raise

    db.refresh(route)
    logger.info("Created route %s with %d stops", route_id, stop_count)
    return _to_response(route, stop_count)


def get_all_routes(db: Session, page: int = 0, size: Optional[int] = None) -> Page[RouteResponse]:
    size = min(size or settings.default_page_size, settings.max_page_size)

    total = db.scalar(select(func.count()).select_from(Route))
    offset = page * size
    routes = []
    if offset < total:
        routes = db.scalars(
            select(Route).order_by(Route.route_id).offset(offset).limit(size)
        ).all()
    counts = _stop_counts(db, [route.route_id for route in routes])

    return Page[RouteResponse](
        content=[_to_response(route, counts[route.route_id]) for route in routes],
        page=page,
        size=size,
        total_elements=total,
        total_pages=math.ceil(total / size),
    )


def get_route(db: Session, route_id: str) -> RouteResponse:
    route = _get_route_or_404(db, route_id)
    return _to_response(route, _stop_counts(db, [route_id])[route_id])


def get_route_with_stops(db: Session, route_id: str) -> List[RouteStopPoint]:
    """
    Get the stops of a route as map points, ordered by their sequence.
    """
    _get_route_or_404(db, route_id)

    rows = db.execute(
        select(Stop.latitude, Stop.longitude, StopTime.stop_sequence, Stop.name)
        .select_from(StopTime)
        .join(RouteLeg, RouteLeg.leg_id == StopTime.leg_id)
        .join(Stop, Stop.id == StopTime.stop_id)
        .where(RouteLeg.route_id == route_id)
        .order_by(StopTime.stop_sequence)
    ).all()

    if not rows:
        logger.warning("Route %s exists but has no stops", route_id)

    return [
        RouteStopPoint(lat=lat, lon=lon, sequence=sequence, name=name)
        for lat, lon, sequence, name in rows
    ]


def update_route(db: Session, route_id: str, request: RouteRequest) -> RouteResponse:
    """
    Replace a route's stop list and recompute its display names.

    The route id, bus number and direction never change. A request naming a
    different bus number or direction is applied to the stored route anyway,
    and its identity fields are ignored.

    Raises:
        NotFoundError: If the route or any stop id is unknown
        ValidationError: If any request field is invalid
    """
    route = _get_route_or_404(db, route_id)
    validate_route_request(request)

    requested_id = route_id_for(request.bus_number.strip(), request.direction)
    if requested_id != route.route_id:
        logger.warning(
            "Update of route %s names bus %s direction %s; route identity is kept",
            route_id, request.bus_number, request.direction,
        )

    ordered_stops = stop_store.get_stops_in_order(db, request.stop_ids)

    try:
        route.route_short_name = short_name_for(route.bus_number)
        route.route_long_name = long_name_for(ordered_stops)
        route.description = request.description
        route.updated_at = datetime.now()
        _clear_stop_sequence(db, route.route_id)
        stop_count = _write_stop_sequence(db, route, ordered_stops)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Update of route %s rolled back", route_id)
        raise

    db.refresh(route)
    logger.info("Updated route %s with %d stops", route_id, stop_count)
    return _to_response(route, stop_count)


def delete_route(db: Session, route_id: str):
    """
    Delete a route together with all of its legs and stop-times.
    """
    route = _get_route_or_404(db, route_id)

    try:
        _clear_stop_sequence(db, route_id)
        # Forget any loaded legs so the ORM cascade does not delete them a second time
        db.expire(route)
        db.delete(route)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Deletion of route %s rolled back", route_id)
        raise

    logger.info("Deleted route %s", route_id)


def search_routes(
    db: Session, bus_number: Optional[str] = None, direction: Optional[int] = None
) -> List[RouteResponse]:
    """
    Filter routes by bus number and/or direction.

    The bus number matches anywhere inside the route id, so "12" finds both
    "12_0" and "12_1" (and also "112_0").
    """
    routes = db.scalars(select(Route).order_by(Route.route_id)).all()
    matches = [
        route for route in routes
        if (bus_number is None or bus_number in route.route_id)
        and (direction is None or route.direction == direction)
    ]
    counts = _stop_counts(db, [route.route_id for route in matches])
    return [_to_response(route, counts[route.route_id]) for route in matches]


def get_route_statistics(db: Session) -> RouteStatistics:
    total_routes = db.scalar(select(func.count()).select_from(Route))

    by_direction = {name: 0 for name in DIRECTION_NAMES.values()}
    for direction, count in db.execute(
        select(Route.direction, func.count()).group_by(Route.direction)
    ):
        by_direction[direction_name(direction)] = count

    total_stops = db.scalar(
        select(func.count(StopTime.id))
        .select_from(StopTime)
        .join(RouteLeg, RouteLeg.leg_id == StopTime.leg_id)
    )
    average = total_stops / total_routes if total_routes else 0.0

    return RouteStatistics(
        total_routes=total_routes,
        routes_by_direction=by_direction,
        average_stops_per_route=average,
    )
