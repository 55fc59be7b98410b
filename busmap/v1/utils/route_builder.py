from enum import IntEnum
from typing import Optional, Sequence
from ..models.routes import Route
from ..models.stops import Stop
from ...exceptions import ValidationError

SHORT_NAME_PREFIX = "Tuyến "
LONG_NAME_JOINER = " đến "
MIN_STOPS_PER_ROUTE = 2


class Direction(IntEnum):
    OUTBOUND = 0
    RETURN = 1


DIRECTION_NAMES = {
    Direction.OUTBOUND: "Outbound",
    Direction.RETURN: "Return",
}


def is_valid_direction(direction) -> bool:
    return direction in (Direction.OUTBOUND, Direction.RETURN)


def direction_name(direction: int) -> str:
    return DIRECTION_NAMES[Direction(direction)]


def route_id_for(bus_number: str, direction: int) -> str:
    return f"{bus_number}_{int(direction)}"


def short_name_for(bus_number: str) -> str:
    return SHORT_NAME_PREFIX + bus_number


def long_name_for(ordered_stops: Sequence[Stop]) -> str:
    return ordered_stops[0].name + LONG_NAME_JOINER + ordered_stops[-1].name


def build_route(
    bus_number: str,
    direction: int,
    ordered_stops: Sequence[Stop],
    description: Optional[str] = None,
) -> Route:
    """
    Derive an unsaved Route from a bus number, a direction and its ordered stops.

    Args:
        bus_number: Public line number, e.g. "12".
        direction: 0 for outbound, 1 for return.
        ordered_stops: Resolved Stop rows in travel order.
        description: Optional free text stored on the route.

    Returns:
        A Route whose id and display names are derived from the inputs.

    Raises:
        ValidationError: If the direction is unknown or there are fewer than two stops.
    """
    errors = {}
    if not is_valid_direction(direction):
        errors["direction"] = "must be 0 (Outbound) or 1 (Return)"
    if len(ordered_stops) < MIN_STOPS_PER_ROUTE:
        errors["stopIds"] = f"a route needs at least {MIN_STOPS_PER_ROUTE} stops"
    if errors:
        raise ValidationError(details=errors)

    return Route(
        route_id=route_id_for(bus_number, direction),
        bus_number=bus_number,
        direction=int(direction),
        route_short_name=short_name_for(bus_number),
        route_long_name=long_name_for(ordered_stops),
        description=description,
    )
