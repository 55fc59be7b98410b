from typing import List, Sequence, Tuple
from ..models.route_legs import RouteLeg
from ..models.routes import Route
from ..models.stop_times import StopTime
from ..models.stops import Stop


def leg_id_for(route_id: str, index: int) -> str:
    return f"{route_id}_{index}"


def expand_route(route: Route, ordered_stops: Sequence[Stop]) -> List[Tuple[RouteLeg, StopTime]]:
    """
    Expand a route's ordered stops into one (RouteLeg, StopTime) pair per position.

    Order is kept as given and repeated stops are kept, so a route may revisit
    a stop. Nothing is persisted; the route must be written before its legs,
    and the legs before their stop-times.
    """
    pairs = []
    for index, stop in enumerate(ordered_stops):
        leg = RouteLeg(leg_id=leg_id_for(route.route_id, index), route_id=route.route_id)
        stop_time = StopTime(leg_id=leg.leg_id, stop_id=stop.id, stop_sequence=index)
        pairs.append((leg, stop_time))
    return pairs
