import logging
from typing import Dict, Iterable, List, Sequence
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from ..models.route_legs import RouteLeg
from ..models.stop_times import StopTime
from ..models.stops import Stop
from ...exceptions import NotFoundError

logger = logging.getLogger(__name__)


def get_stop(db: Session, stop_id: int) -> Stop:
    stop = db.get(Stop, stop_id)
    if stop is None:
        raise NotFoundError("Stop", stop_id)
    return stop


def list_stops(db: Session) -> List[Stop]:
    return list(db.scalars(select(Stop).order_by(Stop.id)))


def get_stops_in_order(db: Session, stop_ids: Sequence[int]) -> List[Stop]:
    """
    Resolve stop ids to Stop rows, keeping the requested order and any repeats.

    Args:
        db: Database session
        stop_ids: Stop ids in travel order

    Returns:
        One Stop per requested id, in the same order

    Raises:
        NotFoundError: Listing every id that has no stored stop, in request order
    """
    found = {
        stop.id: stop
        for stop in db.scalars(select(Stop).where(Stop.id.in_(set(stop_ids))))
    }

    missing = []
    for stop_id in stop_ids:
        if stop_id not in found and stop_id not in missing:
            missing.append(stop_id)
    if missing:
        raise NotFoundError(
            "Stop",
            ", ".join(str(stop_id) for stop_id in missing),
            details={"missingStopIds": missing},
        )

    return [found[stop_id] for stop_id in stop_ids]


def count_routes_serving(db: Session, stop_ids: Iterable[int]) -> Dict[int, int]:
    """Number of distinct routes that pass through each of the given stops."""
    stop_ids = list(stop_ids)
    counts = {stop_id: 0 for stop_id in stop_ids}
    if not stop_ids:
        return counts

    rows = db.execute(
        select(StopTime.stop_id, func.count(RouteLeg.route_id.distinct()))
        .join(RouteLeg, RouteLeg.leg_id == StopTime.leg_id)
        .where(StopTime.stop_id.in_(stop_ids))
        .group_by(StopTime.stop_id)
    )
    for stop_id, route_count in rows:
        counts[stop_id] = route_count
    return counts


def upsert_stops(db: Session, rows: Iterable[dict]) -> int:
    """
    Insert or overwrite stops keyed by id. The caller owns the transaction.
    """
    count = 0
    for row in rows:
        db.merge(Stop(**row))
        count += 1
    db.flush()
    logger.info("Merged %d stops", count)
    return count
