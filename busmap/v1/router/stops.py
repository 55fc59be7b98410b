import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ..crud import stops as stop_crud
from ..schemas.common import ApiResponse
from ..schemas.stops import StopResponse
from ...database import database_session_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stops", tags=["Stops"])


def _to_response(stop, route_count=None) -> StopResponse:
    return StopResponse(
        id=stop.id,
        name=stop.name,
        latitude=stop.latitude,
        longitude=stop.longitude,
        bench=stop.bench,
        shelter=stop.shelter,
        has_wheelchair_access=stop.wheelchair_access,
        route_count=route_count,
    )


@router.get("", response_model=ApiResponse[List[StopResponse]])
def list_stops(db: Session = Depends(database_session_manager.get_db)):
    logger.info("Fetching all stops")
    stops = stop_crud.list_stops(db)
    return ApiResponse[List[StopResponse]](
        message="Stops retrieved successfully",
        data=[_to_response(stop) for stop in stops],
    )


@router.get("/{stop_id}", response_model=ApiResponse[StopResponse])
def get_stop(stop_id: int, db: Session = Depends(database_session_manager.get_db)):
    """
    Get one stop with the number of routes that serve it.
    """
    logger.info("Fetching stop %s", stop_id)
    stop = stop_crud.get_stop(db, stop_id)
    route_count = stop_crud.count_routes_serving(db, [stop_id])[stop_id]
    return ApiResponse[StopResponse](message="Stop retrieved successfully", data=_to_response(stop, route_count))
