import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ..crud import routes as route_crud
from ..schemas.common import ApiResponse, Page
from ..schemas.routes import RouteRequest, RouteResponse, RouteStatistics, RouteStopPoint
from ...database import database_session_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["Routes"])


@router.post("", response_model=ApiResponse[RouteResponse], status_code=status.HTTP_201_CREATED)
def create_route(request: RouteRequest, db: Session = Depends(database_session_manager.get_db)):
    """
    Create a bus route from a bus number, a direction and an ordered list of stop ids.

    - **busNumber**: Public line number, e.g. "12"
    - **direction**: 0 for outbound, 1 for return
    - **stopIds**: At least two stop ids, in travel order
    - **description**: Optional free text
    """
    logger.info("Creating route for bus number %s, direction %s", request.bus_number, request.direction)
    route = route_crud.create_route(db, request)
    return ApiResponse[RouteResponse](message="Route created successfully", data=route)


@router.get("", response_model=ApiResponse[Page[RouteResponse]])
def get_all_routes(
    page: int = Query(0, ge=0, description="Zero-based page number"),
    size: Optional[int] = Query(None, ge=1, description="Page size"),
    db: Session = Depends(database_session_manager.get_db),
):
    logger.info("Fetching routes page %s size %s", page, size)
    routes = route_crud.get_all_routes(db, page=page, size=size)
    return ApiResponse[Page[RouteResponse]](message="Routes retrieved successfully", data=routes)


@router.get("/search", response_model=ApiResponse[List[RouteResponse]])
def search_routes(
    bus_number: Optional[str] = Query(None, alias="busNumber", description="Matched anywhere in the route id"),
    direction: Optional[int] = Query(None, description="0 for outbound, 1 for return"),
    db: Session = Depends(database_session_manager.get_db),
):
    logger.info("Searching routes with busNumber %s, direction %s", bus_number, direction)
    routes = route_crud.search_routes(db, bus_number=bus_number, direction=direction)
    return ApiResponse[List[RouteResponse]](message="Search completed successfully", data=routes)


@router.get("/stats", response_model=ApiResponse[RouteStatistics])
def get_route_statistics(db: Session = Depends(database_session_manager.get_db)):
    logger.info("Fetching route statistics")
    stats = route_crud.get_route_statistics(db)
    return ApiResponse[RouteStatistics](message="Statistics retrieved successfully", data=stats)


@router.get("/{route_id}", response_model=ApiResponse[List[RouteStopPoint]])
def get_route_with_stops(route_id: str, db: Session = Depends(database_session_manager.get_db)):
    """
    Get the stops of a route in travel order, ready to be drawn on a map.
    """
    logger.info("Fetching stops of route %s", route_id)
    points = route_crud.get_route_with_stops(db, route_id)
    return ApiResponse[List[RouteStopPoint]](message="Route details retrieved successfully", data=points)


@router.get("/{route_id}/info", response_model=ApiResponse[RouteResponse])
def get_route(route_id: str, db: Session = Depends(database_session_manager.get_db)):
    logger.info("Fetching route %s", route_id)
    route = route_crud.get_route(db, route_id)
    return ApiResponse[RouteResponse](message="Route retrieved successfully", data=route)


@router.put("/{route_id}", response_model=ApiResponse[RouteResponse])
def update_route(route_id: str, request: RouteRequest, db: Session = Depends(database_session_manager.get_db)):
    """
    Replace the stop list of a route. The route id, bus number and direction are kept.
    """
    logger.info("Updating route %s", route_id)
    route = route_crud.update_route(db, route_id, request)
    return ApiResponse[RouteResponse](message="Route updated successfully", data=route)


@router.delete("/{route_id}", response_model=ApiResponse[None])
def delete_route(route_id: str, db: Session = Depends(database_session_manager.get_db)):
    logger.info("Deleting route %s", route_id)
    route_crud.delete_route(db, route_id)
    return ApiResponse[None](message="Route deleted successfully")
