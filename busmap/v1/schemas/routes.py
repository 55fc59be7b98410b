from datetime import datetime
from typing import Dict, List, Optional
from .common import CamelModel

class RouteRequest(CamelModel):
    """
    Body of POST /routes and PUT /routes/{route_id}.

    Every field is optional here. The route workflow validates the whole
    request at once and reports every violated field together.
    """
    bus_number: Optional[str] = None
    direction: Optional[int] = None
    stop_ids: Optional[List[int]] = None
    description: Optional[str] = None

class RouteResponse(CamelModel):
    route_id: str
    bus_number: str
    route_short_name: str
    route_long_name: Optional[str] = None
    direction: int
    direction_name: str
    stop_count: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class RouteStopPoint(CamelModel):
    lat: float
    lon: float
    sequence: int
    name: str

class RouteStatistics(CamelModel):
    total_routes: int
    routes_by_direction: Dict[str, int]
    average_stops_per_route: float
