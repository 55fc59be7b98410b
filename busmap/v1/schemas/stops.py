from typing import Optional
from .common import CamelModel

class StopResponse(CamelModel):
    id: int
    name: str
    latitude: float
    longitude: float
    bench: Optional[str] = None
    shelter: Optional[str] = None
    has_wheelchair_access: Optional[bool] = None
    route_count: Optional[int] = None
