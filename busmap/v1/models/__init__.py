from .stops import Stop
from .routes import Route
from .route_legs import RouteLeg
from .stop_times import StopTime
