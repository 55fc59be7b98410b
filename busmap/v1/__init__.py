from .models.stops import Stop
from .models.routes import Route
from .models.route_legs import RouteLeg
from .models.stop_times import StopTime
