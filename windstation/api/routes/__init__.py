from .health import router as health_router
from .readings import router as readings_router
from .stations import router as stations_router

__all__ = [
    "health_router",
    "readings_router",
    "stations_router",
]
