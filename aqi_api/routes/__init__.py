from .health import router as health_router
from .aqi import router as aqi_router
from .forecast import router as forecast_router
from .history import router as history_router

__all__ = [
	"health_router",
	"aqi_router",
	"forecast_router",
	"history_router",
]
