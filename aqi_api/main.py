"""FastAPI application wiring the AQI services together."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from .config import Settings, get_settings
from .routes import aqi_router, forecast_router, health_router, history_router
from .services.aggregation_service import AirQualityService
from .services.cache_service import FreshnessCache
from .services.forecast_service import ForecastService
from .services.history_service import HistoryService, InMemoryReadingStore
from .services.provider_service import build_providers
from .services.synthetic_service import SyntheticDataGenerator

LOGGER = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the per-process caches, store and provider chain."""
        http_client = client or httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
        offline = settings.offline_mode
        providers = [] if offline else build_providers(settings, http_client)
        synthetic = SyntheticDataGenerator(settings.synthetic_seed)
        store = InMemoryReadingStore(retention=timedelta(days=settings.history_retention_days))

        if offline:
            LOGGER.warning("Running in offline mode, all data will be synthetic")
        else:
            LOGGER.info("Provider chain: %s", ", ".join(provider.name for provider in providers))

        app.state.settings = settings
        app.state.reading_store = store
        app.state.air_quality_service = AirQualityService(
            providers,
            FreshnessCache(timedelta(minutes=settings.current_freshness_minutes)),
            synthetic,
            store=store,
            offline=offline,
        )
        forecast_provider = next((provider for provider in providers if provider.supports_forecast), None)
        app.state.forecast_service = ForecastService(
            forecast_provider,
            FreshnessCache(timedelta(minutes=settings.forecast_freshness_minutes)),
            synthetic,
            offline=offline,
        )
        app.state.history_service = HistoryService(store)
        try:
            yield
        finally:
            if client is None:
                await http_client.aclose()

    app = FastAPI(
        title="AQI API",
        description="Multi-source air quality index aggregation on the Indian NAQI scale.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health_router, prefix="/api")
    app.include_router(aqi_router, prefix="/api")
    app.include_router(forecast_router, prefix="/api")
    app.include_router(history_router, prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
