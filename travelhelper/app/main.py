"""FastAPI application."""

from fastapi import FastAPI

from travelhelper.app.api.routes.auth import router as auth_router
from travelhelper.app.api.routes.billing import router as billing_router
from travelhelper.app.api.routes.chat import router as chat_router
from travelhelper.app.api.routes.events import router as events_router
from travelhelper.app.api.routes.health import router as health_router
from travelhelper.app.api.routes.metrics import router as metrics_router
from travelhelper.app.api.routes.travel_data import router as travel_data_router
from travelhelper.app.api.routes.trips import router as trips_router
from travelhelper.app.api.routes.trips import shared_router
from travelhelper.app.config import get_settings
from travelhelper.app.utils.logging import configure_logging

configure_logging(get_settings().log_level)

app = FastAPI(title="TravelHelper API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(auth_router)
app.include_router(trips_router)
app.include_router(shared_router)
app.include_router(chat_router)
app.include_router(travel_data_router)
app.include_router(billing_router)
app.include_router(events_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "TravelHelper API", "version": "0.1.0"}
