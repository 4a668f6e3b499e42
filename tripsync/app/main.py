"""FastAPI application."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tripsync.app.api.routes.health import router as health_router
from tripsync.app.api.routes.metrics import router as metrics_router
from tripsync.app.api.routes.trips import router as trips_router
from tripsync.app.db.repositories import (
    DestinationNotFoundError,
    PositionConflictError,
    TripNotFoundError,
)
from tripsync.app.sync.manual import CrossDayReorderError, EmptyDayError

app = FastAPI(title="TripSync API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(trips_router, tags=["trips"])


@app.exception_handler(TripNotFoundError)
async def trip_not_found(request: Request, exc: TripNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Trip not found"})


@app.exception_handler(DestinationNotFoundError)
async def destination_not_found(request: Request, exc: DestinationNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Destination not found"}
    )


@app.exception_handler(PositionConflictError)
async def position_conflict(request: Request, exc: PositionConflictError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(CrossDayReorderError)
async def cross_day_reorder(request: Request, exc: CrossDayReorderError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(EmptyDayError)
async def empty_day(request: Request, exc: EmptyDayError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "TripSync API", "version": "0.1.0"}
