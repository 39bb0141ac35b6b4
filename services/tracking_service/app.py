"""Tracking Service FastAPI application."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import Settings
from shared.database import Database
from shared.exceptions import NotFoundError, StorageError, ValidationError

from .models import Stopover, Tracking
from .tracking_store import TrackingStore

logger = logging.getLogger(__name__)

router = APIRouter()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mark a stored naive UTC timestamp as UTC for serialization."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# Request/Response models
class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        coerce_numbers_to_str = True


class CreateTrackingRequest(CamelModel):
    """Request to create a tracking."""
    from_address: Optional[str] = None
    from_date: Optional[datetime] = None
    tracking_status: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_date: Optional[datetime] = None


class AddStopoverRequest(CamelModel):
    """Request to add a stopover."""
    stopover_address: Optional[str] = None
    stopover_date: Optional[datetime] = None


class UpdateStatusRequest(CamelModel):
    """Request to update a tracking status."""
    tracking_status: Optional[str] = None


class StopoverResponse(CamelModel):
    """Stopover response."""
    stopover_address: str
    stopover_date: datetime


class TrackingDetails(CamelModel):
    """Fields echoed back on creation."""
    from_address: str
    delivery_address: Optional[str]
    delivery_date: Optional[datetime]
    from_date: datetime
    tracking_status: str
    stopovers: List[StopoverResponse]


class CreateTrackingResponse(CamelModel):
    """Tracking creation response."""
    tracking_id: str
    message: str
    tracking_details: TrackingDetails


class TrackingResponse(CamelModel):
    """Tracking response."""
    tracking_id: str
    from_address: str
    delivery_address: Optional[str]
    from_date: datetime
    delivery_date: Optional[datetime]
    tracking_status: str
    stopovers: List[StopoverResponse]


class AddStopoverResponse(CamelModel):
    """Stopover creation response."""
    message: str
    stopover: StopoverResponse


class UpdateStatusResponse(CamelModel):
    """Status update response."""
    message: str
    tracking_id: str
    tracking_status: str


class ErrorResponse(BaseModel):
    """Error body."""
    message: str
    error: Optional[str] = None


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Bad request, missing required fields"},
    404: {"model": ErrorResponse, "description": "Tracking ID not found"},
    500: {"model": ErrorResponse, "description": "Storage error"},
}


def stopover_response(stopover: Stopover) -> StopoverResponse:
    return StopoverResponse(
        stopover_address=stopover.stopover_address,
        stopover_date=as_utc(stopover.stopover_date),
    )


def tracking_response(tracking: Tracking) -> TrackingResponse:
    return TrackingResponse(
        tracking_id=tracking.tracking_id,
        from_address=tracking.from_address,
        delivery_address=tracking.delivery_address,
        from_date=as_utc(tracking.from_date),
        delivery_date=as_utc(tracking.delivery_date),
        tracking_status=tracking.tracking_status,
        stopovers=[stopover_response(s) for s in tracking.stopovers],
    )


# Dependencies
async def get_session(request: Request) -> AsyncSession:
    """Get database session."""
    async with request.app.state.database.session_factory() as session:
        yield session


def get_store(request: Request, session: AsyncSession = Depends(get_session)) -> TrackingStore:
    """Get a tracking store bound to the request session."""
    return TrackingStore(
        session,
        max_id_attempts=request.app.state.settings.tracking_id_max_attempts,
    )


# API Endpoints
@router.post(
    "/trackings",
    response_model=CreateTrackingResponse,
    status_code=201,
    tags=["Trackings"],
    summary="Create a tracking ID",
    responses={400: ERROR_RESPONSES[400], 500: ERROR_RESPONSES[500]},
)
async def create_tracking(
    request: CreateTrackingRequest,
    store: TrackingStore = Depends(get_store),
):
    """Create a tracking with a generated identifier and no stopovers."""
    tracking = await store.create_tracking(
        from_address=request.from_address,
        from_date=request.from_date,
        tracking_status=request.tracking_status,
        delivery_address=request.delivery_address,
        delivery_date=request.delivery_date,
    )

    return CreateTrackingResponse(
        tracking_id=tracking.tracking_id,
        message="Tracking ID created successfully",
        tracking_details=TrackingDetails(
            from_address=tracking.from_address,
            delivery_address=tracking.delivery_address,
            delivery_date=as_utc(tracking.delivery_date),
            from_date=as_utc(tracking.from_date),
            tracking_status=tracking.tracking_status,
            stopovers=[],
        ),
    )


@router.get(
    "/trackings/{tracking_id}",
    response_model=TrackingResponse,
    tags=["Trackings"],
    summary="Get tracking information by tracking ID",
    responses={404: ERROR_RESPONSES[404], 500: ERROR_RESPONSES[500]},
)
async def get_tracking(tracking_id: str, store: TrackingStore = Depends(get_store)):
    """Get a tracking and its stopovers."""
    tracking = await store.get_tracking(tracking_id)
    return tracking_response(tracking)


@router.put(
    "/trackings/{tracking_id}/stopovers",
    response_model=AddStopoverResponse,
    tags=["Trackings"],
    summary="Add a stopover to a tracking ID",
    responses=ERROR_RESPONSES,
)
async def add_stopover(
    tracking_id: str,
    request: AddStopoverRequest,
    store: TrackingStore = Depends(get_store),
):
    """Append a stopover to a tracking."""
    stopover = await store.add_stopover(
        tracking_id,
        stopover_address=request.stopover_address,
        stopover_date=request.stopover_date,
    )
    return AddStopoverResponse(
        message="Stopover added successfully",
        stopover=stopover_response(stopover),
    )


@router.put(
    "/trackings/{tracking_id}/status",
    response_model=UpdateStatusResponse,
    tags=["Trackings"],
    summary="Update tracking status by tracking ID",
    responses=ERROR_RESPONSES,
)
async def update_tracking_status(
    tracking_id: str,
    request: UpdateStatusRequest,
    store: TrackingStore = Depends(get_store),
):
    """Overwrite the tracking status. Any text is accepted."""
    tracking = await store.update_status(tracking_id, request.tracking_status)
    return UpdateStatusResponse(
        message="Tracking status updated successfully",
        tracking_id=tracking.tracking_id,
        tracking_status=tracking.tracking_status,
    )


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    return {"status": "healthy", "service": request.app.state.settings.service_name}


# Error handlers
def register_exception_handlers(app: FastAPI):
    """Map service errors to JSON responses."""

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": exc.message, "fields": exc.fields},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        fields = [
            ".".join(str(part) for part in error["loc"] if part != "body")
            for error in errors
        ]
        return JSONResponse(
            status_code=400,
            content={
                "message": "Invalid request",
                "fields": fields,
                "errors": [str(error["msg"]) for error in errors],
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"message": exc.message})

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        return JSONResponse(
            status_code=500,
            content={"message": exc.message, "error": exc.detail},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application from the given settings."""
    settings = settings or Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    database = Database(
        settings.database_url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        connect_attempts=settings.db_connect_attempts,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for the application."""
        # Startup
        logger.info("Starting Tracking Service...")

        await database.wait_until_ready()
        await database.create_tables()

        logger.info("Tracking Service started successfully")
        logger.info(f"API docs available at http://localhost:{settings.service_port}/api-docs")

        yield

        # Shutdown
        logger.info("Shutting down Tracking Service...")
        await database.close()

    app = FastAPI(
        title="Tracking API",
        version="1.0.0",
        description="API for tracking shipments and adding stopovers",
        docs_url="/api-docs",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database

    register_exception_handlers(app)
    app.include_router(router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=app.state.settings.service_host, port=app.state.settings.service_port)
