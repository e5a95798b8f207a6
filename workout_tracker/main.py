import asyncio

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from workout_tracker.exceptions.handlers import (
    application_exception_handler,
    http_exception_handler,
    generic_exception_handler
)
from workout_tracker.exceptions.errors import ApplicationException
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from workout_tracker.database.connection import build_engine, init_db

from workout_tracker.api.v1.routes import profile_router, session_router, data_router, sync_router, plan_router
from workout_tracker.services.durable_map import SqlDurableMap
from workout_tracker.services.fitness_sink import GoogleFitSink
from workout_tracker.services.plan_generator import PlanGenerator
from workout_tracker.services.profile_store import ProfileStore
from workout_tracker.services.remote_store import GoogleDriveDocumentStore
from workout_tracker.services.tracker_service import TrackerService

from workout_tracker.core.config import settings
from workout_tracker.core.logger import get_logger
from workout_tracker import __version__

logger = get_logger("workout-tracker")


async def watch_durable_map(durable_map: SqlDurableMap):
    """Pick up profile changes written by other processes (other tabs / clients)."""
    while True:
        await asyncio.sleep(settings.DURABLE_MAP_POLL_SECONDS)
        try:
            durable_map.poll()
        except SQLAlchemyError as e:
            logger.error(f"Durable map poll failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 FastAPI app is starting...")
    try:
        engine = build_engine()
        session_factory = init_db(engine)
        durable_map = SqlDurableMap(session_factory)
        profile_store = ProfileStore(durable_map)
        tracker = TrackerService(profile_store)
        tracker.restore()
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        raise e

    app.state.tracker = tracker
    app.state.plan_generator = PlanGenerator()
    app.state.remote_store_factory = GoogleDriveDocumentStore
    app.state.fitness_sink_factory = GoogleFitSink
    watcher = asyncio.create_task(watch_durable_map(durable_map))

    yield

    logger.info("🛑 FastAPI app is shutting down...")
    watcher.cancel()
    tracker.sessions.commit()
    await tracker.aclose()
    profile_store.close()
    engine.dispose()


# Enhanced Swagger configuration for development
swagger_ui_parameters = {
    "deepLinking": True,
    "displayRequestDuration": True,
    "tryItOutEnabled": True,
    "filter": True,
    "syntaxHighlight.theme": "arta",
}

app = FastAPI(
    title="Workout Tracker",
    version=__version__,
    lifespan=lifespan,
    description="""
    Workout Tracker API for a local UI.

    ## Modes

    * **Local profile**: data persisted on this machine, protected by a password.
    * **Cloud account**: data kept in memory and synced to the user's Google Drive.
    * **Unauthenticated**: guest logging in memory only.

    Errors are returned as `{"error": "<message>"}`.
    """,
    swagger_ui_parameters=swagger_ui_parameters
)

# CORS configuration
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(profile_router, prefix="/api/v1")
app.include_router(session_router, prefix="/api/v1")
app.include_router(data_router, prefix="/api/v1")
app.include_router(sync_router, prefix="/api/v1")
app.include_router(plan_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "Workout Tracker API",
        "docs": "/docs",
        "development_mode": settings.is_development,
        "version": __version__
    }


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error on {request.url.path}: {exc.errors()}")

    errors = []
    for error in exc.errors():
        errors.append({
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input")) if error.get("input") is not None else None
        })

    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "detail": errors}
    )

# Exception handlers
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

if __name__ == "__main__":
    uvicorn.run(
        "workout_tracker.main:app",
        host="127.0.0.1",
        port=8000,
        reload=settings.is_development,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30
    )
