import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from config import settings
from database import DocumentStore
from errors import ConflictError, MissingValueError, PatientNotFoundError, RecordNotFound
from routers import appointments, auth, dental_records, inventory, patients, users

logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store: DocumentStore = app.state.store
    try:
        store.ping()
        store.ensure_indexes()
        logger.info("MongoDB: connected to %s", store.name)
    except PyMongoError as e:
        # requests will surface storage errors until the database is reachable
        logger.warning("MongoDB not available at startup: %s", e)
    yield
    logger.info("Dental Office API shutting down")
    store.close()


def create_app(store: Optional[DocumentStore] = None) -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)
    app.state.store = store or DocumentStore(settings.MONGODB_URI, settings.DATABASE_NAME)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module in (auth, users, patients, appointments, dental_records, inventory):
        app.include_router(module.router)

    register_routes(app)
    register_exception_handlers(app)
    return app


# ----------------------------------------------------------
# Root & Health
# ----------------------------------------------------------

def register_routes(app: FastAPI) -> None:
    @app.get("/")
    def read_root():
        return {"message": "Dental Office API is running"}

    @app.get("/health")
    def health():
        return {"status": "OK", "service": settings.APP_NAME}


# ----------------------------------------------------------
# Error mapping
# ----------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RecordNotFound)
    async def not_found_handler(request: Request, exc: RecordNotFound):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": f"{exc.entity} not found", "message": exc.message},
        )

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        # an unknown patient id is a bad request, not a clash with stored data
        if isinstance(exc, PatientNotFoundError):
            code = status.HTTP_400_BAD_REQUEST
        else:
            code = status.HTTP_409_CONFLICT
        return JSONResponse(status_code=code, content={"error": "Conflict", "message": exc.message})

    @app.exception_handler(MissingValueError)
    async def missing_value_handler(request: Request, exc: MissingValueError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid value", "message": exc.message},
        )

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Database error", "message": str(exc) if settings.DEBUG else None},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "message": str(exc) if settings.DEBUG else None},
        )


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
