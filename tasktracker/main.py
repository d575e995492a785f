import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from . import __version__
from .catalogs import load_role_catalog, load_status_catalog, seed_catalogs
from .config import Settings
from .crud import users as user_crud
from .db import close_db, create_engine, create_session_factory, init_db
from .errors import ErrorKind, TaskTrackerError
from .policy import AccessPolicy
from .routes import tasks, users

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.INVALID_PASSWORD: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.ROLE_VIOLATION: 400,
}


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings: Settings = app.state.settings

    # Startup
    engine = create_engine(settings.database_url, echo=settings.debug)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    await init_db(engine)

    async with app.state.session_factory() as db:
        await seed_catalogs(db)
        app.state.statuses = await load_status_catalog(db)
        app.state.roles = await load_role_catalog(db)
        logger.info(
            "Catalogs loaded: statuses=%s roles=%s",
            [s.name for s in app.state.statuses],
            [r.name for r in app.state.roles],
        )
        if settings.seeds_admin:
            admin = await user_crud.ensure_admin(
                db,
                app.state.roles,
                settings.admin_username,
                settings.admin_email,
                settings.admin_password,
                rounds=settings.bcrypt_rounds,
            )
            logger.info("Administrator account %s is ready", admin.username)
    app.state.policy = AccessPolicy()

    yield

    # Shutdown
    await close_db(engine)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="Task Tracker API",
        description="Task tracking with user accounts, roles and a soft-delete task lifecycle",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        return response

    @app.exception_handler(TaskTrackerError)
    async def handle_tasktracker_error(request: Request, exc: TaskTrackerError):
        status_code = ERROR_STATUS_CODES.get(exc.kind, 400)
        logger.warning(
            "%s %s failed (%s): %s", request.method, request.url.path, exc.kind.value, exc.message
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "kind": exc.kind.value},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(exc.errors()), "kind": ErrorKind.INVALID_ARGUMENT.value},
        )

    app.include_router(tasks.router, prefix="/api")
    app.include_router(users.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Task Tracker API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
            "health": "/health",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "task-tracker-api",
            "version": __version__,
        }

    return app


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tasktracker.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level="info",
    )
