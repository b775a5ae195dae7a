from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import uvicorn

from vms.api.routes import health, register, reports, scan
from vms.core.config import Settings, settings as default_settings
from vms.core.errors import AppError
from vms.core.logging import setup_logging
from vms.core.mongo_ops import connect_mirror
from vms.core.store import RecordStore
from vms.services.checkin import CheckInEngine
from vms.services.notifier import smtp_notifier_factory
from vms.services.registration import RegistrationWorkflow
from vms.utils.qr import CredentialIssuer

# Setup logging
setup_logging(default_settings.LOG_LEVEL, default_settings.LOG_FILE)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    notifier_factory: Optional[Callable] = None,
    mirror=None,
) -> FastAPI:
    """Build the API. Tests pass their own settings, notifier and mirror."""
    settings = settings or default_settings
    qr_dir = Path(settings.QR_DIR)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan events for startup and shutdown"""
        # Startup
        logger.info(f"🚀 Starting {settings.PROJECT_NAME}...")
        qr_dir.mkdir(parents=True, exist_ok=True)

        store = RecordStore.open(Path(settings.DB_FILE), settings.SEED_STALLS)
        active_mirror = mirror if mirror is not None else connect_mirror(settings)

        app.state.store = store
        app.state.mirror = active_mirror
        app.state.checkin = CheckInEngine(store, active_mirror)
        app.state.registration = RegistrationWorkflow(
            store,
            active_mirror,
            CredentialIssuer(qr_dir, settings.QR_IMAGE_SIZE),
            notifier_factory or smtp_notifier_factory(settings),
            settings,
        )
        logger.info(f"✅ Record store ready at {settings.DB_FILE}")

        yield

        # Shutdown
        active_mirror.close()
        logger.info("👋 Shutting down...")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Visitor registration, QR credentials and stall check-ins",
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Rejected request body on {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    # Include routers
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(register.router, prefix="/api", tags=["Registration"])
    app.include_router(scan.router, prefix="/api", tags=["Check-in"])
    app.include_router(reports.router, prefix="/api", tags=["Reports"])

    # Credential artifacts linked from the confirmation email
    app.mount("/qrcodes", StaticFiles(directory=str(qr_dir), check_dir=False), name="qrcodes")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=default_settings.PORT, reload=False)
