from fastapi import FastAPI, APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import asyncio
import sys
import time
import traceback
import uuid
from pathlib import Path
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn

# Load environment variables first
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from config import get_settings, get_cors_config, validate_environment
from logging_config import setup_logging, get_logger, request_context
from sentry_integration import init_sentry, capture_exception

from database import init_db, close_db
from billing_integration import BillingClient
from crm_integration import CRMClient
from lifecycle import ShutdownCoordinator
from routers import users_router, accounts_router
from routers.dependencies import get_email_sender

settings = get_settings()

# JSON logs in production, plain text in development
setup_logging(
    level=settings.LOG_LEVEL,
    json_format=settings.is_production,
    service_name="profile-sync"
)
logger = get_logger(__name__)

if settings.SENTRY_DSN:
    init_sentry(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        release=settings.API_VERSION,
        traces_sample_rate=0.1 if settings.is_production else 0.0,
    )

# Upper bound on waiting for in-flight requests after a termination signal
GRACEFUL_SHUTDOWN_TIMEOUT = 30.0


def build_shutdown_coordinator(app: FastAPI, server: uvicorn.Server) -> ShutdownCoordinator:
    """
    Close order: stop accepting connections and drain, then external clients,
    then the database pool.

    The exit status is recorded on app.state.exit_status; run() exits with it
    once the server has returned.
    """

    async def stop_server() -> None:
        server.should_exit = True
        await asyncio.wait_for(app.state.drained.wait(), timeout=GRACEFUL_SHUTDOWN_TIMEOUT)

    async def close_clients() -> None:
        await app.state.billing_client.aclose()
        await app.state.crm_client.aclose()

    def record_exit(status: int) -> None:
        app.state.exit_status = status

    return ShutdownCoordinator(
        closers=[stop_server, close_clients, close_db],
        exit_process=record_exit,
        service_name=settings.API_TITLE,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.API_TITLE}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug Mode: {settings.debug_enabled}")
    logger.info("=" * 60)

    env_status = validate_environment()
    if not env_status["valid"]:
        for error in env_status["errors"]:
            logger.error(f"Configuration Error: {error}")
        if settings.is_production:
            raise RuntimeError("Cannot start in production with invalid configuration")

    for warning in env_status.get("warnings", []):
        logger.warning(f"Configuration Warning: {warning}")

    try:
        await init_db()
        logger.info("PostgreSQL connection established")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    app.state.billing_client = BillingClient()
    app.state.crm_client = CRMClient()
    app.state.drained = asyncio.Event()

    coordinator = None
    server = getattr(app.state, "server", None)
    if server is not None:
        coordinator = build_shutdown_coordinator(app, server)
        coordinator.install(asyncio.get_running_loop())
        app.state.shutdown_coordinator = coordinator

    logger.info(f"{settings.API_TITLE} started successfully")

    yield

    app.state.drained.set()

    # A signal-driven shutdown closes everything through the coordinator
    if coordinator is not None and coordinator.shutting_down:
        await coordinator.wait_closed()
    else:
        logger.info(f"Shutting down {settings.API_TITLE}...")
        await app.state.billing_client.aclose()
        await app.state.crm_client.aclose()
        await close_db()


app = FastAPI(
    title=settings.API_TITLE,
    description="""
    Backend API for user profiles with billing and CRM address sync.

    ## Features

    ### User Endpoints (/api/users)
    - GET /{user_id} - Fetch your own profile
    - PUT /{user_id} - Update your own profile; address changes are pushed to billing and CRM first

    ### Internal Endpoints (/api/internal/accounts)
    - POST / - Provision a profile after account creation, send the welcome email
    - POST /events/{event} - login-success, forgot-password, change-password, resend-confirmation
    """,
    version=settings.API_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug_enabled else None,
    redoc_url="/api/redoc" if settings.debug_enabled else None,
)

api_router = APIRouter(prefix="/api")


# ==================== HEALTH CHECK ENDPOINTS ====================

@api_router.get("/", tags=["Health"])
async def root():
    """Basic health check - returns 200 if service is running"""
    return {
        "message": settings.API_TITLE,
        "status": "healthy",
        "version": settings.API_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@api_router.get("/health", tags=["Health"])
async def health_check():
    """
    Detailed health check for load balancers and uptime monitors.

    Returns:
    - 200: All systems operational
    - 503: Database unavailable
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.API_VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {}
    }

    try:
        from database import engine
        from sqlalchemy import text

        async with engine.begin() as conn:
            result = await conn.execute(text("SELECT 1"))
            result.fetchone()

        health_status["checks"]["database"] = {
            "status": "connected",
            "type": "postgresql"
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "disconnected",
            "error": str(e)
        }

    health_status["checks"]["billing"] = {"configured": settings.billing_configured}
    health_status["checks"]["crm"] = {"configured": settings.crm_configured}
    health_status["checks"]["email"] = get_email_sender().client.get_status()

    env_status = validate_environment()
    health_status["checks"]["configuration"] = {
        "status": "valid" if env_status["valid"] else "invalid",
        "warnings": len(env_status.get("warnings", [])),
        "errors": len(env_status.get("errors", []))
    }

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status


@api_router.get("/health/ready", tags=["Health"])
async def readiness_check():
    """Readiness probe. 503 while shutting down or when the database is unreachable."""
    coordinator = getattr(app.state, "shutdown_coordinator", None)
    if coordinator is not None and coordinator.shutting_down:
        raise HTTPException(status_code=503, detail={"status": "shutting_down"})

    try:
        from database import engine
        from sqlalchemy import text

        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

        return {"status": "ready", "timestamp": datetime.now(timezone.utc).isoformat()}
    except Exception as e:
        raise HTTPException(status_code=503, detail={"status": "not_ready", "error": str(e)})


@api_router.get("/health/live", tags=["Health"])
async def liveness_check():
    """Liveness probe. Doesn't check dependencies."""
    return {"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}


api_router.include_router(users_router)
api_router.include_router(accounts_router)

app.include_router(api_router)

# ==================== MIDDLEWARE ====================

cors_config = get_cors_config()
app.add_middleware(
    CORSMiddleware,
    **cors_config
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log requests with timing and bind the request id to log records"""
    start_time = time.monotonic()
    request_id = request.headers.get("X-Request-ID") or f"req-{uuid.uuid4().hex[:12]}"

    with request_context(request_id=request_id):
        if settings.TRACE_REQUESTS:
            logger.info(f"{request.method} {request.url.path}")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"{request.method} {request.url.path} failed: {e}")
            raise

        elapsed = time.monotonic() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed * 1000:.2f}"

        if settings.TRACE_REQUESTS or settings.debug_enabled or response.status_code >= 400:
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.3f}s)")

        return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Uncaught exceptions become a generic SERVER_ERROR"""
    logger.error(f"Unhandled exception: {exc}")
    if settings.debug_enabled:
        logger.error(traceback.format_exc())

    capture_exception(exc, path=request.url.path, method=request.method)

    return JSONResponse(status_code=500, content={"error": "SERVER_ERROR"})


def run() -> None:
    """Console entry point. Termination signals are handled by the app's ShutdownCoordinator."""
    config = uvicorn.Config(
        app,
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
    server = uvicorn.Server(config)
    app.state.server = server
    app.state.exit_status = None
    server.run()

    if app.state.exit_status is not None:
        sys.exit(app.state.exit_status)


if __name__ == "__main__":
    run()
