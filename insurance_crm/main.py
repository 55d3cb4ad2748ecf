import asyncio
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from insurance_crm.config import settings
from insurance_crm.database import Base, get_engine, connect_with_retry, check_database_health, get_connection_info
from insurance_crm.api import auth, mobile, customers, admin, metrics

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


async def initialize_db():
    """Wait for the database, then create any missing tables"""
    if settings.SKIP_DB_INIT:
        logger.info("Skipping database initialization (SKIP_DB_INIT set)")
        return

    if await asyncio.to_thread(connect_with_retry, max_retries=10, delay=3):
        try:
            # Import all models so Base knows about them
            import insurance_crm.models.user
            import insurance_crm.models.customer
            _ = [insurance_crm.models.user.User, insurance_crm.models.customer.Customer]

            await asyncio.to_thread(Base.metadata.create_all, bind=get_engine())
            logger.info("Database schema is up to date.")
        except Exception as e:
            logger.error(f"SCHEMA ERROR: {e}")
    else:
        logger.critical("DATABASE UNREACHABLE: initialization failed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.start_time = time.time()
    logger.info("Registered routes:")
    for route in app.routes:
        if hasattr(route, "path") and hasattr(route, "methods"):
            logger.info(f"  {sorted(route.methods)} {route.path}")

    asyncio.create_task(initialize_db())
    yield


app = FastAPI(
    title="Insurance Customer Management",
    description="Customer allocation and status tracking for insurance renewal field agents",
    version=APP_VERSION,
    lifespan=lifespan
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    logger.warning(f"Validation failed for {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Validation failed", "details": errors},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"GLOBAL ERROR: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error", "type": type(exc).__name__},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(mobile.router)
app.include_router(customers.router)
app.include_router(admin.router)
app.include_router(metrics.router)


@app.get("/api/health")
def health_check(response: Response):
    """Health check endpoint"""
    db_health = check_database_health()
    uptime = time.time() - getattr(app.state, "start_time", time.time())

    if not db_health:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if db_health else "unhealthy",
        "version": APP_VERSION,
        "database": "connected" if db_health else "disconnected",
        "database_dialect": get_connection_info()["dialect"],
        "uptime": int(uptime)
    }


@app.get("/")
def root():
    return {
        "name": app.title,
        "version": APP_VERSION,
        "docs": "/docs",
        "health": "/api/health",
    }
