import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, BASE_DOMAIN
from .database import Base, SessionLocal, engine
from .domain.appointments.router import router as appointments_router
from .domain.auth.router import router as auth_router
from .domain.recurring.router import router as recurring_router
from .domain.service_catalog.router import router as services_router
from .domain.tenants.repository import TenantRepository
from .domain.tenants.router import router as tenants_router
from .domain.users.router import router as users_router
from .domain.waitlist.router import router as waitlist_router
from .models import Tenant
from .rate_limiter import get_redis_client
from .routes.contact import router as contact_router
from .routes.dashboard import router as dashboard_router
from .routes.notifications import router as notifications_router
from .routes.payments import router as payments_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

# Hosts served by the platform itself rather than a tenant
PLATFORM_HOSTS = {BASE_DOMAIN, f"www.{BASE_DOMAIN}", f"api.{BASE_DOMAIN}"}

# Resolved per request by tenant_resolver; everything else under /api may use it
TENANT_EXEMPT_PREFIXES = ("/api/auth", "/api/tenants/resolve")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    if get_redis_client() is None:
        logger.info("Rate limiting uses in-memory windows")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="AppointmentHub API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request validation failures as 400 with the field errors attached"""
    errors = jsonable_encoder(exc.errors(), custom_encoder={ValueError: str})
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(status_code=400, content={"detail": "Invalid data", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def _lookup_tenant(header_value: Optional[str], slug: Optional[str], host: str) -> Optional[Tenant]:
    """
    Tenant for a request, in order of precedence:
    X-Tenant-ID header (numeric id or slug), ?tenant=<slug>, then the Host
    header when it is a tenant subdomain or custom domain.
    """
    db = SessionLocal()
    try:
        repo = TenantRepository()
        if header_value:
            if header_value.isdigit():
                return repo.get_by_id(db, int(header_value))
            return repo.get_by_slug(db, header_value.lower())
        if slug:
            return repo.find_by_domain_or_slug(db, slug=slug.lower())
        if "." in host and host not in PLATFORM_HOSTS and not host.startswith("127.0.0.1"):
            return repo.find_by_domain_or_slug(db, domain=host)
        return None
    finally:
        db.close()


@app.middleware("http")
async def tenant_resolver(request: Request, call_next):
    """Attach the resolved tenant id to request.state for public endpoints"""
    request.state.tenant_id = None
    path = request.url.path

    if path.startswith("/api/") and not path.startswith(TENANT_EXEMPT_PREFIXES):
        host = request.headers.get("host", "").split(":")[0].lower()
        header_value = request.headers.get("x-tenant-id", "").strip()
        slug = request.query_params.get("tenant")

        try:
            tenant = _lookup_tenant(header_value, slug, host)
        except Exception as e:
            logger.error(f"Tenant resolution failed for {host}: {e}")
            tenant = None

        if tenant and tenant.is_active:
            request.state.tenant_id = tenant.id
        elif header_value or slug:
            logger.warning(f"⚠️ Unknown tenant requested: header={header_value!r} slug={slug!r}")

    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    duration_ms = (time.time() - start) * 1000
    if response.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {response.status_code} ({duration_ms:.0f}ms)")
    return response


# CORS Configuration
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(auth_router, prefix="/api")
app.include_router(tenants_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(services_router, prefix="/api")
app.include_router(appointments_router, prefix="/api")
app.include_router(recurring_router, prefix="/api")
app.include_router(waitlist_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(contact_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")
app.include_router(payments_router, prefix="/api")


@app.get("/")
def root():
    return {"message": "AppointmentHub API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
