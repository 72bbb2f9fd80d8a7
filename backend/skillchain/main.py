"""
SkillChain — FastAPI Application Entry Point

Aggregates all routers, configures middleware and error mapping,
and initializes the database on startup.
"""
import time

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from skillchain.config import get_settings
from skillchain.database import init_db
from skillchain.dependencies import get_storage
from skillchain.exceptions import PaymentRequiredError, SkillChainError
from skillchain.routes import categories_router, tests_router, user_router
from skillchain.storage import Storage
from skillchain.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

# ─── Application Instance ───────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "Pay-per-test skill assessments on Solana. Payments are verified on-chain, "
        "tests are generated by Gemini, and passing scores earn SOL rewards and "
        "certificate NFTs."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

# ─── Startup ─────────────────────────────────────────────────────────
BOOT_TIME = time.time()


@app.on_event("startup")
def on_startup():
    """Initialize database tables and log boot info."""
    if settings.STORAGE_BACKEND == "sql":
        init_db()
    else:
        logger.warning("memory_storage_enabled", note="non-production: no durability, single process only")

    logger.info(
        "startup",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        storage=settings.STORAGE_BACKEND,
        solana_rpc=settings.SOLANA_RPC_URL,
        treasury=settings.TREASURY_WALLET,
        gemini="loaded" if settings.GEMINI_API_KEY else "missing",
        minter=settings.MINTER_URL or "demo",
        debug=settings.DEBUG,
    )


# ─── Middleware ──────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with timing."""
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 1)

    if request.url.path.startswith("/api"):
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration,
        )

    return response


# ─── Error Mapping ───────────────────────────────────────────────────
@app.exception_handler(SkillChainError)
async def handle_domain_error(request: Request, exc: SkillChainError):
    body = {"error": exc.public_message}
    if isinstance(exc, PaymentRequiredError):
        body["reason"] = exc.reason.value
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ─── API Routers ─────────────────────────────────────────────────────
app.include_router(categories_router)
app.include_router(tests_router)
app.include_router(user_router)


@app.get("/health", tags=["Health"])
def deep_health(storage: Storage = Depends(get_storage)):
    """Detailed health check including dependency statuses."""
    db_ok = False
    try:
        db_ok = storage.ping()
    except Exception as e:
        logger.warning("health_storage_unreachable", error=str(e))

    return {
        "status": "healthy" if db_ok else "degraded",
        "database": "connected" if db_ok else "disconnected",
        "gemini": "available" if settings.GEMINI_API_KEY else "unavailable",
        "uptime_seconds": round(time.time() - BOOT_TIME, 1),
        "version": settings.APP_VERSION,
    }
