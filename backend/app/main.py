import logging
import os

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
import sentry_sdk
from slowapi.errors import RateLimitExceeded

from . import auth
from .routers import head_to_head, predictions, ratings, standings
from .exceptions import DomainException, ProblemDetail
from .config import API_PREFIX

logger = logging.getLogger(__name__)
SENTRY_DSN = os.getenv("SENTRY_DSN")


def _parse_sample_rate(env_var: str, default: float = 0.0) -> float:
    raw_value = os.getenv(env_var)
    if raw_value is None:
        return default

    try:
        value = float(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid float (got %r); defaulting to %.2f",
            env_var,
            raw_value,
            default,
        )
        return default

    if value < 0:
        logger.warning("%s cannot be negative; defaulting to %.2f", env_var, default)
        return default

    return value


def _init_sentry() -> None:
    if not SENTRY_DSN:
        logger.info("SENTRY_DSN not provided; skipping Sentry initialization.")
        return

    environment = (os.getenv("SENTRY_ENVIRONMENT") or "").strip() or None
    traces_sample_rate = _parse_sample_rate("SENTRY_TRACES_SAMPLE_RATE", default=0.0)

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[FastApiIntegration()],
        environment=environment,
        traces_sample_rate=traces_sample_rate,
    )
    logger.info(
        "Initialized Sentry%s",
        f" (environment={environment})" if environment else "",
    )


_init_sentry()


def _allowed_origins() -> list[str]:
    raw = os.getenv("ALLOWED_ORIGINS", "").strip()
    if not raw:
        raise ValueError(
            "ALLOWED_ORIGINS environment variable must be set to a comma-separated "
            "list of trusted origins."
        )
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if not origins:
        raise ValueError("ALLOWED_ORIGINS must contain at least one non-empty origin.")
    if "*" in origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot include '*' (wildcard). Specify explicit, trusted origins."
        )
    return origins


ALLOWED_ORIGINS = _allowed_origins()
ALLOW_CREDENTIALS = os.getenv("ALLOW_CREDENTIALS", "true").lower() == "true"

app = FastAPI(title="League Ratings API", version="0.1.0")
app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, auth.rate_limit_handler)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Raises on a missing or weak JWT_SECRET.
auth.get_jwt_secret()

logger.info("API_PREFIX=%r", API_PREFIX)


@app.get("/healthz", tags=["health"])
def root_healthz():
    return {"status": "ok"}


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    problem = ProblemDetail(
        type=exc.type,
        title=exc.title,
        detail=exc.detail,
        status=exc.status_code,
        code=exc.code,
        **exc.extra,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(),
        media_type="application/problem+json",
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    code = getattr(exc, "code", f"http_{exc.status_code}")
    problem = ProblemDetail(
        title=detail,
        detail=detail,
        status=exc.status_code,
        code=code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(),
        media_type="application/problem+json",
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception", exc_info=(type(exc), exc, exc.__traceback__))
    problem = ProblemDetail(
        title="Internal Server Error",
        status=500,
        detail=str(exc),
        code="internal_server_error",
    )
    return JSONResponse(
        status_code=500,
        content=problem.model_dump(),
        media_type="application/problem+json",
    )


def install_exception_handlers(target: FastAPI) -> None:
    target.add_exception_handler(DomainException, domain_exception_handler)
    target.add_exception_handler(HTTPException, http_exception_handler)
    target.add_exception_handler(Exception, unhandled_exception_handler)


install_exception_handlers(app)


api_router = APIRouter(prefix=API_PREFIX, tags=["meta"])


@api_router.get("/healthz", tags=["health"])
def api_healthz():
    return {"status": "ok"}


@api_router.get("")
def api_root():
    return {"message": "League Ratings API. See /docs."}


v0_router = APIRouter(prefix="/v0")
v0_router.include_router(standings.router)
v0_router.include_router(head_to_head.router)
v0_router.include_router(predictions.router)
v0_router.include_router(ratings.router)

api_router.include_router(v0_router)
app.include_router(api_router)
