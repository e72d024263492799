import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dayweave.api.dependencies import lifespan
from dayweave.api.routers.places import router as places_router
from dayweave.api.routers.plans import router as plans_router
from dayweave.api.routers.travel import router as travel_router
from dayweave.core.errors import (
    AuthenticationFailure,
    DayWeaveError,
    GenerationExhausted,
    InvalidInput,
    MalformedResponse,
    ProviderUnavailable,
)
from dayweave.core.schemas import ErrorResponse
from dayweave.core.settings import get_settings

load_dotenv()

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[DayWeaveError], int] = {
    InvalidInput: 400,
    AuthenticationFailure: 503,
    ProviderUnavailable: 503,
    MalformedResponse: 502,
    GenerationExhausted: 502,
}


def _error_response(status_code: int, error: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def dayweave_error_handler(request: Request, exc: DayWeaveError) -> JSONResponse:
    status_code = next(
        (code for cls, code in STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500
    )
    logger.warning(f"[API] {request.method} {request.url.path} -> {status_code}: {exc}")
    details = exc.details if exc.details is not None else exc.message
    return _error_response(status_code, exc.error, details)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error_response(400, "Invalid input", jsonable_errors(exc))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    application = FastAPI(title="DayWeave Backend", lifespan=lifespan)

    allowed_origins = [
        settings.frontend_url,
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    # For deployed frontends: ALLOWED_ORIGINS=https://a.example,https://b.example
    if settings.allowed_origins:
        allowed_origins.extend(
            [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
        )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(dict.fromkeys(allowed_origins)),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    application.add_exception_handler(DayWeaveError, dayweave_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)
    application.add_exception_handler(StarletteHTTPException, http_error_handler)

    application.include_router(plans_router)
    application.include_router(travel_router)
    application.include_router(places_router)

    @application.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
