import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

from .error import ClientError, ServerError

logger = logging.getLogger(__name__)


def _error_body(code: str, message: str, details=None) -> dict:
    error_dict = {"code": code, "message": message}
    if details:
        error_dict["details"] = details
    return {"error": error_dict}


async def handle_client_error(request: Request, exc: ClientError):
    error = exc.base_error
    logger.warning("Client error: %s on %s %s", error.code, request.method, request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(error.code, error.message, error.details),
        headers=exc.headers,
    )


async def handle_server_error(request: Request, exc: ServerError):
    logger.error("Server error: %s (%s)", exc.base_error.code, exc.base_error.message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(exc.base_error.code, "Internal server error"),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            "VALIDATION_ERROR",
            "Request validation failed",
            {"errors": jsonable_encoder(exc.errors())},
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("INTERNAL_ERROR", "Internal server error"),
    )


def create_app(ApplicationConfig) -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, str(ApplicationConfig.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from ciam.adapter.services.expiry_sweeper import ExpirySweeper
        from ciam.depends import AsyncSessionLocal, engine

        if ApplicationConfig.CREATE_TABLES_ON_STARTUP:
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

        sweeper = None
        if ApplicationConfig.ENABLE_EXPIRY_SWEEPER:
            sweeper = ExpirySweeper(AsyncSessionLocal, ApplicationConfig.SWEEP_INTERVAL_SECONDS)
            sweeper.start()
        try:
            yield
        finally:
            if sweeper is not None:
                await sweeper.stop()
            await engine.dispose()

    app = FastAPI(title="CIAM Auth Service", version="0.1.0", lifespan=lifespan)

    if ApplicationConfig.RATE_LIMIT_ENABLED:
        from ciam.api.utils.rate_limit import FixedWindowRateLimiter

        app.state.rate_limiter = FixedWindowRateLimiter.from_config(ApplicationConfig)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if ApplicationConfig.ENABLE_LOGGING_MIDDLEWARE:

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            started = time.perf_counter()
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "%s %s -> %s (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
            return response

    from ciam.api.routes import (
        admin,
        auth,
        device,
        devices,
        esign,
        health_check,
        mfa,
        oauth2,
        sessions,
        well_known,
    )

    app.include_router(health_check.router, tags=["Health"])
    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(mfa.router, tags=["MFA"])
    app.include_router(esign.router, tags=["Compliance"])
    app.include_router(device.router, tags=["Device Binding"])
    app.include_router(sessions.router, tags=["Sessions"])
    app.include_router(devices.router, tags=["Trusted Devices"])
    app.include_router(oauth2.router, tags=["OAuth2"])
    app.include_router(well_known.router, tags=["Discovery"])
    app.include_router(admin.router, tags=["Admin"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    return app
