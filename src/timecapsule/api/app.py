# src/timecapsule/api/app.py
from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timecapsule.api.errors import ApiError
from timecapsule.api.request_logging import RequestLogMiddleware
from timecapsule.api.routes import router
from timecapsule.errors import CapsuleSdkError
from timecapsule.sdk import CapsuleSdk


def _parse_cors_origins() -> List[str]:
    """Explicit allowlist from TIMECAPSULE_CORS_ORIGINS; empty means CORS off.

    "*" is rejected when TIMECAPSULE_MODE=prod.
    """
    raw = os.environ.get("TIMECAPSULE_CORS_ORIGINS", "").strip()
    mode = os.environ.get("TIMECAPSULE_MODE", "prod").strip().lower()
    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in TIMECAPSULE_CORS_ORIGINS."
            )
        return ["*"]
    return origins


def create_app(*, sdk: Optional[CapsuleSdk] = None) -> FastAPI:
    """Create the FastAPI application.

    sdk:
      - given: used as-is and left open on shutdown (caller owns it)
      - None: built from TIMECAPSULE_* config and closed on shutdown
    """
    mode = os.environ.get("TIMECAPSULE_MODE", "prod").strip().lower()
    owns_sdk = sdk is None

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        yield
        if owns_sdk:
            await app.state.sdk.aclose()

    if mode == "prod":
        app = FastAPI(title="Time Capsule API", docs_url=None, redoc_url=None, openapi_url=None, lifespan=_lifespan)
    else:
        app = FastAPI(title="Time Capsule API", lifespan=_lifespan)

    app.state.sdk = sdk if sdk is not None else CapsuleSdk.from_config()

    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_json())

    @app.exception_handler(CapsuleSdkError)
    async def _sdk_error(_request: Request, exc: CapsuleSdkError) -> JSONResponse:
        err = ApiError.from_sdk(exc)
        return JSONResponse(status_code=err.status_code, content=err.to_json())

    app.add_middleware(RequestLogMiddleware)

    cors_origins = _parse_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=cors_origins != ["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "X-Caller-Identity"],
        )

    app.include_router(router, prefix="/v1")
    return app
