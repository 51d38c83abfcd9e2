from __future__ import annotations

from typing import Optional
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.rest import router as rest_router
from .container import Container, build_container
from .errors import CriticalMismatchError, NotFoundError, RemoteError, UnauthorizedError, ValidationError
from .logging import setup_logging
from .observability import configure_observability
from .settings import Settings, load_settings


def create_app(settings: Settings, container: Optional[Container] = None) -> FastAPI:
    setup_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        description="Reconciles drop-ship supplier shipments with platform order fulfillments.",
    )

    app.state.container = container or build_container(settings)

    configure_observability(app, settings)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_, __):
        return JSONResponse(status_code=404, content={"detail": "Not found"})

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(_, __):
        return JSONResponse(status_code=401, content={"detail": "Unauthorized"})

    @app.exception_handler(ValidationError)
    async def handle_validation(_, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": exc.detail})

    @app.exception_handler(CriticalMismatchError)
    async def handle_mismatch(_, exc: CriticalMismatchError):
        return JSONResponse(status_code=409, content={"detail": str(exc), "critical": True})

    @app.exception_handler(RemoteError)
    async def handle_remote(_, exc: RemoteError):
        return JSONResponse(status_code=502, content={"detail": str(exc.detail)})

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get(settings.request_id_header, "") or uuid4().hex
        response = await call_next(request)
        response.headers[settings.request_id_header] = request_id
        return response

    app.include_router(rest_router)
    app.include_router(rest_router, prefix="/v1")

    return app


app = create_app(load_settings())


def run() -> None:
    settings = app.state.container.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
