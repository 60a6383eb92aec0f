from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hirelane.api.faults import FaultInjector
from hirelane.api.routes import router as mock_router
from hirelane.config import Settings, get_settings
from hirelane.db.store import PersistentStore
from hirelane.errors import NotFound, SimulatedNetworkFailure, ValidationError


def create_app(
    store: PersistentStore,
    *,
    settings: Settings | None = None,
    faults: FaultInjector | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=settings.app_name)
    app.state.store = store
    app.state.faults = faults or FaultInjector.from_settings(settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.exception_handler(ValidationError)
    async def _invalid(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=422)

    @app.exception_handler(SimulatedNetworkFailure)
    async def _simulated_failure(request: Request, exc: SimulatedNetworkFailure) -> JSONResponse:
        return JSONResponse({"detail": "Simulated network failure"}, status_code=503)

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok", "schema_version": store.schema_version, "durable": store.is_durable})

    app.include_router(mock_router)
    return app
