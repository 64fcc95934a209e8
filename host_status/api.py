"""FastAPI application exposing host status and request accounting."""
from __future__ import annotations

import asyncio
import contextlib
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .service import StatusService


def create_app(settings: Optional[Settings] = None, service: Optional[StatusService] = None) -> FastAPI:
    status_service = service or StatusService(settings or get_settings())

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        status_service.cache.refresh()
        tasks = [
            asyncio.create_task(status_service.refresh_loop()),
            asyncio.create_task(status_service.reset_loop()),
        ]
        app.state.background_tasks = tasks
        try:
            yield
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    app = FastAPI(
        title="Host Status Service",
        description="Lightweight FastAPI service reporting host utilization and request accounting.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.status_service = status_service

    @app.get("/api/status", summary="Return host status and top clients", tags=["status"])
    async def status(request: Request):
        peer = request.client.host if request.client else None
        status_code, body = status_service.handle(request.headers, peer)
        return JSONResponse(body, status_code=status_code)

    @app.get("/health", summary="Service health check", tags=["status"])
    async def health():
        return {"status": "ok"}

    return app
