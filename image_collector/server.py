"""FastAPI application serving the JSON request contract over HTTP."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .collector import failure_response, handle_request
from .config import CollectorConfig
from .errors import RequestError
from .models import DownloadedFile

logger = logging.getLogger("image_collector.server")


def create_app(config: Optional[CollectorConfig] = None) -> FastAPI:
    """Build the API app; ``config`` defaults to environment-driven settings."""
    app = FastAPI(title="Image Collector API")
    app.state.config = config or CollectorConfig.from_env()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    @app.post("/api")
    async def api(request: Request):
        """Run one ``analyze``, ``download`` or ``test`` request."""
        try:
            payload = await request.json()
        except ValueError as exc:
            logger.info("Rejected request with undecodable body: %s", exc)
            return JSONResponse(
                content=failure_response(RequestError(f"JSON decode error: {exc}"), None)
            )

        result = await run_in_threadpool(handle_request, payload, request.app.state.config)
        if isinstance(result, DownloadedFile):
            return Response(content=result.content, headers=result.headers())
        return JSONResponse(content=result)

    return app


app = create_app()
