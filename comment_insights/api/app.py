"""FastAPI entry point exposing the enrichment pipeline."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from comment_insights.config.settings import Settings, get_settings
from comment_insights.models.schemas import PipelineRequest
from comment_insights.tools.logging_setup import setup_logging
from comment_insights.workflows.run_pipeline import run_pipeline

PIPELINE_PATH = "/api/pipeline"
ALLOWED_METHODS = "POST, OPTIONS"


async def _read_request(request: Request) -> PipelineRequest:
    """Lenient body parsing: anything unusable means 'use the defaults'."""
    raw = await request.body()
    if not raw:
        return PipelineRequest()
    try:
        data = json.loads(raw)
    except ValueError:
        return PipelineRequest()
    if not isinstance(data, dict):
        return PipelineRequest()
    # each field falls back on its own, so a bad email keeps a good source
    fields = {}
    for name in PipelineRequest.model_fields:
        value = data.get(name)
        if isinstance(value, str):
            fields[name] = value
    return PipelineRequest(**fields)


def create_app(settings: Settings | None = None) -> FastAPI:
    s = settings or get_settings()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        setup_logging(s)
        yield

    app = FastAPI(
        title="Comment Insights API",
        description="Fetches comments, enriches them with Gemini, and stores the results",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = s.cors_allow_origin
        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.options(PIPELINE_PATH)
    async def pipeline_preflight():
        return Response(status_code=204)

    @app.post(PIPELINE_PATH)
    async def pipeline(request: Request):
        """Run one batch. Stage failures are reported in `errors`, never as a non-200."""
        payload = await _read_request(request)
        result = await run_in_threadpool(run_pipeline, payload, settings=s)
        return JSONResponse(status_code=200, content=result.to_json_dict())

    @app.exception_handler(StarletteHTTPException)
    async def method_not_allowed(request: Request, exc: StarletteHTTPException):
        """Any unsupported method gets the same 405 body, whatever the verb."""
        if exc.status_code != 405:
            return await http_exception_handler(request, exc)
        headers = dict(exc.headers or {})
        if request.url.path == PIPELINE_PATH:
            headers["Allow"] = ALLOWED_METHODS
        return JSONResponse(
            status_code=405,
            content={"error": "Method not allowed"},
            headers=headers,
        )

    return app


app = create_app()


def main():
    """Run the API server."""
    import uvicorn

    s = get_settings()
    uvicorn.run(
        "comment_insights.api.app:app",
        host=s.api_host,
        port=s.api_port,
    )


if __name__ == "__main__":
    main()
