"""FastAPI application exposing the screener as a JSON API.

Endpoints cover query parsing, screen execution, the quick-screen catalog
and deterministic insight reports over a set of results.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import load_config
from insights import InsightReport, generate_insights
from screener.executor import ScreenExecutionError, ScreenExecutor
from screener.explain import describe
from screener.models import (
    DEFAULT_LIMIT,
    ScreenerCriteria,
    ScreenerResponse,
    ScreenerResult,
    ScreenRequest,
)
from screener.parser import parse_query
from screener.presets import CATEGORIES, QUICK_SCREENS, get_quick_screen, quick_screens_by_category

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(message: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse(content={"error": message, **extra}, status_code=status_code)


def _screen_failure(message: str) -> JSONResponse:
    return _error(message, 500, results=[], totalCount=0)


def _parse_screen_request(payload: Any) -> ScreenRequest:
    """Build a :class:`ScreenRequest` from a JSON body.

    The body carries either structured ``criteria`` or a free-text ``query``.

    Raises:
        ValueError: On a malformed body or invalid field values.
    """
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    try:
        screen_request = ScreenRequest.from_dict(payload)
    except TypeError as exc:
        raise ValueError(str(exc)) from exc
    if payload.get("criteria") is None and payload.get("query"):
        screen_request = dataclasses.replace(
            screen_request, criteria=parse_query(str(payload["query"])),
        )
    return screen_request


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(executor: ScreenExecutor | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        executor: Screen executor to serve requests with.  When omitted, one
            backed by the configured provider is created on first use so
            that a missing API key does not prevent startup.
    """

    # Ensure config is loaded
    load_config()

    app = FastAPI(
        title="Screen Lab",
        description="Natural-language stock screener with quick screens and insights",
        version="0.1.0",
    )
    app.state.executor = executor

    # Browser clients call the API cross-origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _get_executor() -> ScreenExecutor:
        if app.state.executor is None:
            app.state.executor = ScreenExecutor()
        return app.state.executor

    async def _run(screen_request: ScreenRequest) -> ScreenerResponse:
        executor = _get_executor()
        return await run_in_threadpool(executor.execute, screen_request)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @app.post("/api/screener/insights", response_class=JSONResponse)
    async def screener_insights(request: Request):
        """Analyse a result set; failures still return the report shape."""
        try:
            payload = await request.json()
            criteria = ScreenerCriteria.from_dict(payload.get("criteria"))
            results = [ScreenerResult.from_dict(r) for r in payload.get("results") or []]
            report = generate_insights(criteria, results)
        except Exception as exc:
            logger.exception("Screener insights failed")
            content = InsightReport.empty_error().to_dict()
            content["error"] = str(exc) or type(exc).__name__
            return JSONResponse(content=content, status_code=500)
        return JSONResponse(content=report.to_dict())

    @app.post("/api/screener/screen", response_class=JSONResponse)
    async def screener_screen(request: Request):
        """Execute a screen from structured criteria or a free-text query."""
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            return _error("Request body must be valid JSON", 400)
        try:
            screen_request = _parse_screen_request(payload)
        except ValueError as exc:
            return _error(str(exc), 400)

        try:
            response = await _run(screen_request)
        except (ScreenExecutionError, ValueError) as exc:
            logger.error("Screen request failed: %s", exc)
            return _screen_failure(str(exc))
        return JSONResponse(content=response.to_dict())

    @app.get("/api/screener/parse", response_class=JSONResponse)
    async def screener_parse(q: str = Query(default="")):
        """Show how a free-text query is interpreted, without running it."""
        criteria = parse_query(q)
        return JSONResponse(content={
            "query": q,
            "criteria": criteria.to_dict(),
            "explanation": describe(criteria),
        })

    @app.get("/api/screener/quick-screens", response_class=JSONResponse)
    async def quick_screens(category: str | None = Query(default=None)):
        """List the built-in quick screens, optionally for one category."""
        if category:
            try:
                screens = quick_screens_by_category(category)
            except ValueError as exc:
                return _error(str(exc), 400)
        else:
            screens = dict(QUICK_SCREENS)
        return JSONResponse(content={
            "categories": list(CATEGORIES),
            "quickScreens": [qs.to_dict() for qs in screens.values()],
        })

    @app.post("/api/screener/quick-screens/{key}", response_class=JSONResponse)
    async def run_quick_screen(key: str, limit: int = Query(default=DEFAULT_LIMIT, ge=0)):
        """Run a built-in quick screen."""
        try:
            preset = get_quick_screen(key)
        except KeyError:
            return _error(f'Quick screen "{key}" not found', 404)
        try:
            response = await _run(preset.to_request(limit))
        except (ScreenExecutionError, ValueError) as exc:
            logger.error("Quick screen %s failed: %s", key, exc)
            return _screen_failure(str(exc))
        return JSONResponse(content=response.to_dict())

    @app.get("/api/health", response_class=JSONResponse)
    async def health_check():
        """Health check endpoint."""
        return JSONResponse(content={
            "status": "ok",
            "service": "screen-lab",
            "quickScreens": len(QUICK_SCREENS),
        })

    return app
