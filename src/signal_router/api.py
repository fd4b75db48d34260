"""HTTP ingestion endpoint.

The endpoint acknowledges a message as soon as its task batch is planned. The
batch is attached to the response as a background task: the server runs it
after the response has been sent and before the request is released.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from signal_router.core.errors import MalformedInput
from signal_router.core.processor import MessageRouter
from signal_router.core.runner import run_tasks
from signal_router.schemas import parse_payload

LOGGER = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Add the CORS headers to every response, including 404 and 405."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response


def _text(body: str, status_code: int = 200) -> PlainTextResponse:
    return PlainTextResponse(body, status_code=status_code)


def create_app(router: MessageRouter, lifespan: Optional[Any] = None) -> FastAPI:
    """Build the FastAPI app around an already wired MessageRouter."""

    app = FastAPI(title="signal-router", lifespan=lifespan)
    app.add_middleware(CORSHeadersMiddleware)

    @app.options("/")
    async def preflight() -> Response:
        return Response()

    @app.api_route("/", methods=["GET", "PUT", "PATCH", "DELETE"])
    async def method_not_allowed() -> Response:
        return _text("Method Not Allowed", status_code=405)

    @app.post("/")
    async def ingest(request: Request, background_tasks: BackgroundTasks) -> Response:
        try:
            try:
                data = await request.json()
            except ValueError:
                LOGGER.warning("Invalid JSON payload received")
                return _text("Invalid JSON", status_code=400)
            try:
                message = parse_payload(data)
            except MalformedInput as exc:
                LOGGER.warning("Invalid payload received: %s", exc, extra={"meta": {"error": str(exc)}})
                return _text("Invalid JSON", status_code=400)

            tasks = await router.handle(message)
        except Exception as exc:
            # Single boundary for anything unexpected while routing.
            LOGGER.exception("Unhandled error while routing message", extra={"meta": {"error": str(exc)}})
            return _text("Internal Server Error", status_code=500)

        if tasks:
            background_tasks.add_task(run_tasks, tasks)
        return _text("OK")

    return app
