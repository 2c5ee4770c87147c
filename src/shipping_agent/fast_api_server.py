# HTTP server for the Shipping Agent.
# uvicorn shipping_agent.fast_api_server:app --reload --port 3001
import base64
from typing import Any

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from shipping_agent import __version__
from shipping_agent.app.config import load_cors_allow_origins
from shipping_agent.app.main import Runtime, process


def _process_response(lambda_resp: dict[str, Any]) -> Response | JSONResponse:
    """Convert an AWS Lambda-style proxy response into a FastAPI Response."""
    status_code = lambda_resp.get("statusCode", 200)
    content_type = lambda_resp.get("headers", {}).get("Content-Type", "application/json")
    body = lambda_resp.get("body", "")

    if lambda_resp.get("isBase64Encoded", False):
        body = base64.b64decode(body)

    # Handle dict content as JSON
    if isinstance(body, dict | list):
        return JSONResponse(content=body, status_code=status_code)

    return Response(content=body, status_code=status_code, media_type=content_type)


def _build_event(body: bytes, request: Request) -> dict[str, Any]:
    """Convert a FastAPI request to a Lambda-style event."""
    path = request.url.path
    method = request.method
    route_key = f"{method} {path}"
    return {
        "routeKey": route_key,
        "rawPath": path,
        "body": body,
        "isBase64Encoded": False,
        "headers": dict(request.headers),
        "queryStringParameters": dict(request.query_params),
        "requestContext": {"routeKey": route_key, "http": {"method": method, "path": path}},
    }


def create_app(
    runtime: Runtime | None = None, cors_allow_origins: list[str] | None = None
) -> FastAPI:
    """
    Build the FastAPI app.

    When `runtime` is None the process-wide runtime is built from the settings on the
    first request.
    """
    app = FastAPI(title="Shipping Agent", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allow_origins or load_cors_allow_origins(),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    async def _process_request(request: Request) -> Response:
        body = await request.body()
        event = _build_event(body, request)
        # The model call blocks, so keep it off the event loop
        lambda_response = await run_in_threadpool(process, event, runtime)
        return _process_response(lambda_response)

    # --- route to talk to the Shipping Agent ---
    @app.post("/chat")
    async def chat(request: Request) -> Response:
        return await _process_request(request)

    # --- dashboard listing ---
    @app.get("/shipments")
    async def shipments(request: Request) -> Response:
        return await _process_request(request)

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    return app


app = create_app()
