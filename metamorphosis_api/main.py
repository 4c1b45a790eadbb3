from __future__ import annotations

import json
import logging
from typing import Any, Callable

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .credentials import ServiceAccountCredentials, resolve_credentials
from .errors import GatewayError, InvalidPayload, MethodNotAllowed
from .providers.vertex import VertexAIProvider
from .schemas import parse_generation_request
from .service import GenerationService

logger = logging.getLogger("metamorphosis-api")
logging.basicConfig(level=logging.INFO)

settings = get_settings()
app = FastAPI(title=settings.app_name)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# /api/generate is the path the serverless platform forwards unchanged.
GENERATE_PATHS = ("/generate", "/api/generate")
GENERATE_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

ProviderFactory = Callable[[ServiceAccountCredentials, Settings], VertexAIProvider]


def build_provider(credentials: ServiceAccountCredentials, settings: Settings) -> VertexAIProvider:
    return VertexAIProvider(
        credentials=credentials,
        location=settings.location,
        root_url=settings.vertex_root_url,
        timeout=settings.request_timeout_seconds,
    )


def get_provider_factory() -> ProviderFactory:
    return build_provider


@app.middleware("http")
async def apply_cors_headers(request: Request, call_next):  # type: ignore[override]
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("unhandled error", extra={"path": request.url.path, "method": request.method})
        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
    response.headers.update(CORS_HEADERS)
    response.headers["X-App"] = settings.app_name
    return response


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(exc.message, extra={"path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.get("/healthz")
async def health() -> dict:
    return {"status": "ok"}


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidPayload("request body is not valid JSON") from None


async def generate(
    request: Request,
    settings: Settings = Depends(get_settings),
    provider_factory: ProviderFactory = Depends(get_provider_factory),
) -> Response:
    """
    Proxy one generation step to Vertex AI.

    Body: ``{"step": "generateText" | "generateImage" | "describeImage", "payload": {...}}``

    Returns:
        ``{"text": str}`` or ``{"base64Image": str}``; errors as ``{"error": str}``.
    """
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK)
    if request.method != "POST":
        raise MethodNotAllowed()

    # Credentials are checked before the body is even looked at.
    credentials = resolve_credentials(settings)
    generation_request = parse_generation_request(await _read_json(request))

    logger.info(
        "proxying generation request",
        extra={"step": generation_request.step, "location": settings.location},
    )

    service = GenerationService(provider_factory(credentials, settings), settings)
    result = await service.dispatch(generation_request)
    return JSONResponse(status_code=status.HTTP_200_OK, content=result.model_dump(by_alias=True))


for _path in GENERATE_PATHS:
    app.add_api_route(_path, generate, methods=GENERATE_METHODS)


def create_app() -> FastAPI:
    return app
