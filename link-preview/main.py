import logging
from typing import Optional

import requests
import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from config import CACHE_MAXSIZE, CACHE_TTL, LOG_LEVEL, PORT
from models.preview import ErrorResponse, PreviewResponse
from services.cache import PreviewCache
from services.preview import PreviewFetchError, PreviewService
from services.proxy import open_upstream
from services.validation import is_valid_url

logging.basicConfig(level=LOG_LEVEL.upper())
logger = logging.getLogger("link-preview")

ALLOWED_HEADERS = ["Origin", "X-Requested-With", "Content-Type", "Accept"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
}


class APIError(Exception):
    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details


preview_service = PreviewService(cache=PreviewCache(ttl=CACHE_TTL, maxsize=CACHE_MAXSIZE))


def get_preview_service() -> PreviewService:
    return preview_service


app = FastAPI(title="Link Preview Service", version="1.0.0")

# Wide open for a public read-only service; restrict origins for multi-tenant use.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=ALLOWED_HEADERS,
)


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    # CORSMiddleware only answers requests carrying an Origin header.
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    body = ErrorResponse(error=exc.error, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # Runs outside every other middleware, so the CORS headers are set here.
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "internal server error"},
        headers=CORS_HEADERS,
    )


def _require_url(url: Optional[str]) -> str:
    if not url:
        raise APIError(400, "missing URL")
    if not is_valid_url(url):
        raise APIError(400, "invalid URL")
    return url


@app.get("/api/preview", response_model=PreviewResponse, response_model_exclude_none=True)
async def get_preview(
    url: Optional[str] = Query(None, description="The URL to fetch metadata for"),
    service: PreviewService = Depends(get_preview_service),
):
    url = _require_url(url)
    try:
        return await service.get_preview(url)
    except PreviewFetchError as exc:
        logger.error(f"Metadata retrieval failed for {url}: {exc}")
        raise APIError(500, "metadata retrieval failed", details=str(exc))


@app.get("/api/proxy")
def proxy(url: Optional[str] = Query(None, description="The file to relay")):
    url = _require_url(url)
    try:
        upstream = open_upstream(url)
    except requests.RequestException as exc:
        logger.error(f"Proxy request failed for {url}: {exc}")
        raise APIError(500, "file retrieval failed")

    return StreamingResponse(
        upstream.chunks,
        headers={"Content-Type": upstream.content_type},
        background=BackgroundTask(upstream.response.close),
    )


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ready")
def ready():
    return {"status": "ready"}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=PORT)
