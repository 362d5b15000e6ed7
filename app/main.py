import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.cache import RedisCacheBackend, build_cache
from app.client import ResourceClient, build_http_client
from app.config import settings
from app.exceptions import NotFoundError, RemoteError, TransportError, ValidationError
from app.logger import setup_logging
from app.middleware import TimingMiddleware
from app.routers import metrics, posts
from app.schemas import ApiResponse
from app.services.aggregation_service import AggregationEngine
from app.services.post_service import PostService

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    cache = build_cache()
    if isinstance(cache.backend, RedisCacheBackend):
        try:
            await cache.backend.connect()
        except Exception as exc:
            logger.warning("Redis unavailable, serving without a shared cache: %s", exc)
    client = ResourceClient(build_http_client())
    app.state.cache = cache
    app.state.post_service = PostService(AggregationEngine(client, cache))
    logger.info(
        "[%s] Aggregating from %s (cache=%s, concurrency=%d)",
        settings.APP_ENV,
        settings.UPSTREAM_BASE_URL,
        cache.backend.name,
        settings.FETCH_CONCURRENCY,
    )
    yield
    # Shutdown
    await client.aclose()
    if isinstance(cache.backend, RedisCacheBackend):
        await cache.backend.disconnect()


app = FastAPI(
    title="Posts Aggregator API",
    description=(
        "Joins posts, their authors and their comments from a remote REST "
        "data source into a single response, with a read-through cache in "
        "front of every upstream call."
    ),
    version=VERSION,
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(posts.router)
app.include_router(metrics.router)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

def _error(status_code: int, message: str) -> JSONResponse:
    body = ApiResponse.error(message, status_code).model_dump(by_alias=True)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return _error(400, exc.message)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return _error(400, "Invalid request parameters")


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError):
    return _error(404, exc.message)


@app.exception_handler(RemoteError)
async def handle_remote_error(request: Request, exc: RemoteError):
    if exc.status_code < 500:
        return _error(exc.status_code, f"Upstream API error: {exc.status_code}")
    return _error(503, f"Upstream API failed with {exc.status_code}")


@app.exception_handler(TransportError)
async def handle_transport_error(request: Request, exc: TransportError):
    return _error(503, "Could not reach the upstream API. Please retry later.")


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}
