import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from .errors import StoreError
from .logging_utils import configure_logging, get_request_id, reset_request_id, set_request_id
from .repositories import get_repository
from .routers import todos as todos_router
from .settings import get_settings

REQUEST_ID_HEADER = "X-Request-ID"

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "todos", "description": "CRUD operations for Todo items backed by a document store."},
]

_settings = get_settings()
configure_logging(_settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    repo = get_repository()
    await repo.connect()
    logger.info("Todo API started backend=%s", _settings.persistence_backend)
    try:
        yield
    finally:
        await repo.close()
        logger.info("Todo API stopped")


app = FastAPI(
    title="Todo API",
    description="CRUD service for todo items stored in MongoDB.",
    version="1.0.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

# Configure CORS based on settings (CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _unhandled_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    response = JSONResponse(status_code=500, content={"message": str(exc)})
    request_id = get_request_id()
    if request_id:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag every log line of a request with its X-Request-ID (generated when absent)."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    token = set_request_id(request_id)
    try:
        response = await call_next(request)
    except Exception as exc:
        # Handled here so the log line and the 500 still carry the request id
        response = _unhandled_error_response(request, exc)
    finally:
        reset_request_id(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors
    (e.g. a body that is not a JSON object).

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": exc.errors(),
        },
    )


@app.exception_handler(StoreError)
@app.exception_handler(PyMongoError)
async def store_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Report a store rejection as a 500 whose body carries the store's message,
    e.g. {"message": "Todo validation failed: done: Path `done` is required."}
    """
    logger.warning("%s %s rejected by store: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return _unhandled_error_response(request, exc)


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": get_settings().persistence_backend}


app.include_router(todos_router.router)
