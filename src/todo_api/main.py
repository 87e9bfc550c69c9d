from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import Database
from .errors import ApiError, ValidationFailed
from .logging_config import get_logger, setup_logging
from .routers import chat as chat_router
from .routers import todos as todos_router
from .settings import Settings, get_settings

logger = get_logger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Owner-scoped CRUD operations for Todo items. Requires a session.",
    },
    {"name": "chat", "description": "Streaming chat completion passthrough. Requires a session."},
]


def _validation_issues(exc: RequestValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "path": [part for part in err.get("loc", ()) if part != "body"],
            "message": err.get("msg", ""),
            "code": err.get("type", "invalid"),
        }
        for err in exc.errors()
    ]


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        """Render taxonomy errors as ``{"error": message}`` with their status."""
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Unknown routes and wrong methods keep the {"error": ...} body shape
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return the structured validation shape with status 400.

        Response format:
            {
                "success": false,
                "error": {
                    "name": "ValidationError",
                    "message": "Validation failed",
                    "issues": [{"path": [...], "message": "...", "code": "..."}]
                }
            }
        """
        failure = ValidationFailed(_validation_issues(exc))
        logger.debug("Validation failed on %s %s: %s", request.method, request.url.path, failure.issues)
        return JSONResponse(status_code=failure.status_code, content=failure.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error on %s %s (user-agent=%s)",
            request.method,
            request.url.path,
            request.headers.get("user-agent"),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    The database handle is created here and stored on ``app.state``; routes
    reach it only through request-scoped dependencies.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Todo API",
        description="Owner-scoped todo lists behind session authentication, with a chat passthrough.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.settings = settings
    app.state.database = Database(settings.database_path)

    # Credentialed CORS cannot use a wildcard origin
    allow_all = settings.cors_allow_origins == ["*"] or len(settings.cors_allow_origins) == 0
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy"}

    @app.get("/api/health", summary="API Health", tags=["health"], response_class=PlainTextResponse)
    def api_health() -> str:
        return "ok"

    app.include_router(todos_router.router)
    app.include_router(chat_router.router)

    logger.info(
        "App created: environment=%s, database=%s, chat=%s",
        settings.environment,
        settings.database_path,
        "enabled" if settings.openai_api_key else "disabled",
    )
    return app


app = create_app()
