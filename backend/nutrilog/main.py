"""NutriLog MCP Server - Entry point.

Runs the MCP server with HTTP transport for Cloud Run deployment, next to the
registration routes and the activity sync webhook health apps post to.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, Mount

from .core.errors import (
    ConflictError,
    EstimationError,
    LedgerError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .shell.config import AppConfig
from .shell.mcp_server import create_mcp, current_user_id
from .shell.services import LedgerServices, build_services


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)

# HTTP status per engine error; anything else is a 500
ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    EstimationError: 502,
    StorageError: 503,
}


def error_response(error: LedgerError) -> JSONResponse:
    status = ERROR_STATUS.get(type(error), 500)
    return JSONResponse(error.to_dict(), status_code=status)


def bearer_user(request: Request) -> Optional[str]:
    """User id for the request's Bearer API key, if it is registered."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    services: LedgerServices = request.app.state.services
    return services.auth.validate_api_key(auth_header[len("Bearer "):])


async def read_json_object(request: Request) -> dict:
    """Request body as a JSON object.

    Raises:
        ValidationError: If the body is not a JSON object
    """
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("body", "must be valid JSON") from None
    if not isinstance(body, dict):
        raise ValidationError("body", "must be a JSON object")
    return body


# ==================== Route Handlers ====================


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint for Cloud Run."""
    return JSONResponse({"status": "healthy", "service": "nutrilog-mcp"})


async def register_user(request: Request) -> JSONResponse:
    """Register a new user and return their API key."""
    services: LedgerServices = request.app.state.services
    config: AppConfig = request.app.state.config
    try:
        body = await read_json_object(request)
        api_key, _ = services.auth.register_user(body.get("email"), body.get("daily_calorie_goal"))
    except LedgerError as e:
        return error_response(e)
    except Exception as e:
        logger.error("Registration failed: %s", str(e))
        return JSONResponse({"error": "Registration failed."}, status_code=500)

    return JSONResponse({
        "api_key": api_key,
        "message": "Registration successful! Save your API key - it won't be shown again.",
        "claude_command": (
            f"claude mcp add --transport http nutrilog {config.base_url}/mcp "
            f'--header "Authorization: Bearer {api_key}"'
        ),
    })


async def validate_key(request: Request) -> JSONResponse:
    """Validate an API key."""
    services: LedgerServices = request.app.state.services
    try:
        body = await read_json_object(request)
        api_key = body.get("api_key")
        if not api_key:
            return JSONResponse({"valid": False, "error": "API key required"})
        return JSONResponse({"valid": services.auth.validate_api_key(api_key) is not None})
    except LedgerError as e:
        return JSONResponse({"valid": False, "error": e.message})


async def sync_activity(request: Request) -> JSONResponse:
    """Webhook for health platforms: record one activity observation."""
    user_id = bearer_user(request)
    if user_id is None:
        return JSONResponse({"error": "Valid API key required", "code": "unauthenticated"}, status_code=401)

    services: LedgerServices = request.app.state.services
    try:
        body = await read_json_object(request)
        entry = services.reconciliation.sync_activity(user_id, body)
    except LedgerError as e:
        return error_response(e)
    return JSONResponse(entry.model_dump(mode="json"))


# ==================== Auth Middleware ====================


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticate MCP requests using API key in Authorization header."""

    async def dispatch(self, request: Request, call_next):
        # Skip auth for non-MCP routes
        if not request.url.path.startswith("/mcp"):
            return await call_next(request)

        user_id = bearer_user(request)
        if user_id is not None:
            # Set user context for this request
            current_user_id.set(user_id)
            logger.debug("Authenticated user: %s", user_id[:8])

        return await call_next(request)


# ==================== Create ASGI App ====================


def create_app(services: Optional[LedgerServices] = None, config: Optional[AppConfig] = None) -> Starlette:
    """Create the Starlette application with MCP at root.

    Args:
        services: Engine services; built from config when omitted
        config: Settings; read from the environment when omitted

    The MCP streamable_http_app() handles /mcp/ internally when mounted at root.
    Its lifespan context is used so the session manager starts with the app.
    """
    config = config or AppConfig.from_env()
    services = services or build_services(config)

    allowed_hosts = ["localhost:*", "127.0.0.1:*", "*.run.app", "*.run.app:*"]
    public_host = urlsplit(config.base_url).netloc
    if public_host and public_host not in allowed_hosts:
        allowed_hosts.append(public_host)

    mcp_app = create_mcp(services, allowed_hosts=allowed_hosts).streamable_http_app()

    routes = [
        Route("/health", health_check, methods=["GET"]),
        Route("/auth/register", register_user, methods=["POST"]),
        Route("/auth/validate", validate_key, methods=["POST"]),
        Route("/activity/sync", sync_activity, methods=["POST"]),
        # Mount MCP app at root - it handles /mcp/ path internally
        Mount("/", app=mcp_app),
    ]

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=config.cors_origins,
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            ),
            Middleware(AuthMiddleware),
        ],
        lifespan=mcp_app.router.lifespan_context,
    )
    app.state.services = services
    app.state.config = config
    return app


def main() -> None:
    """Run the server."""
    config = AppConfig.from_env()
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    logger.info("Starting NutriLog MCP server on %s:%d (store: %s)", config.host, config.port, config.store)

    uvicorn.run(create_app(config=config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
