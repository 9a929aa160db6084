"""Nutrix API Server - Entry point.

Serves the JSON API and the MCP server with HTTP transport.
Uses Starlette with the MCP HTTP app mounted at root.
"""

import logging
import math
import os
from typing import Any

import uvicorn
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from .core.biomarkers import classify
from .core.meal_plans import allocate_meal_plan
from .core.metrics import calculate_all_metrics
from .core.models import Profile
from .shell.auth import AccountSuspendedError, DuplicateEmailError, RegistrationError
from .shell.mcp_server import current_user_id, get_auth_client, get_repository, mcp
from .shell.seed import bootstrap_admin, seed_catalog


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:5173"


# ==================== Auth Handlers ====================


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "healthy", "service": "nutrix"})


async def register_user(request: Request) -> JSONResponse:
    """Register a new user and return their API key."""
    try:
        body = await request.json()
        api_key, user = get_auth_client().register_user(
            body.get("email", ""), body.get("password", ""), body.get("name", ""),
        )
        return JSONResponse({
            "api_key": api_key,
            "user_id": user.id,
            "message": "Registration successful! Save your API key - it won't be shown again.",
        })

    except DuplicateEmailError as e:
        return JSONResponse({"error": str(e)}, status_code=409)
    except RegistrationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except Exception as e:
        logger.error("Registration failed: %s", str(e))
        return JSONResponse({"error": "Registration failed."}, status_code=500)


async def login(request: Request) -> JSONResponse:
    """Check credentials and issue a fresh API key."""
    try:
        body = await request.json()
        result = get_auth_client().login(body.get("email", ""), body.get("password", ""))
        if result is None:
            return JSONResponse({"error": "Invalid email or password"}, status_code=401)

        api_key, user = result
        return JSONResponse({"api_key": api_key, "user_id": user.id, "role": user.role.value})

    except AccountSuspendedError as e:
        return JSONResponse({"error": str(e)}, status_code=403)
    except Exception as e:
        logger.error("Login failed: %s", str(e))
        return JSONResponse({"error": "Login failed."}, status_code=500)


async def validate_key(request: Request) -> JSONResponse:
    """Validate an API key."""
    try:
        body = await request.json()
        api_key = body.get("api_key")

        if not api_key:
            return JSONResponse({"valid": False, "error": "API key required"})

        user_id = get_auth_client().validate_api_key(api_key)
        return JSONResponse({"valid": user_id is not None})

    except Exception as e:
        logger.error("Validation failed: %s", str(e))
        return JSONResponse({"valid": False, "error": "Validation failed"})


# ==================== Calculation Handlers ====================


class InvalidBodyError(ValueError):
    """Request body is not a JSON object."""


async def _json_object(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError as e:  # JSONDecodeError, UnicodeDecodeError
        raise InvalidBodyError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise InvalidBodyError("Invalid JSON body")
    return body


def _is_finite_number(value: Any) -> bool:
    """JSON numbers only: no bools, strings, Infinity or NaN."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


async def metrics(request: Request) -> JSONResponse:
    """Compute BMR, TDEE and BMI for a profile."""
    try:
        profile = Profile(**(await _json_object(request)))
        return JSONResponse(calculate_all_metrics(profile).model_dump(mode="json"))

    except ValidationError as e:
        details = e.errors(include_url=False, include_context=False, include_input=False)
        return JSONResponse({"error": "Invalid profile", "details": details}, status_code=422)
    except InvalidBodyError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except Exception as e:
        logger.error("Metrics failed: %s", str(e))
        return JSONResponse({"error": "Metrics calculation failed."}, status_code=500)


async def classify_biomarker(request: Request) -> JSONResponse:
    """Classify one value against a normal range."""
    try:
        body = await _json_object(request)
        values = [body.get(k) for k in ("value", "normal_min", "normal_max")]
        if not all(_is_finite_number(v) for v in values):
            return JSONResponse(
                {"error": "value, normal_min and normal_max must be finite numbers"}, status_code=422
            )
        return JSONResponse({"status": classify(*values).value})

    except InvalidBodyError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except Exception as e:
        logger.error("Classification failed: %s", str(e))
        return JSONResponse({"error": "Classification failed."}, status_code=500)


async def preview_meal_plan(request: Request) -> JSONResponse:
    """Allocate a meal plan without storing it."""
    try:
        body = await _json_object(request)
        target = body.get("target_calories")
        if target is not None and not _is_finite_number(target):
            return JSONResponse({"error": "target_calories must be a finite number"}, status_code=422)

        plan = allocate_meal_plan(target, body.get("condition"))
        return JSONResponse(plan.model_dump(mode="json"))

    except InvalidBodyError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except Exception as e:
        logger.error("Meal plan preview failed: %s", str(e))
        return JSONResponse({"error": "Meal plan preview failed."}, status_code=500)


# ==================== Auth Middleware ====================


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticate MCP requests using API key in Authorization header."""

    async def dispatch(self, request: Request, call_next):
        # Skip auth for non-MCP routes
        if not request.url.path.startswith("/mcp"):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")

        if auth_header.startswith("Bearer "):
            api_key = auth_header.removeprefix("Bearer ")
            user_id = get_auth_client().validate_api_key(api_key)
            if user_id is not None:
                current_user_id.set(user_id)
                logger.debug("Authenticated user: %s", user_id[:8])

        return await call_next(request)


# ==================== Create ASGI App ====================


def create_app() -> Starlette:
    """Create the Starlette application with MCP at root.

    The MCP streamable_http_app() handles /mcp/ internally when mounted at root.
    """
    repo = get_repository()
    seed_catalog(repo)
    bootstrap_admin(repo)

    mcp_app = mcp.streamable_http_app()

    routes = [
        Route("/health", health_check, methods=["GET"]),
        Route("/auth/register", register_user, methods=["POST"]),
        Route("/auth/login", login, methods=["POST"]),
        Route("/auth/validate", validate_key, methods=["POST"]),
        Route("/api/metrics", metrics, methods=["POST"]),
        Route("/api/biomarkers/classify", classify_biomarker, methods=["POST"]),
        Route("/api/meal-plans/preview", preview_meal_plan, methods=["POST"]),
        Mount("/", app=mcp_app),
    ]

    origins = os.environ.get("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")

    return Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=[o.strip() for o in origins if o.strip()],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            ),
            Middleware(AuthMiddleware),
        ],
        lifespan=mcp_app.router.lifespan_context,
    )


def main() -> None:
    """Run the server."""
    port = int(os.environ.get("PORT", 8080))
    host = os.environ.get("HOST", "0.0.0.0")

    logger.info("Starting Nutrix server on %s:%d", host, port)

    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
