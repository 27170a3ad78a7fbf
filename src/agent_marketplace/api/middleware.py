"""FastAPI middleware for request tracing, caller auth, error handling, and CORS.

Middleware stack (applied bottom-up):
    1. RequestIDMiddleware — injects X-Request-ID into every request/response
    2. AgentTokenMiddleware — rejects callers presenting a wrong x-agent-token
    3. ErrorHandlerMiddleware — catches domain exceptions -> structured JSON errors
    4. CORSMiddleware — handles browser-based MCP clients
"""

from __future__ import annotations

import hmac
import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from agent_marketplace.domain.exceptions import (
    AgentNotFoundError,
    MarketplaceError,
    UnauthorizedError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response
    from starlette.types import ASGIApp

    from agent_marketplace.config import Settings

logger = structlog.get_logger(__name__)

AGENT_TOKEN_HEADER = "x-agent-token"
# Endpoints reachable without the shared secret
PUBLIC_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


# ---------------------------------------------------------------------------
# 1. Request ID Middleware
# ---------------------------------------------------------------------------
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject a unique X-Request-ID into every request for log correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# 2. Agent Token Middleware
# ---------------------------------------------------------------------------
class AgentTokenMiddleware(BaseHTTPMiddleware):
    """Check the optional shared secret sent by external calling agents.

    With no token configured every caller passes. With one configured, a
    request carrying a different x-agent-token is rejected; a request
    without the header passes so local agents and the UI keep working.
    """

    def __init__(self, app: ASGIApp, token: str = "") -> None:
        super().__init__(app)
        self._token = token

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        presented = request.headers.get(AGENT_TOKEN_HEADER)
        if (
            self._token
            and presented is not None
            and not request.url.path.startswith(PUBLIC_PATHS)
            and not hmac.compare_digest(presented, self._token)
        ):
            exc = UnauthorizedError()
            logger.warning("auth.rejected", path=request.url.path)
            return JSONResponse(
                status_code=401,
                content={"error": exc.code, "message": exc.message},
            )
        return await call_next(request)


# ---------------------------------------------------------------------------
# 3. Error Handler Middleware
# ---------------------------------------------------------------------------
class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch domain exceptions and return structured JSON error responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except AgentNotFoundError as exc:
            logger.warning("agent.not_found", error=exc.message)
            return JSONResponse(
                status_code=404,
                content={"error": exc.code, "message": exc.message},
            )
        except UnauthorizedError as exc:
            return JSONResponse(
                status_code=401,
                content={"error": exc.code, "message": exc.message},
            )
        except MarketplaceError as exc:
            logger.error("domain.error", error=exc.message, code=exc.code)
            return JSONResponse(
                status_code=400,
                content={"error": exc.code, "message": exc.message},
            )
        except Exception as exc:
            logger.exception("unhandled.error", error=str(exc))
            return JSONResponse(
                status_code=500,
                content={
                    "error": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                },
            )


# ---------------------------------------------------------------------------
# Setup function
# ---------------------------------------------------------------------------
def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI application.

    Order matters: middleware is applied bottom-up, so the last added
    middleware runs first.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(ErrorHandlerMiddleware)

    app.add_middleware(
        AgentTokenMiddleware,
        token=settings.agent_api_token.get_secret_value(),
    )

    # Request ID (runs last = outermost)
    app.add_middleware(RequestIDMiddleware)
