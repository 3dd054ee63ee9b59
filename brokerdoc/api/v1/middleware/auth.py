"""JWT Authentication Middleware for FastAPI.

This middleware verifies the JWT access token in the Authorization header
using the verifier built at startup and attaches the caller to the request
state.
"""

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from brokerdoc.core.config import settings
from brokerdoc.schemas.auth import CurrentUser
from brokerdoc.utils.logging import get_logger
from brokerdoc.utils.responses import create_error_detail

LOGGER = get_logger(__name__)

# Paths that don't require authentication
EXCLUDED_PATHS = {
    "/",
    "/docs",
    "/docs/",
    "/redoc",
    "/openapi.json",
    f"{settings.api_v1_prefix}/health",
    f"{settings.api_v1_prefix}/health/",
}


def _unauthorized(request: Request, detail: str) -> JSONResponse:
    error_detail = create_error_detail(
        title="Authentication Required",
        status=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        request=request,
    )
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=error_detail.model_dump(mode="json"),
        media_type="application/problem+json",
        headers={"WWW-Authenticate": "Bearer"},
    )


class JWTAuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware for JWT authentication.

    Verifies Bearer token in 'Authorization' header and populates request.state.user.
    """

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if path in EXCLUDED_PATHS or path.startswith("/health"):
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            LOGGER.warning(f"Missing Authorization header for {path}")
            return _unauthorized(request, "Authorization header missing")

        if not auth_header.startswith("Bearer "):
            LOGGER.warning(f"Invalid Authorization header format for {path}")
            return _unauthorized(request, "Invalid authentication scheme. Use Bearer token.")

        token = auth_header.split(" ", 1)[1]
        verifier = request.app.state.jwt_verifier

        try:
            claims = await verifier.verify_token(token)
        except jwt.InvalidTokenError as e:
            LOGGER.warning(f"Invalid token for {path}: {e}")
            return _unauthorized(request, "Invalid authentication token")
        except Exception as e:
            LOGGER.error(f"Unexpected error in JWT middleware: {e}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": "Authentication internal error"},
            )

        request.state.user = CurrentUser.from_claims(claims)
        LOGGER.debug(f"Authenticated user {claims.sub} via middleware")
        return await call_next(request)
