"""
Admin-secret authentication for the structure API.

Every structure route is an operator/cron surface, so there is one shared
secret (STRUCTURE_ADMIN_SECRET) and no per-user auth.

Secret extraction order:
1. x-index-admin-secret header
2. Authorization: Bearer <secret> header

Usage:
    from api.auth import require_admin_secret

    router = APIRouter(dependencies=[Depends(require_admin_secret)])
"""

import logging
import os
import secrets

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

ADMIN_SECRET_ENV = "STRUCTURE_ADMIN_SECRET"
ADMIN_SECRET_HEADER = "x-index-admin-secret"

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)


def _get_secret_from_env() -> str | None:
    return os.environ.get(ADMIN_SECRET_ENV) or None


def _get_secret_from_request(request: Request) -> str | None:
    header_secret = request.headers.get(ADMIN_SECRET_HEADER)
    if header_secret:
        return header_secret

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip()

    return None


async def require_admin_secret(
    request: Request, credentials: HTTPAuthorizationCredentials | None = Depends(security)
) -> str:
    """
    Dependency that requires the admin secret.

    Raises HTTPException 500 when no secret is configured (the processor
    must never run open), 401 when the secret is missing or wrong.
    """
    expected = _get_secret_from_env()
    if not expected:
        logger.error(f"{ADMIN_SECRET_ENV} not configured")
        raise HTTPException(status_code=500, detail="Processor not configured")

    provided = _get_secret_from_request(request)
    if not provided:
        logger.warning(f"Auth failed: no admin secret provided for {request.url.path}")
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Constant-time comparison
    if not secrets.compare_digest(provided.encode(), expected.encode()):
        logger.warning(f"Auth failed: invalid admin secret for {request.url.path}")
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return provided
