"""
Dependency injection for API routes.
"""

import json
import logging
from typing import TYPE_CHECKING, Optional, Type, TypeVar

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from ...auth import AuthenticationError
from ...models import Identity
from ...utils.logging import log_event
from ...utils.result import Result, Success, validation_error

if TYPE_CHECKING:
    from ..application_server import ApplicationServer


# Global server instance - set during app startup
_server_instance: Optional["ApplicationServer"] = None

bearer_scheme = HTTPBearer(auto_error=False)

BodyModel = TypeVar("BodyModel", bound=BaseModel)


def set_server_instance(server: "ApplicationServer"):
    """
    Set the global server instance.

    Args:
        server: The ApplicationServer instance to use globally
    """
    global _server_instance
    _server_instance = server


def get_server() -> "ApplicationServer":
    """
    Get the current server instance.

    Raises:
        RuntimeError: If server instance not initialized
    """
    if _server_instance is None:
        raise RuntimeError("Server instance not initialized")
    return _server_instance


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """
    Resolve the caller from ``Authorization: Bearer <token>``.

    Any resolver failure is a 401; storage is never touched for an
    unauthenticated request.
    """
    if credentials is None or not credentials.credentials:
        log_event("auth_rejected", {"reason": "missing_token"}, level=logging.INFO)
        raise _unauthorized("Missing bearer token")

    resolver = get_server().service_container.identity_resolver

    try:
        return await resolver.resolve(credentials.credentials)
    except AuthenticationError as e:
        raise _unauthorized(e.reason) from e
    except Exception as e:
        log_event(
            "auth_rejected",
            {"reason": "resolver_error", "error_type": type(e).__name__},
            level=logging.WARNING,
        )
        raise _unauthorized("Invalid token") from e


async def read_json_body(
    request: Request, model: Type[BodyModel]
) -> Result[BodyModel, str]:
    """
    Parse a request body into ``model``.

    Called from route bodies, so it only runs once the caller is
    authenticated. An empty body parses as ``{}``; invalid JSON or a JSON
    value that is not an object is a ValidationError.
    """
    raw = await request.body()
    if not raw.strip():
        return Success(model())

    try:
        payload = json.loads(raw)
    except ValueError:
        log_event(
            "request_body_rejected",
            {"path": request.url.path, "reason": "malformed_json"},
            level=logging.INFO,
        )
        return validation_error("Malformed JSON body")

    if not isinstance(payload, dict):
        log_event(
            "request_body_rejected",
            {"path": request.url.path, "reason": "not_an_object"},
            level=logging.INFO,
        )
        return validation_error(
            "Request body must be a JSON object",
            context={"body_type": type(payload).__name__},
        )

    return Success(model.model_validate(payload))
