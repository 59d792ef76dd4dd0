"""
Session API routes.

Provides REST endpoints for session management:
- List the caller's sessions (most recently active first)
- Create a session
- Rename a session
- Delete a session and its messages
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from chatjpt.models import Identity
from chatjpt.storage import RedisSessionStore

from ..dependencies import get_current_identity, get_server, read_json_body

router = APIRouter(prefix="/api", tags=["sessions"])


class CreateSessionRequest(BaseModel):
    """Request model for creating a session."""

    title: Optional[Any] = Field(None, description="Session title")


class RenameSessionRequest(BaseModel):
    """Request model for renaming a session. Title is checked by the store."""

    title: Optional[Any] = Field(None, description="New title")


def _session_store() -> RedisSessionStore:
    server = get_server()
    if not server.service_container or not server.service_container.session_store:
        raise HTTPException(status_code=503, detail="Session store not available")
    return server.service_container.session_store


@router.get("/sessions")
async def list_sessions(identity: Identity = Depends(get_current_identity)):
    """List the caller's sessions, newest activity first."""
    store = _session_store()

    result = await store.list_sessions(user_id=identity.uid)

    if result.is_failure():
        return JSONResponse(content=result.to_dict(), status_code=result.status_code)

    return [session.to_api() for session in result.unwrap()]


@router.post("/sessions", status_code=201)
async def create_session(
    request: Request,
    identity: Identity = Depends(get_current_identity),
):
    """
    Create a session.

    A missing, empty or non-string title becomes "New chat". The body is
    optional; when present it must be a JSON object.
    """
    store = _session_store()

    body_result = await read_json_body(request, CreateSessionRequest)
    if body_result.is_failure():
        return JSONResponse(
            content=body_result.to_dict(), status_code=body_result.status_code
        )
    title = body_result.unwrap().title

    result = await store.create_session(
        user_id=identity.uid,
        title=title if isinstance(title, str) else None,
    )

    if result.is_failure():
        return JSONResponse(content=result.to_dict(), status_code=result.status_code)

    session = result.unwrap()
    return {"id": session.id, "title": session.title}


@router.patch("/sessions/{session_id}")
async def rename_session(
    session_id: str,
    request: Request,
    identity: Identity = Depends(get_current_identity),
):
    """Rename a session. 400 without a title, 404 for an unknown session."""
    store = _session_store()

    body_result = await read_json_body(request, RenameSessionRequest)
    if body_result.is_failure():
        return JSONResponse(
            content=body_result.to_dict(), status_code=body_result.status_code
        )

    result = await store.rename_session(
        user_id=identity.uid,
        session_id=session_id,
        title=body_result.unwrap().title,
    )

    if result.is_failure():
        return JSONResponse(content=result.to_dict(), status_code=result.status_code)

    return {"ok": True}


@router.delete("/sessions/{session_id}")
async def delete_session(
    session_id: str,
    identity: Identity = Depends(get_current_identity),
):
    """Delete a session and all its messages. Unknown sessions succeed too."""
    store = _session_store()

    result = await store.delete_session(user_id=identity.uid, session_id=session_id)

    if result.is_failure():
        return JSONResponse(content=result.to_dict(), status_code=result.status_code)

    return {"ok": True}
