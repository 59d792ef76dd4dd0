"""
Message API routes.

- Read a session's full message log
- Send a user message and receive the assistant reply
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from chatjpt.models import Identity

from ..dependencies import get_current_identity, get_server, read_json_body

router = APIRouter(prefix="/api", tags=["messages"])


class SendMessageRequest(BaseModel):
    """Request model for sending a message. Text is checked by the message log."""

    text: Optional[Any] = Field(None, description="User message text")


def _container():
    server = get_server()
    container = server.service_container
    if not container or not container.message_log or not container.assembler:
        raise HTTPException(status_code=503, detail="Message services not available")
    return container


@router.get("/sessions/{session_id}/messages")
async def list_messages(
    session_id: str,
    identity: Identity = Depends(get_current_identity),
):
    """Return every message of the session, oldest first."""
    message_log = _container().message_log

    result = await message_log.list_messages(
        user_id=identity.uid, session_id=session_id
    )

    if result.is_failure():
        return JSONResponse(content=result.to_dict(), status_code=result.status_code)

    return [message.to_api() for message in result.unwrap()]


@router.post("/sessions/{session_id}/messages", status_code=201)
async def send_message(
    session_id: str,
    request: Request,
    identity: Identity = Depends(get_current_identity),
):
    """
    Store a user message and generate the assistant reply.

    Always answers with both messages once the user message is stored;
    generator failures surface as fallback assistant text, not errors.
    """
    assembler = _container().assembler

    body_result = await read_json_body(request, SendMessageRequest)
    if body_result.is_failure():
        return JSONResponse(
            content=body_result.to_dict(), status_code=body_result.status_code
        )

    result = await assembler.send_message(
        user_id=identity.uid,
        session_id=session_id,
        text=body_result.unwrap().text,
    )

    if result.is_failure():
        return JSONResponse(content=result.to_dict(), status_code=result.status_code)

    return result.unwrap().to_api()
