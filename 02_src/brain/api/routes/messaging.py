"""Messaging API routes."""

import asyncio
from typing import Any

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException

from ...app import IApplication


class MessageRequest(BaseModel):
    """Request model for sending a message."""

    text: str = Field(..., min_length=1)
    timeout: float | None = Field(default=120.0, gt=0)


class MessageResponse(BaseModel):
    """Response model for message."""

    response: str
    error: bool = False
    tools: list[dict[str, Any]] = []
    thinking: list[str] = []


def create_messaging_router(app: IApplication) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.post("/messages", response_model=MessageResponse)
    async def send_message(request: MessageRequest) -> dict:
        """Send a message and wait for the assistant's reply."""
        try:
            reply = await app.ask(request.text, timeout=request.timeout)
        except asyncio.TimeoutError:
            raise HTTPException(status_code=504, detail="Timed out waiting for reply")
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {
            "response": reply.text,
            "error": reply.error,
            "tools": reply.tools,
            "thinking": reply.thinking,
        }

    return router
