"""Control API routes."""

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import IApplication


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str
    session_id: str | None = None
    tools: list[str] = []
    exchanges_in_flight: int = 0
    exchange_policy: str | None = None


class ResetRequest(BaseModel):
    wipe: bool = False


class PersonalityResponse(BaseModel):
    traits: dict
    prompt: str


class AdjustResponse(BaseModel):
    traits: dict


class AdjustRequest(BaseModel):
    trait: str
    value: bool | float


def create_control_router(app: IApplication) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.get("/status", response_model=StatusResponse)
    async def get_status() -> dict:
        """Report whether the assistant is running."""
        if not app.is_running:
            return {"status": "stopped"}
        return {
            "status": "running",
            "session_id": app.memory.session_id,
            "tools": app.registry.names(),
            "exchanges_in_flight": app.orchestrator.in_flight,
            "exchange_policy": app.orchestrator.policy.value,
        }

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system(request: ResetRequest | None = None) -> dict:
        """Start a new conversation session, optionally wiping stored data."""
        try:
            session = await app.reset(wipe=bool(request and request.wipe))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok", "session_id": session.id}

    @router.get("/personality", response_model=PersonalityResponse)
    async def get_personality() -> dict:
        return {
            "traits": app.personality.get_traits().to_dict(),
            "prompt": app.personality.generate_system_prompt(),
        }

    @router.post("/personality", response_model=AdjustResponse)
    async def adjust_personality(request: AdjustRequest) -> dict:
        """Adjust one trait. Continuous traits are clamped into [0, 1]."""
        try:
            traits = app.adjust_personality(request.trait, request.value)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"traits": traits.to_dict()}

    return router
