"""Knowledge API routes: list, learn, search and forget facts."""

from datetime import datetime

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException

from ...app import IApplication
from ...models import KnowledgeFact


class FactRequest(BaseModel):
    """Request model for teaching a fact."""

    text: str = Field(..., min_length=1)
    source: str | None = "api"
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class FactResponse(BaseModel):
    id: int
    text: str
    source: str | None
    confidence: float
    created_at: datetime
    updated_at: datetime
    similarity: float | None = None


class StoredResponse(BaseModel):
    id: int


def _to_response(fact: KnowledgeFact) -> dict:
    return {
        "id": fact.id,
        "text": fact.text,
        "source": fact.source,
        "confidence": fact.confidence,
        "created_at": fact.created_at,
        "updated_at": fact.updated_at,
        "similarity": fact.similarity,
    }


def create_knowledge_router(app: IApplication) -> APIRouter:
    """Create knowledge router."""
    router = APIRouter(prefix="/api/knowledge", tags=["knowledge"])

    @router.get("/facts", response_model=list[FactResponse])
    async def list_facts() -> list[dict]:
        """All facts, most recently updated first."""
        return [_to_response(f) for f in await app.knowledge.get_all_facts()]

    @router.post("/facts", response_model=StoredResponse)
    async def learn_fact(request: FactRequest) -> dict:
        """Store a fact, or refresh it if the same text is already known."""
        fact_id = await app.knowledge.store_fact(
            request.text, source=request.source, confidence=request.confidence
        )
        if fact_id < 0:
            raise HTTPException(status_code=500, detail="Could not store fact")
        return {"id": fact_id}

    @router.get("/search", response_model=list[FactResponse])
    async def search_facts(q: str, limit: int = 10) -> list[dict]:
        """Facts relevant to a query."""
        return [_to_response(f) for f in await app.knowledge.semantic_search(q, limit)]

    @router.get("/facts/{fact_id}", response_model=FactResponse)
    async def get_fact(fact_id: int) -> dict:
        fact = await app.knowledge.get_fact(fact_id)
        if fact is None:
            raise HTTPException(status_code=404, detail=f"Fact {fact_id} not found")
        return _to_response(fact)

    @router.delete("/facts/{fact_id}")
    async def forget_fact(fact_id: int) -> dict:
        """Delete a fact."""
        if not await app.knowledge.delete_fact(fact_id):
            raise HTTPException(status_code=404, detail=f"Fact {fact_id} not found")
        return {"status": "ok"}

    return router
