"""Knowledge storage endpoint. Storage failures are reported, never raised."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

router = APIRouter(tags=["store"])


class StoreRequest(BaseModel):
    text: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


@router.post("/store")
async def store(payload: StoreRequest, request: Request):
    stored = await request.app.state.service.store_text(payload.text, payload.metadata)
    return {
        "success": stored,
        "stored": stored,
        "message": "Stored successfully" if stored else "Failed to store",
    }
