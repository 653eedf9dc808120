"""Chat endpoint for iterative resume editing."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from ...models import ChatTurn

router = APIRouter(tags=["chat"])


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    current_draft: str = Field("", alias="currentDraft")
    job_text: str = Field("", alias="jobText")
    chat_history: List[ChatTurn] = Field(default_factory=list, alias="chatHistory")


@router.post("/chat")
async def chat(payload: ChatRequest, request: Request):
    reply = await request.app.state.service.chat(
        payload.message,
        payload.current_draft,
        payload.job_text,
        payload.chat_history,
    )
    return {"success": True, "result": reply.model_dump()}
