"""Analysis endpoints: run an analysis, inspect and reset the in-flight flag."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

router = APIRouter(tags=["analysis"])


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resume_text: str = Field("", alias="resumeText")
    job_text: str = Field("", alias="jobText")


@router.post("/analyze")
async def analyze(payload: AnalyzeRequest, request: Request):
    result = await request.app.state.service.analyze(payload.resume_text, payload.job_text)
    return {"success": True, "result": result.model_dump()}


@router.get("/analysis/status")
async def analysis_status(request: Request):
    status = request.app.state.service.analysis_status()
    return {
        "inProgress": status["in_progress"],
        "requestId": status["request_id"],
        "durationSeconds": status["duration_seconds"],
    }


@router.post("/analysis/reset")
async def analysis_reset(request: Request):
    """Clear a stuck in-flight flag. Does not cancel the running analysis."""
    previous = request.app.state.service.reset_analysis()
    return {"success": True, "message": "Analysis state cleared", "previousRequestId": previous}
