"""Integration tests for the analysis, chat and storage flows."""

import asyncio

import pytest

from conftest import (
    CANONICAL_REPLY,
    CHAT_REPLY,
    JOB,
    RESUME,
    BrokenBackend,
    FakeCompletionBackend,
    GatedCompletionBackend,
    HangingCompletionBackend,
    make_client,
)
from resumefit.exceptions import BackendTimeoutError, ConcurrencyRejectedError, InputValidationError
from resumefit.llm.prompts import STRICT_RETRY_PREFIX
from resumefit.models import ChatTurn
from resumefit.search.store import VectorStore
from resumefit.service import ResumeFitService


def _service(store, *backends, **kwargs) -> ResumeFitService:
    return ResumeFitService(store, make_client(*backends), **kwargs)


@pytest.mark.integration
def test_canonical_analysis(faiss_store):
    backend = FakeCompletionBackend([CANONICAL_REPLY])
    service = _service(faiss_store, backend)

    result = asyncio.run(service.analyze(RESUME, JOB))

    assert result.origin == "canonical"
    assert result.score == 72
    assert "Kubernetes" in result.missing_keywords
    assert result.suggested_edits[0].section == "skills"
    assert result.suggested_edits[0].keywords_addressed == ["Kubernetes"]
    assert backend.kinds == ["analysis"]
    assert "=== REQUIRED QUALIFICATIONS ===" in backend.prompts[0]
    assert 'Resume section: "' in backend.prompts[0]
    assert not service.guard.in_progress


@pytest.mark.integration
def test_malformed_reply_is_retried_with_strict_prompt(faiss_store):
    backend = FakeCompletionBackend(["Sure! Here is my analysis of your resume.", CANONICAL_REPLY])

    result = asyncio.run(_service(faiss_store, backend).analyze(RESUME, JOB))

    assert result.origin == "canonical"
    assert len(backend.prompts) == 2
    assert backend.prompts[1].startswith(STRICT_RETRY_PREFIX)
    assert backend.prompts[1].endswith(backend.prompts[0])


@pytest.mark.integration
def test_two_malformed_replies_fall_back_to_rules(faiss_store):
    backend = FakeCompletionBackend(["not json", '{"unrelated": true}'])

    result = asyncio.run(_service(faiss_store, backend).analyze(RESUME, JOB))

    assert result.origin == "rule_based"
    assert 0 <= result.score <= 90
    assert "python" in result.matched_keywords
    assert result.updated_draft == RESUME


@pytest.mark.integration
def test_failing_backends_fall_back_to_rules(down_store):
    hosted = FakeCompletionBackend([BackendTimeoutError("slow")], name="openai")
    local = FakeCompletionBackend([], name="ollama")

    result = asyncio.run(_service(down_store, hosted, local).analyze(RESUME, JOB))

    assert result.origin == "rule_based"
    assert result.suggested_edits
    assert hosted.prompts and local.prompts


@pytest.mark.integration
def test_hosted_failure_uses_local_reply(faiss_store):
    hosted = FakeCompletionBackend([BackendTimeoutError("slow")], name="openai")
    local = FakeCompletionBackend([CANONICAL_REPLY], name="ollama")

    result = asyncio.run(_service(faiss_store, hosted, local).analyze(RESUME, JOB))

    assert result.origin == "canonical"
    assert result.score == 72


@pytest.mark.integration
def test_empty_input_is_rejected_before_taking_the_slot(faiss_store):
    service = _service(faiss_store, FakeCompletionBackend([CANONICAL_REPLY]))
    service.guard.acquire("busy")

    with pytest.raises(InputValidationError):
        asyncio.run(service.analyze("", JOB))


@pytest.mark.integration
def test_concurrent_analysis_is_rejected(faiss_store):
    backend = GatedCompletionBackend(CANONICAL_REPLY)
    service = _service(faiss_store, backend)

    async def run():
        first = asyncio.create_task(service.analyze(RESUME, JOB))
        while backend.entered == 0:
            await asyncio.sleep(0.01)
        with pytest.raises(ConcurrencyRejectedError) as excinfo:
            await service.analyze(RESUME, JOB)
        assert service.analysis_status()["in_progress"] is True
        backend.release()
        return await first, excinfo.value

    result, rejection = asyncio.run(run())

    assert result.origin == "canonical"
    assert rejection.request_id is not None
    assert not service.guard.in_progress


@pytest.mark.integration
def test_deadline_returns_rule_based_result(faiss_store):
    backend = HangingCompletionBackend()
    service = _service(faiss_store, backend, deadline=2.0)

    result = asyncio.run(service.analyze(RESUME, JOB))

    assert result.origin == "rule_based"
    assert backend.prompts
    assert not service.guard.in_progress


@pytest.mark.integration
def test_reset_clears_the_slot(faiss_store):
    service = _service(faiss_store)
    service.guard.acquire("stuck")

    assert service.reset_analysis() == "stuck"
    assert service.analysis_status() == {"in_progress": False, "request_id": None, "duration_seconds": None}


@pytest.mark.integration
def test_chat_reply(faiss_store):
    backend = FakeCompletionBackend([CHAT_REPLY])
    history = [ChatTurn(role="user", content="Hi"), ChatTurn(role="assistant", content="Hello!")]

    reply = asyncio.run(_service(faiss_store, backend).chat("What about Kubernetes?", "Skills\nPython", JOB, history))

    assert reply.assistant_message == "Consider naming Kubernetes in your skills."
    assert reply.proposed_edits[0].section == "skills"
    assert reply.updated_draft == "Skills\nPython, Kubernetes"
    assert backend.kinds == ["chat"]


@pytest.mark.integration
def test_chat_retries_once(faiss_store):
    backend = FakeCompletionBackend(["{}", CHAT_REPLY])

    reply = asyncio.run(_service(faiss_store, backend).chat("What about Kubernetes?", "Skills\nPython", JOB))

    assert len(backend.prompts) == 2
    assert reply.proposed_edits


@pytest.mark.integration
def test_chat_falls_back_to_canned_reply(down_store):
    backend = FakeCompletionBackend([])

    reply = asyncio.run(_service(down_store, backend).chat("Please add my skills", "Skills\nPython", JOB))

    assert len(backend.prompts) == 2
    assert reply.proposed_edits[0].section == "skills"
    assert reply.updated_draft is None


@pytest.mark.integration
@pytest.mark.parametrize(
    "message, draft, job",
    [("", "draft", "job"), ("msg", "  ", "job"), ("msg", "draft", "")],
)
def test_chat_requires_all_fields(faiss_store, message, draft, job):
    with pytest.raises(InputValidationError):
        asyncio.run(_service(faiss_store).chat(message, draft, job))


@pytest.mark.integration
def test_store_text(faiss_store, down_store):
    assert asyncio.run(_service(faiss_store).store_text("Python developer", {"source": "manual"})) is True
    assert asyncio.run(_service(down_store).store_text("Python developer")) is False
    with pytest.raises(InputValidationError):
        asyncio.run(_service(faiss_store).store_text(" "))


@pytest.mark.integration
def test_health_reports_store_and_backends(faiss_store):
    service = _service(faiss_store, FakeCompletionBackend(name="openai", healthy=False))

    async def run():
        await service.startup()
        try:
            return await service.health()
        finally:
            await service.shutdown()

    health = asyncio.run(run())

    assert health == {
        "ok": True,
        "vector_store": {"backend": "faiss", "available": True},
        "backends": {"openai": False},
    }


@pytest.mark.integration
def test_analysis_completes_when_every_write_fails(embedder):
    store = VectorStore(BrokenBackend(), embedder, store_timeout=1.0, query_timeout=1.0, heartbeat_timeout=0.5)
    backend = FakeCompletionBackend([CANONICAL_REPLY])

    result = asyncio.run(_service(store, backend).analyze(RESUME, JOB))

    assert result.origin == "canonical"
    assert "=== RELEVANT CONTEXT" not in backend.prompts[0]


@pytest.mark.integration
def test_out_of_range_integer_score_is_clamped(faiss_store):
    raw = '{"score": ' + "9" * 400 + ', "suggested_edits": []}'
    backend = FakeCompletionBackend([raw])

    result = asyncio.run(_service(faiss_store, backend).analyze(RESUME, JOB))

    assert result.origin == "canonical"
    assert result.score == 100
    assert len(backend.prompts) == 1
