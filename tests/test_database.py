"""Tests for the data layer (session store + models)."""

from __future__ import annotations

from datetime import timedelta

import pydantic
import pytest

from data.database import MAX_DETAIL_CHARS, MAX_SESSIONS, SessionStore, trim_session
from data.models import AgentRole, DebateSession, RunRequest
from orchestration.debate_manager import DebateManager
from orchestration.verification import VerificationIntegrator, VerificationSettings
from tests.conftest import FIXED_START, FakeCapabilities, FakeVerifier


async def _session(scenario: str = "Fix failing test") -> DebateSession:
    manager = DebateManager(
        capabilities=FakeCapabilities(),
        integrator=VerificationIntegrator(verifier=FakeVerifier(), settings=VerificationSettings()),
        clock=lambda: FIXED_START,
    )
    return await manager.run_debate(RunRequest(scenario=scenario))


def _numbered(session: DebateSession, i: int) -> DebateSession:
    return session.model_copy(
        update={"id": f"session-{i}", "created_at": FIXED_START + timedelta(minutes=i)}
    )


class TestModels:
    @pytest.mark.asyncio
    async def test_session_is_frozen(self):
        session = await _session()
        with pytest.raises(pydantic.ValidationError):
            session.scenario = "changed"  # type: ignore[misc]

    @pytest.mark.asyncio
    async def test_final_plan_helpers(self):
        session = await _session()
        assert session.final_plan.id == session.final_plan_id
        assert session.final_snapshot is session.probabilities[-1]
        assert session.final_snapshot.probability_of("plan-a") > 0
        with pytest.raises(KeyError):
            session.final_snapshot.probability_of("plan-z")

    def test_weights_for_role(self):
        from agents.roster import DEFAULT_WEIGHTS

        assert DEFAULT_WEIGHTS.for_role(AgentRole.SECURITY) == 0.5

    def test_run_request_rejects_unknown_provider(self):
        with pytest.raises(pydantic.ValidationError):
            RunRequest(llm_provider="openai")


class TestTrimSession:
    @pytest.mark.asyncio
    async def test_long_text_is_truncated(self):
        session = await _session()
        long_text = "x" * (MAX_DETAIL_CHARS + 50)
        bloated = session.model_copy(
            update={
                "generation_warnings": [long_text, "short"],
                "evidence_ledger": [
                    e.model_copy(update={"details": long_text}) for e in session.evidence_ledger
                ],
            }
        )
        trimmed = trim_session(bloated)
        assert trimmed.generation_warnings[0] == "x" * MAX_DETAIL_CHARS + "..."
        assert trimmed.generation_warnings[1] == "short"
        assert all(len(e.details) == MAX_DETAIL_CHARS + 3 for e in trimmed.evidence_ledger)
        assert len(bloated.generation_warnings[0]) == MAX_DETAIL_CHARS + 50


class TestSessionStore:
    @pytest.mark.asyncio
    async def test_empty_store(self, store: SessionStore):
        assert await store.latest_session() is None
        assert await store.list_sessions() == []
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_save_and_read_back(self, store: SessionStore):
        session = await _session()
        await store.save_session(session)
        latest = await store.latest_session()
        assert latest == session
        assert await store.get_session(session.id) == session
        assert await store.get_session("missing") is None

    @pytest.mark.asyncio
    async def test_most_recent_first(self, store: SessionStore):
        base = await _session()
        for i in range(3):
            await store.save_session(_numbered(base, i))
        sessions = await store.list_sessions()
        assert [s.id for s in sessions] == ["session-2", "session-1", "session-0"]
        assert [s.id for s in await store.list_sessions(limit=2)] == ["session-2", "session-1"]

    @pytest.mark.asyncio
    async def test_capped_at_max_sessions(self, store: SessionStore):
        base = await _session()
        for i in range(MAX_SESSIONS + 5):
            await store.save_session(_numbered(base, i))
        assert await store.count() == MAX_SESSIONS
        ids = [s.id for s in await store.list_sessions(limit=100)]
        assert ids == [f"session-{i}" for i in range(MAX_SESSIONS + 4, 4, -1)]

    @pytest.mark.asyncio
    async def test_custom_cap(self, tmp_path):
        small = SessionStore(db_path=tmp_path / "small.db", max_sessions=2)
        await small.connect()
        try:
            base = await _session()
            for i in range(4):
                await small.save_session(_numbered(base, i))
            assert await small.count() == 2
        finally:
            await small.close()

    @pytest.mark.asyncio
    async def test_requires_connect(self, tmp_path):
        with pytest.raises(RuntimeError, match="not connected"):
            await SessionStore(db_path=tmp_path / "x.db").count()
