# tests/test_counsel_services.py
"""Tests for the counselling turn: crisis short-circuit, the happy path and upstream failures."""
import asyncio

import pytest
from sqlalchemy import func, select

from counselor_api.core.errors import ForbiddenError, UpstreamGenerationError
from counselor_api.core.locks import InProcessSessionLocks
from counselor_api.models.counsel_models import CounselRequest
from counselor_api.models.database_models.counsel_message import CounselMessage
from counselor_api.models.database_models.counsel_session import CounselSession
from counselor_api.services.counsel_services import CounselOrchestrator
from counselor_api.services.database.counsel_database_services import get_or_create_session, get_session
from counselor_api.services.llm.llm_services import GenerationError, GenerationResult


async def count_rows(session_factory, model):
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar()


class TestCrisisTurn:
    async def test_crisis_creates_nothing(self, orchestrator, db, session_factory, generator):
        response = await orchestrator.process_message(db, CounselRequest(message="I want to end my life"))

        assert response.is_crisis_detected is True
        assert response.session_id is None
        assert response.message.role == "system"
        assert response.crisis_resources
        assert generator.calls == []
        assert await count_rows(session_factory, CounselSession) == 0
        assert await count_rows(session_factory, CounselMessage) == 0

    async def test_crisis_echoes_session_id_without_storing(self, orchestrator, db, session_factory):
        session = await get_or_create_session(db, None, "Hello")
        response = await orchestrator.process_message(
            db, CounselRequest(message="I've been thinking about SUICIDE", session_id=session.id)
        )
        assert response.is_crisis_detected is True
        assert response.session_id == session.id
        assert await count_rows(session_factory, CounselMessage) == 0


class TestCounselTurn:
    async def test_end_to_end_first_message(self, orchestrator, db, session_factory, generator):
        response = await orchestrator.process_message(db, CounselRequest(message="I feel anxious about work"))

        assert response.is_crisis_detected is False
        assert response.requires_clarification is False
        assert response.session_id

        async with session_factory() as other:
            session = await get_session(other, response.session_id)
        assert session.title == "I feel anxious about work"
        assert session.status == "active"
        assert [m.role for m in session.messages] == ["user", "assistant"]
        assert session.messages[0].content == "I feel anxious about work"

        passages = generator.calls[0]["passages"]
        assert 0 < len(passages) <= 3
        stored = session.messages[1].scripture_references
        retrieved_keys = [(p.book, p.chapter, p.verse) for p in passages]
        assert [(r["book"], r["chapter"], r["verseStart"]) for r in stored[:len(passages)]] == retrieved_keys

    async def test_reply_citations_are_appended(self, orchestrator, db, generator):
        generator.replies.append(GenerationResult(content="Pray, as Philippians 4:6 teaches.",
                                                  requires_clarification=False))
        response = await orchestrator.process_message(db, CounselRequest(message="quantum chromodynamics"))
        books = [r.book for r in response.message.scripture_references]
        assert books[:3] == ["Philippians", "Matthew", "1 Peter"]
        assert books.count("Philippians") == 1

    async def test_clarification_count_and_history_reach_generator(self, orchestrator, db, generator):
        generator.replies.append(GenerationResult(content="What is weighing on you most?",
                                                  requires_clarification=True))
        first = await orchestrator.process_message(db, CounselRequest(message="I feel lost at work"))
        assert first.requires_clarification is True

        await orchestrator.process_message(
            db, CounselRequest(message="My manager keeps criticising me", session_id=first.session_id)
        )
        assert [c["clarification_count"] for c in generator.calls] == [0, 1]
        assert generator.calls[1]["history"] == [
            ("user", "I feel lost at work"),
            ("assistant", "What is weighing on you most?"),
        ]

    async def test_grief_turn_carries_resources(self, orchestrator, db):
        response = await orchestrator.process_message(db, CounselRequest(message="My father passed away"))
        assert response.is_crisis_detected is False
        assert response.is_grief_detected is True
        assert response.grief_resources

    async def test_other_users_session_is_forbidden(self, orchestrator, db, make_user):
        owner = await make_user("owner")
        stranger = await make_user("stranger")
        session = await get_or_create_session(db, None, "Hello", owner.id)
        with pytest.raises(ForbiddenError):
            await orchestrator.process_message(
                db, CounselRequest(message="Let me in", session_id=session.id), stranger
            )


class TestUpstreamFailure:
    async def test_generation_error_keeps_user_message(self, orchestrator, db, session_factory, generator):
        generator.error = GenerationError("model unavailable")
        session = await get_or_create_session(db, None, "I feel anxious about work")

        with pytest.raises(UpstreamGenerationError):
            await orchestrator.process_message(
                db, CounselRequest(message="I feel anxious about work", session_id=session.id)
            )

        async with session_factory() as other:
            stored = await get_session(other, session.id)
        assert [m.role for m in stored.messages] == ["user"]

    async def test_timeout_is_an_upstream_failure(self, safety_gate, corpus, generator, db, session_factory):
        generator.delay = 0.5
        orchestrator = CounselOrchestrator(
            safety_gate, corpus, generator, InProcessSessionLocks(), top_k=3, generation_timeout=0.05
        )
        with pytest.raises(UpstreamGenerationError):
            await orchestrator.process_message(db, CounselRequest(message="I feel anxious about work"))
        assert await count_rows(session_factory, CounselMessage) == 1


class TestSerialisation:
    async def test_same_session_turns_see_each_others_messages(self, orchestrator, session_factory, generator):
        async with session_factory() as setup:
            session = await get_or_create_session(setup, None, "Hello")
        generator.delay = 0.05
        generator.replies.append(GenerationResult(content="Can you say more?", requires_clarification=True))

        async def turn(text):
            async with session_factory() as db:
                return await orchestrator.process_message(db, CounselRequest(message=text, session_id=session.id))

        await asyncio.gather(turn("first worry"), turn("second worry"))

        assert sorted(c["clarification_count"] for c in generator.calls) == [0, 1]
        async with session_factory() as other:
            stored = await get_session(other, session.id)
        assert [m.role for m in stored.messages] == ["user", "assistant", "user", "assistant"]
