# tests/conftest.py
"""Shared fixtures: a per-test SQLite database, fake collaborators and an ASGI client."""
import asyncio
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ALLOWED_HOSTS", '["*"]')

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from counselor_api.core import dependencies  # noqa: E402
from counselor_api.core.config import settings  # noqa: E402
from counselor_api.core.locks import InProcessSessionLocks  # noqa: E402
from counselor_api.data.database import Base, get_db  # noqa: E402
from counselor_api.main import app  # noqa: E402
from counselor_api.models.database_models.coverage_grant import CounselorCoverageGrant  # noqa: E402
from counselor_api.models.database_models.counselor_assignment import CounselorAssignment  # noqa: E402
from counselor_api.models.database_models.session_share import SessionShare, SessionShareAccess  # noqa: E402,F401
from counselor_api.models.database_models.user import User  # noqa: E402
from counselor_api.models.database_models.user_subscription import UserSubscription  # noqa: E402
from counselor_api.services.auth_services import create_access_token  # noqa: E402
from counselor_api.services.counsel_services import CounselOrchestrator  # noqa: E402
from counselor_api.services.entitlement_services import EntitlementService  # noqa: E402
from counselor_api.services.llm.llm_services import CounselGenerator, GenerationResult  # noqa: E402
from counselor_api.services.notification_services import ShareNotifier  # noqa: E402
from counselor_api.services.safety_services import SafetyGate, SafetyKeywordConfig  # noqa: E402
from counselor_api.services.scripture_services import ScriptureCorpus, ScripturePassage  # noqa: E402

DEFAULT_GUIDANCE = "Cast your cares on Him. As 1 Peter 5:7 reminds us, He cares for you."


class FakeGenerator(CounselGenerator):
    """Replays queued replies (or a default guidance reply) and records every call."""

    def __init__(self):
        self.replies = []
        self.error = None
        self.delay = 0.0
        self.calls = []

    async def generate(self, message, passages, history, clarification_count):
        self.calls.append({
            "message": message,
            "passages": list(passages),
            "history": list(history),
            "clarification_count": clarification_count,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return GenerationResult(content=DEFAULT_GUIDANCE, requires_clarification=False)


class RecordingNotifier(ShareNotifier):
    def __init__(self):
        self.sent = []
        self.verifications = []

    async def notify_share_created(self, recipient_email, sharer_name, session_title, share_url, expires_at=None):
        self.sent.append({
            "recipient_email": recipient_email,
            "sharer_name": sharer_name,
            "session_title": session_title,
            "share_url": share_url,
            "expires_at": expires_at,
        })

    async def notify_email_verification(self, recipient_email, name, verification_url):
        self.verifications.append({
            "recipient_email": recipient_email,
            "name": name,
            "verification_url": verification_url,
        })


class StaticEntitlements(EntitlementService):
    def __init__(self, entitled=True):
        self.entitled = entitled

    async def is_entitled_to_share(self, user_id):
        return self.entitled


@pytest.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'counsel.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="session")
def safety_gate():
    return SafetyGate(SafetyKeywordConfig.load(settings.SAFETY_KEYWORDS_PATH))


@pytest.fixture
def corpus():
    return ScriptureCorpus([
        ScripturePassage("Philippians", 4, 6, "Be careful for nothing; but in every thing by prayer and "
                                              "supplication with thanksgiving let your requests be made known unto God."),
        ScripturePassage("Matthew", 6, 34, "Take therefore no thought for the morrow: for the morrow shall take "
                                           "thought for the things of itself."),
        ScripturePassage("1 Peter", 5, 7, "Casting all your care upon him; for he careth for you."),
        ScripturePassage("Proverbs", 16, 3, "Commit thy works unto the LORD, and thy thoughts shall be established."),
        ScripturePassage("Colossians", 3, 23, "And whatsoever ye do, do it heartily, as to the Lord, and not unto men;"),
    ])


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def orchestrator(safety_gate, corpus, generator):
    return CounselOrchestrator(
        safety_gate=safety_gate,
        corpus=corpus,
        generator=generator,
        session_locks=InProcessSessionLocks(),
        top_k=3,
        generation_timeout=1.0,
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def entitlements():
    return StaticEntitlements(entitled=True)


@pytest.fixture
def make_user(session_factory):
    async def _make_user(username, email=None, is_admin=False, email_verified=True, subscription_status=None,
                         first_name=None, last_name=None):
        async with session_factory() as session:
            user = User(
                username=username,
                email=email or f"{username}@example.com",
                hashed_password=b"unused",
                first_name=first_name,
                last_name=last_name,
                is_admin=is_admin,
                email_verified=email_verified,
            )
            session.add(user)
            await session.commit()
            if subscription_status is not None:
                session.add(UserSubscription(user_id=user.id, status=subscription_status))
                await session.commit()
            return user

    return _make_user


@pytest.fixture
def make_relationships(session_factory):
    """Seeds assignment and coverage rows: make_relationships(assignments=[...], grants=[...])."""
    async def _make(assignments=(), grants=()):
        async with session_factory() as session:
            for a in assignments:
                session.add(CounselorAssignment(**a))
            for g in grants:
                session.add(CounselorCoverageGrant(**g))
            await session.commit()

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Cookie": f"access_token={create_access_token(data={'sub': user.username})}"}

    return _headers


@pytest.fixture
async def client(session_factory, orchestrator, notifier, entitlements):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def no_rate_limit():
        return None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_counsel_orchestrator] = lambda: orchestrator
    app.dependency_overrides[dependencies.get_notifier] = lambda: notifier
    app.dependency_overrides[dependencies.get_entitlements] = lambda: entitlements
    app.dependency_overrides[dependencies.chat_rate_limiter] = no_rate_limit
    app.dependency_overrides[dependencies.share_rate_limiter] = no_rate_limit
    app.dependency_overrides[dependencies.register_rate_limiter] = no_rate_limit

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()
