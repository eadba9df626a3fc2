import time
from types import SimpleNamespace

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings
from app.core.deps import get_candidate_generator
from app.db import models  # noqa: F401  (enregistre les tables)
from app.db.database import Base, get_db
from app.main import create_app
from app.services.ai_generator import CandidateGenerator
from app.services.flashcards_service import FlashcardQueryService
from app.services.user_identity import UserIdentityResolver

TEST_SECRET = "test-secret"
TEST_AUDIENCE = "authenticated"

AI_REPLY = '```json\n{"front": "What is photosynthesis?", "back": "Light energy converted into chemical energy."}\n```'


# =========================================================
# Fake AI client (même forme que openai.OpenAI)
# =========================================================
class FakeCompletions:
    def __init__(self, content=AI_REPLY, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            model="fake/model",
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
        )


class FakeAIClient:
    def __init__(self, content=AI_REPLY, error=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, error))


def make_token(sub: str, secret: str = TEST_SECRET, expires_in: int = 3600) -> str:
    return jwt.encode(
        {"sub": sub, "aud": TEST_AUDIENCE, "exp": int(time.time()) + expires_in},
        secret,
        algorithm="HS256",
    )


# =========================================================
# Fixtures
# =========================================================
@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """
    Force quelques variables d'env pour les tests et vide le cache des settings.
    """
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("APP_NAME", "Flashcards Study API (tests)")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost")
    monkeypatch.setenv("AUTH_JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("AUTH_JWT_AUDIENCE", TEST_AUDIENCE)
    monkeypatch.setenv("AI_API_KEY", "")
    monkeypatch.setenv("CANDIDATE_TTL_MINUTES", "30")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def resolver(db_session):
    return UserIdentityResolver(db_session)


@pytest.fixture
def service(db_session, resolver):
    return FlashcardQueryService(db_session, resolver)


@pytest.fixture
def fake_ai():
    return FakeAIClient()


@pytest.fixture
def app(session_factory, fake_ai):
    app = create_app(init_database=False)

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_candidate_generator] = lambda: CandidateGenerator(client=fake_ai)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def test_client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers():
    def _headers(sub: str = "auth-user-123") -> dict:
        return {"Authorization": f"Bearer {make_token(sub)}"}

    return _headers
