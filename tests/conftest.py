"""Pytest configuration and fixtures"""

from typing import Callable, Dict, List, Optional
import fnmatch
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from learning_assistant.main import app
from learning_assistant.database.base import Base
from learning_assistant.database.session import get_db
from learning_assistant.models import Course, CourseEnrollment, Document, DocumentChunk, DocumentStatus
from learning_assistant.rag.backoff import RetryPolicy
from learning_assistant.rag.config import RAGConfig
from learning_assistant.rag.factory import get_answer_composer, get_pipeline, get_registry, get_retriever
from learning_assistant.rag.chain import AnswerComposer
from learning_assistant.rag.orchestrator import ProviderOrchestrator
from learning_assistant.rag.pipeline import EmbeddingPipeline
from learning_assistant.rag.providers.base import (
    BaseProvider,
    Capability,
    ChatResult,
    EmbeddingResult,
)
from learning_assistant.rag.providers.registry import ProviderRegistry
from learning_assistant.rag.retriever import Retriever
from learning_assistant.security.rate_limiter import rate_limiter
from learning_assistant.services.task_runner import get_task_runner

# Test database URL
TEST_DATABASE_URL = "sqlite:///./test.db"

# Create test engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEACHER_ID = 1
STUDENT_ID = 2
OUTSIDER_ID = 3


class FakeProvider(BaseProvider):
    """Scripted provider recording every call"""

    def __init__(
        self,
        name: str,
        capabilities=(Capability.CHAT, Capability.EMBEDDING),
        chat_text: str = "Generated answer",
        chat_error: Optional[Exception] = None,
        embed_error: Optional[Exception] = None,
        vectors: Optional[Dict[str, List[float]]] = None,
        default_vector: Optional[List[float]] = None
    ):
        self.name = name
        self.capabilities = frozenset(capabilities)
        self.chat_text = chat_text
        self.chat_error = chat_error
        self.embed_error = embed_error
        self.vectors = vectors or {}
        self.default_vector = default_vector or [1.0, 0.0, 0.0]
        self.chat_calls = []
        self.embed_calls = []

    async def chat(self, messages, system_instruction, preferences):
        self.chat_calls.append({
            "messages": messages,
            "system_instruction": system_instruction,
            "preferences": preferences
        })
        if self.chat_error is not None:
            raise self.chat_error
        return ChatResult(
            text=self.chat_text,
            token_estimate=10,
            model_name=f"{self.name}-chat",
            provider=self.name
        )

    async def embed(self, text):
        self.embed_calls.append(text)
        if self.embed_error is not None:
            raise self.embed_error
        return EmbeddingResult(
            vector=self.vectors.get(text, self.default_vector),
            token_estimate=len(text) // 4,
            model_name=f"{self.name}-embedding",
            provider=self.name
        )


class StatusError(Exception):
    """Exception carrying an HTTP status like the SDK errors do"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class FakeRedis:
    """In-memory stand-in for the sorted-set commands the rate limiter uses"""

    def __init__(self):
        self.sets: Dict[str, Dict[str, float]] = {}
        self.ttls: Dict[str, int] = {}

    def zremrangebyscore(self, key, min_score, max_score):
        low = float(min_score)
        high = float(max_score)
        members = self.sets.get(key, {})
        stale = [m for m, score in members.items() if low <= score <= high]
        for member in stale:
            del members[member]
        if key in self.sets and not members:
            del self.sets[key]
            self.ttls.pop(key, None)
        return len(stale)

    def zcard(self, key):
        return len(self.sets.get(key, {}))

    def zadd(self, key, mapping):
        self.sets.setdefault(key, {}).update(mapping)
        return len(mapping)

    def expire(self, key, seconds):
        self.ttls[key] = seconds
        return key in self.sets

    def zrange(self, key, start, end, withscores=False):
        ordered = sorted(self.sets.get(key, {}).items(), key=lambda item: item[1])
        selected = ordered[start:end + 1] if end >= 0 else ordered[start:]
        return selected if withscores else [member for member, _ in selected]

    def scan_iter(self, match=None):
        return iter([key for key in list(self.sets) if fnmatch.fnmatch(key, match or "*")])


class BrokenRedis:
    """Redis client whose every command fails"""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise ConnectionError("redis down")
        return _fail


class RecordingTaskRunner:
    """Task runner that records submissions instead of running them"""

    def __init__(self):
        self.submitted = []

    def submit(self, func, *args, name=None):
        self.submitted.append((func, args))


FAST_RETRY = RetryPolicy(
    max_attempts=3,
    base_delay=0,
    max_delay=0,
    multiplier=2,
    jitter=0,
    timeout=5,
    retry_rate_limited=True
)

TEST_RAG_CONFIG = RAGConfig(batch_pause_seconds=0, enable_cache=False)


def build_orchestrator(*providers: BaseProvider, default: Optional[str] = None) -> ProviderOrchestrator:
    registry = ProviderRegistry.from_providers(list(providers), default_provider=default)
    return ProviderOrchestrator(registry, FAST_RETRY)


@pytest.fixture(autouse=True)
def no_tiktoken(monkeypatch):
    """Use the character estimate instead of loading tiktoken encodings"""
    monkeypatch.setattr("learning_assistant.rag.tokens._get_encoding", lambda: None)


@pytest.fixture(autouse=True)
def reset_rate_limiter(monkeypatch):
    monkeypatch.setattr(rate_limiter, "redis", FakeRedis())


@pytest.fixture
def fake_provider() -> Callable[..., FakeProvider]:
    """Factory for scripted providers"""
    return FakeProvider


@pytest.fixture
def status_error() -> Callable[..., StatusError]:
    return StatusError


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def broken_redis() -> BrokenRedis:
    return BrokenRedis()


@pytest.fixture
def make_orchestrator() -> Callable[..., ProviderOrchestrator]:
    return build_orchestrator


@pytest.fixture
def rag_settings() -> RAGConfig:
    return TEST_RAG_CONFIG


@pytest.fixture(scope="function")
def db():
    """Database session fixture"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def course(db) -> Course:
    """Active course taught by TEACHER_ID with STUDENT_ID enrolled"""
    course = Course(title="Biology 101", teacher_id=TEACHER_ID)
    db.add(course)
    db.flush()
    db.add(CourseEnrollment(course_id=course.id, user_id=STUDENT_ID))
    db.commit()
    db.refresh(course)
    return course


@pytest.fixture
def add_document(db) -> Callable[..., Document]:
    """Insert a document with optional pre-built chunks"""
    def _add(
        course_id: int,
        title: str = "Cells",
        content: str = "Cells are the basic unit of life.",
        status: DocumentStatus = DocumentStatus.PROCESSED,
        chunks: Optional[List[tuple]] = None,
        is_active: bool = True,
        topics: Optional[List[str]] = None
    ) -> Document:
        doc = Document(
            course_id=course_id,
            uploaded_by=TEACHER_ID,
            title=title,
            content=content,
            status=status.value,
            is_active=is_active,
            topics=topics or [],
            word_count=len(content.split())
        )
        db.add(doc)
        db.flush()
        for index, (text, vector) in enumerate(chunks or []):
            db.add(DocumentChunk(document_id=doc.id, chunk_index=index, chunk_text=text, vector=vector))
        doc.chunks_count = len(chunks or [])
        db.commit()
        db.refresh(doc)
        return doc
    return _add


@pytest.fixture
def pipeline_for() -> Callable[[ProviderOrchestrator], EmbeddingPipeline]:
    """Pipeline writing through the test database"""
    def _build(orchestrator: ProviderOrchestrator) -> EmbeddingPipeline:
        return EmbeddingPipeline(orchestrator, TEST_RAG_CONFIG, session_factory=TestingSessionLocal)
    return _build


@pytest.fixture
def task_runner() -> RecordingTaskRunner:
    return RecordingTaskRunner()


@pytest.fixture
def providers() -> List[BaseProvider]:
    """Providers wired into the app by the client fixture; tests may replace the list contents"""
    return [FakeProvider("gemini")]


@pytest.fixture(scope="function")
def client(db, providers, task_runner):
    """Test client fixture"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_registry():
        return ProviderRegistry.from_providers(providers, default_provider="gemini")

    def override_orchestrator():
        return ProviderOrchestrator(override_registry(), FAST_RETRY)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = override_registry
    app.dependency_overrides[get_retriever] = lambda: Retriever(override_orchestrator(), TEST_RAG_CONFIG)
    app.dependency_overrides[get_answer_composer] = lambda: AnswerComposer(override_orchestrator(), TEST_RAG_CONFIG)
    app.dependency_overrides[get_pipeline] = lambda: EmbeddingPipeline(
        override_orchestrator(), TEST_RAG_CONFIG, session_factory=TestingSessionLocal
    )
    app.dependency_overrides[get_task_runner] = lambda: task_runner

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
