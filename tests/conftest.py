import os

import pytest

# Must be set before anita.config is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["APP_ENV"] = "test"
os.environ["DEV_ALLOW_NO_LLM"] = "1"
os.environ["ADMISSION_SWEEP_DISABLE"] = "1"
os.environ.pop("OPENAI_API_KEY", None)
os.environ["OPENAI_API_KEY_FILE"] = ""
os.environ.setdefault("TZ", "UTC")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from anita.db import Base, get_db, make_engine  # noqa: E402
from anita.deps import get_chat_client, get_description_composer  # noqa: E402
from anita.main import app  # noqa: E402
import anita.orm_models  # noqa: E402,F401
from anita.services.admission_guard import AdmissionGuard  # noqa: E402
from anita.services.description_composer import DescriptionComposer  # noqa: E402
from anita.utils.llm import CompletionError  # noqa: E402


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChatClient:
    """Stands in for LLMClient.chat; records the messages it was sent."""

    def __init__(self, reply: str = "Hello!", error: CompletionError | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[list[dict]] = []

    def chat(self, messages, *, max_tokens=1200, temperature=0.8, timeout=None):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeCompletionClient:
    """TextCompletionClient returning a canned answer or raising."""

    def __init__(self, answer: str = "", error: Exception | None = None):
        self.answer = answer
        self.error = error
        self.prompts: list[str] = []

    def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


_engine = make_engine("sqlite:///:memory:")
TestingSessionLocal = sessionmaker(bind=_engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=_engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def chat_client():
    return FakeChatClient()


@pytest.fixture
def client(db_session, chat_client, clock):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_chat_client] = lambda: chat_client
    app.dependency_overrides[get_description_composer] = lambda: DescriptionComposer()
    app.state.admission_guard = AdmissionGuard(clock=clock)
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
        app.state.admission_guard = None
