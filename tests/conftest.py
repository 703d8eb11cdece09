"""Shared fixtures: in-memory database, stub providers, fake auth, inline analytics."""
import json
from concurrent.futures import Executor, Future
from typing import Any, Dict, List, Optional

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from chatrelay.core import deps
from chatrelay.core.auth import Identity, extract_bearer_token
from chatrelay.database import create_tables
from chatrelay.main import app
from chatrelay.providers.base import ProviderAdapter
from chatrelay.providers.registry import ProviderRegistry
from chatrelay.services.analytics import AnalyticsEmitter
from chatrelay.services.chat_service import ChatService

ALICE = Identity(user_id="user-alice", email="alice@example.com")
BOB = Identity(user_id="user-bob", email="bob@example.com")
TOKENS = {"alice-token": ALICE, "bob-token": BOB}


def make_response(status: int, body: Any = b"") -> requests.Response:
    """Build a real requests.Response with the given status and body."""
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    response = requests.Response()
    response.status_code = status
    response._content = body
    response.encoding = "utf-8"
    return response


class FakeHTTPSession:
    """Stands in for requests.Session; records calls and replays one response."""

    def __init__(self, response: Optional[requests.Response] = None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def _handle(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self._handle("POST", url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self._handle("GET", url, **kwargs)


class StubAdapter(ProviderAdapter):
    """Adapter whose 'vendor' replays a canned status and body."""

    display_name = "Stub"

    def __init__(self, provider_id: str = "openai", status: int = 200, body: str = ""):
        super().__init__("test-key", "stub-model", "https://stub.invalid")
        self.provider_id = provider_id
        self.status = status
        self.body = body or json.dumps({"text": "Hello from the model"})
        self.prompts: List[str] = []

    def _send(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not 200 <= self.status < 300:
            raise self.http_error(self.status, self.body)
        return self.body

    def extract_text(self, data: Dict[str, Any]) -> str:
        if not isinstance(data.get("text"), str):
            raise self.malformed("Unexpected response structure")
        return data["text"]


class FakeAuthResolver:
    def __init__(self, tokens: Optional[Dict[str, Identity]] = None):
        self.tokens = tokens if tokens is not None else TOKENS

    def resolve(self, authorization: Optional[str]) -> Optional[Identity]:
        token = extract_bearer_token(authorization)
        return self.tokens.get(token) if token else None


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class RecordingTracker:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: List[Dict[str, Any]] = []

    def track(self, distinct_id: str, event_name: str, properties: Dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("mixpanel unavailable")
        self.events.append({"distinct_id": distinct_id, "event": event_name, **properties})


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def stub_adapter():
    return StubAdapter("openai")


@pytest.fixture
def registry(stub_adapter):
    return ProviderRegistry([stub_adapter, StubAdapter("gemini")])


@pytest.fixture
def tracker():
    return RecordingTracker()


@pytest.fixture
def analytics(tracker):
    return AnalyticsEmitter(None, executor=InlineExecutor(), tracker=tracker)


@pytest.fixture
def chat_service(registry, analytics):
    return ChatService(registry, analytics)


@pytest.fixture
def client(engine, chat_service):
    def override_get_db():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_auth_resolver] = lambda: FakeAuthResolver()
    app.dependency_overrides[deps.get_chat_service] = lambda: chat_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token: str = "alice-token") -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
