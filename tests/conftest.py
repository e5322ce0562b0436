"""Shared fixtures: temporary SQLite database, fake providers, test client."""

from __future__ import annotations

import json
import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

_TMP_DIR = Path(tempfile.mkdtemp(prefix="talktopost-tests-"))
_DB_PATH = _TMP_DIR / "talktopost.db"

os.environ["DB_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_FILE"] = str(_TMP_DIR / "app.log")
os.environ["PIPELINE_LOG_FILE"] = str(_TMP_DIR / "pipeline.log")
os.environ["TWITTER_CLIENT_ID"] = "client-id"
os.environ["TWITTER_CLIENT_SECRET"] = "client-secret"
os.environ["TWITTER_FRONTEND_URL"] = "http://frontend.test"
os.environ["OPENROUTER_API_KEY"] = "or-key"

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from talktopost.config.settings import settings  # noqa: E402
from talktopost.database import SessionFactory  # noqa: E402
from talktopost.models import Base, User  # noqa: E402
from talktopost.services import errors  # noqa: E402
from talktopost.services.container import build_services  # noqa: E402
from talktopost.services.transcribe import TranscriptionResult  # noqa: E402
from talktopost.utils import create_access_token  # noqa: E402

DEFAULT_DRAFT = json.dumps(
    {
        "mode": "tweet",
        "tweets": [
            {
                "text": "Building an AI product that converts voice to Twitter posts.",
                "char_count": 63,
            }
        ],
    }
)


class FakeStorage:
    """In-memory stand-in for the S3 gateway."""

    recordings_bucket = "audio-recordings"
    attachments_bucket = "attachments"

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.removed: list[tuple[str, str]] = []
        self.fail_remove = False

    async def create_upload_target(self, key, *, bucket=None, content_type=None):
        return f"https://storage.test/{bucket or self.recordings_bucket}/{key}?signature=abc"

    async def download(self, key, *, bucket=None):
        try:
            return self.objects[(bucket or self.recordings_bucket, key)]
        except KeyError:
            raise errors.NotFound(f"Stored object '{key}' not found") from None

    async def upload(self, key, data, *, content_type, bucket=None):
        self.objects[(bucket or self.recordings_bucket, key)] = data
        return key

    async def remove(self, key, *, bucket=None):
        if self.fail_remove:
            return False
        self.removed.append((bucket or self.recordings_bucket, key))
        self.objects.pop((bucket or self.recordings_bucket, key), None)
        return True

    async def ping(self):
        return None

    def put_recording(self, key: str, data: bytes = b"fake-webm-audio") -> None:
        self.objects[(self.recordings_bucket, key)] = data


class FakeTranscriber:
    def __init__(self, text: str = "Building an AI product that converts voice to Twitter posts.") -> None:
        self.text = text
        self.error: Exception | None = None
        self.calls: list[tuple[bytes, str | None]] = []

    async def transcribe(self, audio_bytes, mime_hint=None):
        self.calls.append((audio_bytes, mime_hint))
        if self.error is not None:
            raise self.error
        return TranscriptionResult(
            text=self.text, confidence=0.91, language="en", duration_seconds=4.2
        )

    async def ping(self):
        return None


class FakeOpenRouter:
    """httpx MockTransport handler answering chat completions."""

    def __init__(self, content: str = DEFAULT_DRAFT) -> None:
        self.content = content
        self.status_code = 200
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "boom"}})
        if request.url.path.endswith("/models"):
            return httpx.Response(200, json={"data": []})
        return httpx.Response(
            200, json={"choices": [{"message": {"role": "assistant", "content": self.content}}]}
        )

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests if request.content]


class FakeTwitterApi:
    """httpx MockTransport handler for the Twitter token, profile and tweet endpoints."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.tweet_responses: list[tuple[int, dict]] = []
        self.token_status = 200
        self.token_body = {
            "access_token": "new-access",
            "refresh_token": "new-refresh",
            "expires_in": 7200,
            "token_type": "bearer",
        }
        self.me_status = 200
        self._next_id = 1000

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/2/oauth2/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json=self.token_body)
        if path == "/2/users/me":
            if self.me_status != 200:
                return httpx.Response(self.me_status, json={"title": "Forbidden"})
            return httpx.Response(
                200, json={"data": {"id": "42", "username": "voiceuser", "name": "Voice User"}}
            )
        if path == "/2/tweets":
            if self.tweet_responses:
                status_code, body = self.tweet_responses.pop(0)
                return httpx.Response(status_code, json=body)
            self._next_id += 1
            return httpx.Response(201, json={"data": {"id": str(self._next_id), "text": "ok"}})
        return httpx.Response(200, json={})

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    @property
    def tweet_payloads(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests_to("/2/tweets")]


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def database():
    """Fresh schema per test on the temporary SQLite file."""

    engine = create_engine(f"sqlite:///{_DB_PATH}")
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
async def session():
    async with SessionFactory() as db_session:
        yield db_session


def _insert_user(engine, name: str) -> User:
    with Session(engine, expire_on_commit=False) as db_session:
        user = User(display_name=name)
        db_session.add(user)
        db_session.commit()
        db_session.expunge(user)
        return user


@pytest.fixture
def user(database) -> User:
    return _insert_user(database, "Test User")


@pytest.fixture
def other_user(database) -> User:
    return _insert_user(database, "Other User")


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def fake_transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def fake_llm() -> FakeOpenRouter:
    return FakeOpenRouter()


@pytest.fixture
def fake_twitter() -> FakeTwitterApi:
    return FakeTwitterApi()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def services(fake_storage, fake_transcriber, fake_llm, fake_twitter, sleeper):
    return build_services(
        settings,
        storage=fake_storage,
        transcriber=fake_transcriber,
        llm_transport=httpx.MockTransport(fake_llm.handler),
        twitter_transport=httpx.MockTransport(fake_twitter.handler),
        sleep=sleeper,
    )


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient

    from talktopost.controllers.dependencies import get_services
    from talktopost.main import app

    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()
