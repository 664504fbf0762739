"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. The
upstream services (speech-to-text, title and memoir generation) and the
delayed-job runner are replaced by in-process fakes; the fake runner has
a manual clock so quiet periods are stepped through instead of slept.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_phantom_pen.db")

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from phantom_pen.db.base import Base, get_db
from phantom_pen.main import app
from phantom_pen.models.user import User
from phantom_pen.schemas.narrative import NarrativeDraft
from phantom_pen.schemas.user import StyleProfile
from phantom_pen.services.jobs import new_handle
from phantom_pen.services.scheduler import SynthesisScheduler, get_scheduler
from phantom_pen.services.storage import BlobStorage, get_blob_storage
from phantom_pen.services.transcription import (
    TranscriptionResult,
    get_title_generator,
    get_transcriber,
)
from phantom_pen.core.errors import UpstreamTranscriptionError

SQLITE_URL = "sqlite:///./test_phantom_pen.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeJobRunner:
    """Delayed jobs against a manual clock. `advance()` fires whatever came due."""

    def __init__(self):
        self.start = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.elapsed = 0.0
        self.jobs: dict[str, tuple[float, Callable[..., Any], tuple]] = {}
        self.cancelled: list[str] = []
        self.fired: list[str] = []
        self.results: list[Any] = []
        self.fail_submit = False

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def submit(self, delay_seconds, fn, *args, handle=None):
        if self.fail_submit:
            raise RuntimeError("runner unavailable")
        handle = handle or new_handle()
        self.jobs[handle] = (self.elapsed + delay_seconds, fn, args)
        return handle

    def cancel(self, handle):
        if self.jobs.pop(handle, None) is None:
            return False
        self.cancelled.append(handle)
        return True

    def shutdown(self):
        self.jobs.clear()

    def pending(self) -> int:
        return len(self.jobs)

    def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while True:
            due = sorted(
                (run_at, handle) for handle, (run_at, _, _) in self.jobs.items() if run_at <= target
            )
            if not due:
                break
            run_at, handle = due[0]
            _, fn, args = self.jobs.pop(handle)
            self.elapsed = run_at
            self.fired.append(handle)
            self.results.append(fn(*args))
        self.elapsed = target


class FakeNarrativeGenerator:
    """Turns each transcript into one entry; records every call."""

    def __init__(self):
        self.calls: list[tuple[str, StyleProfile]] = []
        self.next_drafts: list[NarrativeDraft] | None = None
        self.error: Exception | None = None
        self.on_generate: Callable[[], None] | None = None

    def generate(self, transcript, style):
        self.calls.append((transcript, style))
        if self.on_generate is not None:
            self.on_generate()
        if self.error is not None:
            raise self.error
        if self.next_drafts is not None:
            return self.next_drafts
        first_line = transcript.strip().splitlines()[0]
        return [NarrativeDraft(date="", title=first_line[:40], content=transcript.strip())]


class FakeTranscriber:
    def __init__(self, text: str = "Hello from the recorder."):
        self.text = text
        self.fail = False
        self.calls: list[bytes] = []

    def transcribe(self, audio, filename="audio.webm"):
        self.calls.append(audio)
        if self.fail:
            raise UpstreamTranscriptionError()
        return TranscriptionResult(text=self.text)


class FakeTitleGenerator:
    def __init__(self, title: str = "Morning Walk"):
        self.title = title
        self.calls: list[str] = []

    def generate(self, text):
        self.calls.append(text)
        return self.title


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def session_factory():
    return TestingSessionLocal


@pytest.fixture()
def owner_id():
    """Fresh owner per test so rows from other tests never interfere."""
    return f"user_{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def user(db, owner_id):
    u = User(external_id=owner_id, email=f"{owner_id}@example.com", first_name="Ada")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def runner():
    return FakeJobRunner()


@pytest.fixture()
def generator():
    return FakeNarrativeGenerator()


@pytest.fixture()
def scheduler(runner, generator):
    return SynthesisScheduler(
        runner=runner,
        session_factory=TestingSessionLocal,
        generator=generator,
        delay_seconds=7.0,
        clock=runner.now,
    )


@pytest.fixture()
def transcriber():
    return FakeTranscriber()


@pytest.fixture()
def titler():
    return FakeTitleGenerator()


@pytest.fixture()
def storage(tmp_path):
    return BlobStorage(tmp_path / "uploads")


@pytest.fixture()
def client(db, scheduler, storage, transcriber, titler):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_blob_storage] = lambda: storage
    app.dependency_overrides[get_transcriber] = lambda: transcriber
    app.dependency_overrides[get_title_generator] = lambda: titler
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth(owner_id):
    return {"X-User-Id": owner_id}
