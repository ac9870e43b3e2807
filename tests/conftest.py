# tests/conftest.py
"""Shared pytest fixtures for all test modules.

Provides common fixtures for:
- Temporary database paths and repositories
- A fake language-model client returning canned output
- A controllable clock for TTL behaviour
- A wired FastAPI test environment
"""

import os
import sys
import tempfile
from collections.abc import Generator
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.auth import ResolvedIdentity  # noqa: E402
from src.core.classifier import IntentClassifier  # noqa: E402
from src.core.policy import PolicyGate  # noqa: E402
from src.core.relay import RelayEngine  # noqa: E402
from src.core.store import RelayRepository  # noqa: E402


class FakeLLM:
    """LLM client double returning canned text and counting calls."""

    def __init__(self, responses: list[str] | None = None, error: Exception | None = None):
        self.responses = list(responses or [])
        self.error = error
        self.prompts: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def classify(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        if self.responses:
            return self.responses[0]
        return '{"isCommand": false}'


class FakeClock:
    """Monotonic clock stand-in advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_db() -> Generator[str, None, None]:
    """Create a temporary database file path.

    Yields:
        Path to temporary SQLite database file.
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    yield db_path

    # Cleanup, including WAL sidecar files
    for path in (db_path, f"{db_path}-wal", f"{db_path}-shm"):
        if os.path.exists(path):
            os.unlink(path)


@pytest.fixture
def repo(temp_db: str) -> RelayRepository:
    return RelayRepository(db_path=temp_db)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def identity() -> ResolvedIdentity:
    return ResolvedIdentity(tenant_id="tenant-1", source="legacy", key_id="test-key")


@pytest.fixture
def api_env(
    repo: RelayRepository, fake_llm: FakeLLM, monkeypatch: pytest.MonkeyPatch
) -> Generator[SimpleNamespace, None, None]:
    """Wire the FastAPI app to a temporary repository and the fake LLM.

    The legacy key ``legacy-key`` (secret ``legacy-secret``) resolves to
    tenant ``tenant-legacy``.
    """
    import src.core.store.repository as repository_module
    import src.interfaces.api.main as main
    import src.interfaces.api.security as security
    from src.config import settings
    from src.core.relay import PendingSyncRegistry, UsageReporter

    monkeypatch.setattr(settings, "relay_legacy_keys", "legacy-key:legacy-secret:tenant-legacy")
    monkeypatch.setattr(settings, "relay_hmac_secret", "")
    monkeypatch.setattr(settings, "signature_mode", "log-only")
    monkeypatch.setattr(repository_module, "_repository", repo)
    security.reset_resolver()
    security.limiter.reset()

    engine = RelayEngine(
        classifier=IntentClassifier(fake_llm),
        gate=PolicyGate(repo),
        catalog=repo,
        personas=repo,
    )
    registry = PendingSyncRegistry()
    reporter = UsageReporter()

    main.app.dependency_overrides[main.get_engine] = lambda: engine
    main.app.dependency_overrides[main.get_sync_registry] = lambda: registry
    main.app.dependency_overrides[main.get_usage_reporter] = lambda: reporter

    yield SimpleNamespace(
        app=main.app,
        repo=repo,
        llm=fake_llm,
        engine=engine,
        registry=registry,
        reporter=reporter,
        settings=settings,
    )

    main.app.dependency_overrides.clear()
    security.reset_resolver()
