"""Shared test fixtures for Shopping Sync."""

import json
from datetime import datetime, timedelta

import pytest

from shopping_sync.ai_gateway import AIGateway
from shopping_sync.models import AppState, Identity
from shopping_sync.remote import InMemoryDatastore
from shopping_sync.sync_engine import SyncEngine


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeGateway(AIGateway):
    """AI gateway answering from a script of responses.

    Each scripted entry is either a raw text answer, a JSON-serializable
    object, or an exception to raise.
    """

    default_models = ("primary-model", "fallback-model")

    def __init__(self, *responses, **kwargs):
        kwargs.setdefault("api_key", "test-key")
        kwargs.setdefault("sleep", self._record_sleep)
        super().__init__(**kwargs)
        self.responses = list(responses)
        self.prompts: list[str] = []
        self.models_used: list[str] = []
        self.sleeps: list[float] = []

    def _record_sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def _generate(self, prompt: str, model: str) -> str:
        self.prompts.append(prompt)
        self.models_used.append(model)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            return response
        return json.dumps(response)


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def missing_config(tmp_path):
    """Path to a config file that does not exist, so defaults apply."""
    return tmp_path / "no-config.toml"


@pytest.fixture
def clock():
    """Clock fixed at midday so day boundaries are far away."""
    return FakeClock(datetime(2026, 3, 14, 12, 0, 0))


@pytest.fixture
def state():
    """Fresh application state with the default categories."""
    return AppState()


@pytest.fixture
def datastore():
    """Shared in-memory family datastore."""
    return InMemoryDatastore()


@pytest.fixture
def engine(state, clock):
    """Sync engine without a datastore (local only)."""
    return SyncEngine(state=state, clock=clock)


@pytest.fixture
def connected_engine(datastore, clock):
    """Sync engine signed in as user 1 with its own family."""
    engine = SyncEngine(datastore=datastore, clock=clock)
    assert engine.connect(Identity(id=1, first_name="Ana", username="ana"))
    return engine


@pytest.fixture
def member_engine(datastore, clock, connected_engine):
    """Second sync engine, user 2, joined to user 1's family."""
    engine = SyncEngine(datastore=datastore, clock=clock)
    invite_code = connected_engine.family.invite_code
    assert engine.connect(Identity(id=2, first_name="Ben", username="ben"), invite_code)
    return engine


@pytest.fixture
def ai_engine(clock):
    """Factory for a local engine with AI enabled and a scripted gateway."""

    def build(*responses, **kwargs) -> SyncEngine:
        state = AppState()
        state.preferences.ai_enabled = True
        return SyncEngine(state=state, gateway=FakeGateway(*responses, **kwargs), clock=clock)

    return build
