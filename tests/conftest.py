"""
Shared fixtures: a mocked Kie.ai client, env helpers and a service wired
to record sleeps instead of waiting.
"""
from unittest.mock import MagicMock

import pytest

from studio_worker import metrics
from studio_worker.jobs.orchestrator import GenerationService
from studio_worker.kie import KieClient, ProviderResponse


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("KIEAI_API_KEY", "test-key")
    monkeypatch.delenv("KIE_API_KEY", raising=False)
    return "test-key"


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.delenv("KIEAI_API_KEY", raising=False)
    monkeypatch.delenv("KIE_API_KEY", raising=False)


@pytest.fixture
def reply():
    """Build a ProviderResponse: reply({"code": 200}, status=200)."""
    def _reply(payload, status=200):
        return ProviderResponse(status, payload)
    return _reply


@pytest.fixture
def kie():
    return MagicMock(spec=KieClient)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def assets():
    store = MagicMock()
    store.rehost.side_effect = lambda asset: asset
    return store


@pytest.fixture
def service(kie, assets, sleeps, api_key):
    return GenerationService(
        client_factory=lambda key: kie,
        assets=assets,
        sleep=sleeps.append,
        poll_interval=2,
    )
