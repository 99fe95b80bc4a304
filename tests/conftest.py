"""Global test fixtures and utilities for breed-load tests"""
import random

import pytest

from breed_load.metrics import RunMetrics
from breed_load.models.outcome import ProbeResponse
from breed_load.models.run_config import RunConfiguration
from breed_load.policy import ChaosInjection, PassThrough

BREEDS_BODY = '{"message":["husky","pug"],"status":"success"}'


class FakeProbeClient:
    """ProbeClient returning canned responses in order (the last one repeats)"""

    def __init__(self, *responses: ProbeResponse):
        self.responses = list(responses) or [ProbeResponse(200, 12.5, BREEDS_BODY)]
        self.calls: list[tuple[str, dict]] = []
        self.closed = False

    def get(self, url, headers):
        self.calls.append((url, headers))
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        return self.responses[index]

    def close(self):
        self.closed = True


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def pass_through_config():
    """Pass-through run configuration with a single short stage"""
    return RunConfiguration(
        name="test_pass_through",
        thresholds={"error_rate": ["rate<0.05"]},
        stages=[{"duration": "10s", "target": 5}],
        verdict_policy=PassThrough(),
    )


@pytest.fixture
def chaos_config():
    """Chaos-injection run configuration with the default 5% rate"""
    return RunConfiguration(
        name="test_chaos",
        thresholds={"http_req_failed": ["rate<0.05"]},
        stages=[{"duration": "10s", "target": 5}],
        verdict_policy=ChaosInjection(rate=0.05),
    )


# ============================================================================
# Worker Collaborators
# ============================================================================

@pytest.fixture
def rng():
    """Seeded random source"""
    return random.Random(1234)


@pytest.fixture
def metrics():
    """Fresh in-memory run metrics"""
    return RunMetrics()


@pytest.fixture
def sleeps():
    """Records pacing pauses instead of sleeping"""
    return []


@pytest.fixture
def no_sleep(sleeps):
    """Sleep replacement appending to `sleeps`"""
    return sleeps.append


@pytest.fixture
def make_client():
    """Factory for FakeProbeClient"""
    return FakeProbeClient
