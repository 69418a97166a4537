import os
import sys
import asyncio
import inspect

import pytest

# Ensure project root is on sys.path so `import app` works in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app.config import Settings  # noqa: E402
from app.obs.metrics import registry  # noqa: E402
from tests.helpers import FakeAmadeus  # noqa: E402


def pytest_pyfunc_call(pyfuncitem):
    """Allow running async tests without pytest-asyncio.

    If the test function is a coroutine, run it in a fresh event loop.
    """
    testfunction = pyfuncitem.obj
    if inspect.iscoroutinefunction(testfunction):
        funcargs = pyfuncitem.funcargs
        sig = inspect.signature(testfunction)
        allowed = {name: funcargs[name] for name in sig.parameters.keys() if name in funcargs}
        asyncio.run(testfunction(**allowed))
        return True
    return None


@pytest.fixture
def fake_amadeus() -> FakeAmadeus:
    return FakeAmadeus()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        AMADEUS_CLIENT_ID="client-id",
        AMADEUS_CLIENT_SECRET="client-secret",
        AMADEUS_ENV="test",
        FALLBACK_HUBS="CDG,ATH,FRA",
        HTTP_TIMEOUT_MS=2000,
        HTTP_MAX_RETRIES=2,
        BEARER_KEY="",
    )


@pytest.fixture(autouse=True)
def reset_metrics():
    registry.reset()
    yield
    registry.reset()
