"""Pytest fixtures for io soak testing."""
import asyncio
import logging
from pathlib import Path

import pytest

from iosoak import FioError, SoakConfig

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# Pytest Marker Registration
# =============================================================================

def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "runner: Segmented fio runner tests")
    config.addinivalue_line("markers", "fio: fio executor tests")
    config.addinivalue_line("markers", "config: Configuration and duty cycle tests")
    config.addinivalue_line("markers", "soak: Soak coordinator tests")


class FakeFioExecutor:
    """
    Records fio runs instead of exec'ing into pods.
    
    fail_on maps pod -> 1-based run number that raises FioError.
    hang lists pods whose fio never returns.
    """
    
    def __init__(self, fail_on: dict[str, int] | None = None, hang: set[str] | None = None):
        self.fail_on = fail_on or {}
        self.hang = hang or set()
        self.calls: list[tuple] = []
    
    def runtimes(self, pod: str) -> list[int]:
        return [c[1] for c in self.calls if c[0] == pod]
    
    async def run_fio(self, pod: str, seconds: int, filename: str, *args: str) -> bytes:
        self.calls.append((pod, seconds, filename, *args))
        if pod in self.hang:
            await asyncio.Event().wait()
        await asyncio.sleep(0)
        
        run = len(self.runtimes(pod))
        if self.fail_on.get(pod) == run:
            raise FioError(pod, 1, f"{pod} run {run} failed\n".encode())
        return f"{pod} run {run} ok\n".encode()


@pytest.fixture
def soak_config(tmp_path: Path) -> SoakConfig:
    return SoakConfig(artifact_dir=tmp_path)


@pytest.fixture
def fake_executor():
    def _make(**kwargs) -> FakeFioExecutor:
        return FakeFioExecutor(**kwargs)
    return _make


@pytest.fixture
def channels():
    """A fresh (done, errors) future pair on the running loop."""
    def _channels() -> tuple[asyncio.Future, asyncio.Future]:
        loop = asyncio.get_running_loop()
        return loop.create_future(), loop.create_future()
    return _channels
