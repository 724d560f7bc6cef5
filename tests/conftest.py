"""Pytest configuration and shared fixtures."""

import asyncio

import pytest

from scopebus.channels import get_channel_registry, reset_channel_registry

DEMO_CONSTRAINTS = {
    "created": {},
    "deleted": {"broadcasted": False},
    "updated": {"broadcasted": True},
}


class RecordingChannel:
    """Channel double that keeps posted messages instead of sending them."""

    def __init__(self, name):
        self.name = name
        self.closed = False
        self.posted = []
        self.handler = None

    def check_post(self):
        pass

    def post(self, message):
        self.posted.append(message)

    def on_message(self, handler):
        self.handler = handler

    def close(self):
        self.closed = True

    def receive(self, message):
        self.handler(message)


class RecordingFactory:
    def __init__(self):
        self.channels = []

    def __call__(self, name):
        channel = RecordingChannel(name)
        self.channels.append(channel)
        return channel


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture
def constraints():
    return dict(DEMO_CONSTRAINTS)


@pytest.fixture
def recording_factory():
    return RecordingFactory()


@pytest.fixture
def default_registry():
    """The module-level channel registry, closed again after the test."""
    yield get_channel_registry()
    reset_channel_registry()


async def _drain(iterations: int = 5) -> None:
    for _ in range(iterations):
        await asyncio.sleep(0)


@pytest.fixture
def drain():
    """Coroutine function letting scheduled channel deliveries run."""
    return _drain
