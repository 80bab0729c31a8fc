"""Pytest configuration and shared fixtures for the test suite."""

from typing import Any, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from serverwatch.api.app import create_app
from serverwatch.config import ServiceConfig

START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def config() -> ServiceConfig:
    """Service configuration with the gateway collector disabled."""
    return ServiceConfig(expiry_seconds=600, json_logs=False, log_level="WARNING")


@pytest.fixture
def app(config: ServiceConfig, clock: FakeClock) -> FastAPI:
    """Application driven by the fake clock."""
    return create_app(config, clock=clock)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """TestClient with the application lifespan (sweeper) running."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def money_embed_message() -> dict[str, Any]:
    """MESSAGE_CREATE payload with a fully populated embed."""
    return {
        "id": "1180000000000000001",
        "channel_id": "424242",
        "author": {"username": "notifier-bot"},
        "content": "",
        "embeds": [
            {
                "title": "Brainrot Finder",
                "description": "",
                "fields": [
                    {"name": "🏷️ Name", "value": "Farm A"},
                    {"name": "💰 Money / Sec", "value": "*1.2M*/s"},
                    {"name": "👥 Players", "value": "**5**/8"},
                    {"name": "🆔 Job ID (PC)", "value": "`7f1e2a3b-c4d5-6e7f-8901-23456789abcd`"},
                ],
            }
        ],
    }
