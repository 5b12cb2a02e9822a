from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from signchain.config import Settings
from signchain.main import create_app


@pytest.fixture
def settings() -> Settings:
    return Settings(backend_mode="simulated", default_language="tr")


@pytest.fixture
def client(settings: Settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client
