"""Shared fixtures for unit and integration tests."""

import httpx
import pytest
from pydantic import SecretStr

from tests.fakes import PROXY_BASE_URL, FakeDocIntelService


@pytest.fixture
def credential() -> SecretStr:
    return SecretStr("k1")


@pytest.fixture
def service() -> FakeDocIntelService:
    return FakeDocIntelService()


@pytest.fixture
def proxy_http(service):
    """AsyncClient bound to the proxy base URL, answered by the fake service."""
    return httpx.AsyncClient(
        base_url=PROXY_BASE_URL, transport=httpx.MockTransport(service)
    )
