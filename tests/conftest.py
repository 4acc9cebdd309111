import pytest

from src.dashboard.domain.models.session import Session
from src.dashboard.infra.gateway.bootstrap import set_gateway
from src.dashboard.infra.gateway.inmemory import InMemoryGateway


@pytest.fixture
def session() -> Session:
    return Session(user_id="user-1", access_token="token-1", email="clinician@example.com")


@pytest.fixture
def gateway():
    """Fresh in-memory gateway installed as the process-wide gateway."""

    gw = InMemoryGateway()
    set_gateway(gw)
    yield gw
    set_gateway(None)
