import pytest

TEST_ALLOWED_HOST = "ctms.example.edu"


@pytest.fixture
def allowed_host(monkeypatch):
    """Restrict the relay to a single well-known upstream host."""
    monkeypatch.setattr("relay.vars.RELAY_ALLOWED_HOSTS", [TEST_ALLOWED_HOST])
    return TEST_ALLOWED_HOST
