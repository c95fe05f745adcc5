import pytest

from helpers import FakeSession


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Retry backoff and rendition polling never actually wait in tests."""
    monkeypatch.setattr("gallerysync.http.time.sleep", lambda seconds: None)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def encryption_key(monkeypatch):
    key = "ab" * 32
    monkeypatch.setenv("ENCRYPTION_KEY", key)
    return key
