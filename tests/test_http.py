import pytest
import requests

from gallerysync.http import HostRateLimiter, request_with_retry
from helpers import make_response


@pytest.fixture
def clock(monkeypatch):
    """Fake monotonic clock; sleeping advances it."""
    state = {"now": 100.0, "sleeps": []}

    def sleep(seconds):
        state["sleeps"].append(seconds)
        state["now"] += seconds

    monkeypatch.setattr("gallerysync.http.time.monotonic", lambda: state["now"])
    monkeypatch.setattr("gallerysync.http.time.sleep", sleep)
    return state


def test_limiter_spaces_requests_to_the_same_host(clock):
    limiter = HostRateLimiter(0.5)

    limiter.wait("https://photos.adobe.io/v2/spaces/s1/renditions/a1/2048")
    limiter.wait("https://photos.adobe.io/v2/spaces/s1/renditions/a2/2048")
    limiter.wait("https://photos.adobe.io/v2/spaces/s1/renditions/a3/2048")

    assert clock["sleeps"] == [0.5, 0.5]


def test_limiter_tracks_hosts_separately(clock):
    limiter = HostRateLimiter(0.5)

    limiter.wait("https://photos.adobe.io/a")
    limiter.wait("https://lr.adobe.io/b")
    clock["now"] += 0.2
    limiter.wait("https://photos.adobe.io/c")

    assert clock["sleeps"] == [pytest.approx(0.3)]


def test_zero_interval_never_waits(clock):
    limiter = HostRateLimiter()
    for _ in range(3):
        limiter.wait("https://photos.adobe.io/a")
    assert clock["sleeps"] == []


def test_retry_on_server_errors(session):
    url = "https://photos.adobe.io/img"
    session.add("GET", url, make_response(503), make_response(429), make_response(200, b"ok"))

    resp = request_with_retry(session, "GET", url, retries=3)

    assert resp.status_code == 200
    assert len(session.urls("GET")) == 3


def test_retry_gives_up(session):
    url = "https://photos.adobe.io/img"
    session.add("GET", url, requests.ConnectionError("reset"))

    with pytest.raises(requests.ConnectionError):
        request_with_retry(session, "GET", url, retries=2)
    assert len(session.urls("GET")) == 3
