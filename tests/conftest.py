import pytest
import requests

import leaderboard
import plex


class FakeUpstream:
    """Stand-in for a requests.Response coming back from Plex."""

    def __init__(self, payload=None, chunks=(), headers=None, status_code=200):
        self.payload = payload
        self.chunks = list(chunks)
        self.headers = headers or {}
        self.status_code = status_code
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload

    def iter_content(self, chunk_size=1):
        yield from self.chunks

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


@pytest.fixture
def leaderboard_file(tmp_path, monkeypatch):
    path = tmp_path / "data" / "leaderboard.json"
    monkeypatch.setattr(leaderboard, "LEADERBOARD_FILE", path)
    return path


@pytest.fixture
def plex_token(monkeypatch):
    monkeypatch.setattr(plex, "PLEX_URL", "http://plex.test:32400")
    monkeypatch.setattr(plex, "PLEX_TOKEN", "secret-token")
    return "secret-token"


@pytest.fixture
def fake_get(monkeypatch):
    """
    Route requests.get by URL path to canned upstream responses.

    Tests fill `fake_get.routes`; every call is recorded in `fake_get.calls`.
    """

    class Router:
        def __init__(self):
            self.routes = {}
            self.calls = []

        def __call__(self, url, params=None, headers=None, timeout=None, stream=False):
            self.calls.append(
                {
                    "url": url,
                    "params": params,
                    "headers": headers,
                    "timeout": timeout,
                    "stream": stream,
                }
            )
            path = url.split("32400", 1)[-1]
            result = self.routes[path]
            if isinstance(result, Exception):
                raise result
            return result

    router = Router()
    monkeypatch.setattr(requests, "get", router)
    return router


@pytest.fixture
def client(leaderboard_file):
    from app import app

    app.config.update(TESTING=True)
    with app.test_client() as c:
        yield c


@pytest.fixture
def upstream():
    """Factory for fake Plex responses."""
    return FakeUpstream
