from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlparse

import pytest

from kicktipp_client import KicktippClient

BASE = "https://www.kicktipp.de"

RouteKey = Tuple[str, str, Tuple[Tuple[str, str], ...]]


class FakeResponse:
    def __init__(self, status_code=200, text="", url=""):
        self.status_code = status_code
        self.text = text
        self.url = url


def _pairs(data):
    if data is None:
        return None
    return list(data.items()) if isinstance(data, dict) else list(data)


class FakeSession:
    """Routet (method, path, query) auf vorbereitete Antworten und zeichnet alle Aufrufe auf."""

    def __init__(self):
        self.routes: Dict[RouteKey, FakeResponse] = {}
        self.requests: List[dict] = []
        self.headers: Dict[str, str] = {}

    @staticmethod
    def _key(method: str, url: str, params: Optional[dict]) -> RouteKey:
        parsed = urlparse(url)
        query = dict(parse_qsl(parsed.query, keep_blank_values=True))
        query.update({k: str(v) for k, v in (params or {}).items()})
        return method.upper(), parsed.path, tuple(sorted(query.items()))

    def add(self, method, path, text="", status=200, **query):
        key = (method.upper(), path, tuple(sorted((k, str(v)) for k, v in query.items())))
        q = f"?{urlencode(dict(key[2]))}" if key[2] else ""
        self.routes[key] = FakeResponse(status, text, f"{BASE}{path}{q}")

    def html(self, path, text, **query):
        self.add("GET", path, text, **query)

    def _handle(self, method, url, params=None, data=None, headers=None):
        key = self._key(method, url, params)
        self.requests.append({"method": method.upper(), "path": key[1], "query": dict(key[2]),
                              "data": _pairs(data), "headers": headers or {}})
        resp = self.routes.get(key)
        if resp is None:
            return FakeResponse(404, "", url)
        return resp

    def get(self, url, params=None, timeout=None, **kwargs):
        return self._handle("GET", url, params=params, headers=kwargs.get("headers"))

    def post(self, url, data=None, headers=None, timeout=None, allow_redirects=True, **kwargs):
        return self._handle("POST", url, data=data, headers=headers)

    # Hilfen für Assertions
    def calls(self, method=None, path=None):
        return [r for r in self.requests
                if (method is None or r["method"] == method) and (path is None or r["path"] == path)]

    def posted(self) -> dict:
        posts = self.calls("POST")
        assert len(posts) == 1, f"expected exactly one POST, got {len(posts)}"
        return dict(posts[0]["data"])


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(session):
    return KicktippClient(session, base_url=BASE)
