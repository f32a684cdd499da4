import time

import pytest

from flawless_csrf.config.settings import CSRFConfig
from flawless_csrf.security.guard import CSRFGuard
from flawless_csrf.session.session import Session


class FakeClock:
    """可控的 time.time 替身"""

    def __init__(self, start=None):
        self.now = time.time() if start is None else start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(time, "time", fake)
    return fake


@pytest.fixture
def session():
    s = Session("test-session-id", is_new=True)
    yield s
    s.destroy()


@pytest.fixture
def guard():
    return CSRFGuard(CSRFConfig())


def make_scope(method="GET", path="/", headers=None, query_string=b"", session=None):
    """构造最小的HTTP scope"""
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string,
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()],
    }
    if session is not None:
        scope["session"] = session
    return scope


def make_receive(body=b""):
    """构造一次性返回请求体的receive"""
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive
