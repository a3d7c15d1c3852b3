"""
Shared fixtures: an in-memory stand-in for Playwright's APIRequestContext.
"""
import pytest

from avitolog.config import FetchSettings
from avitolog.fetcher import PageFetcher
from avitolog.governor import FetchGovernor


BASE = "https://www.avito.ru"


class FakeResponse:
    def __init__(self, status=200, body="", url="", headers=None):
        self.status = status
        self.raw = body.encode("utf-8") if isinstance(body, str) else body
        self.url = url
        self.headers = headers or {}
        self.disposed = 0

    async def body(self):
        return self.raw

    async def dispose(self):
        self.disposed += 1


class FakeRequestContext:
    """
    Serves canned responses keyed by URL.

    A URL may be given several responses; they are served in order and the
    last one repeats. An exception instance in the queue is raised instead.
    Unknown URLs answer 404.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.served = []

    def add(self, url, body="", status=200, headers=None):
        self.routes.setdefault(url, []).append(FakeResponse(status, body, url, headers))
        return self

    def fail(self, url, error):
        self.routes.setdefault(url, []).append(error)
        return self

    def visited(self):
        return [url for url, _ in self.calls]

    async def get(self, url, headers=None, timeout=None):
        self.calls.append((url, (headers or {}).get("User-Agent")))
        queue = self.routes.get(url)
        if not queue:
            answer = FakeResponse(404, "", url)
            self.served.append(answer)
            return answer
        answer = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(answer, BaseException):
            raise answer
        self.served.append(answer)
        return answer


@pytest.fixture
def settings():
    return FetchSettings(
        base_url=BASE,
        min_interval=0,
        jitter=0,
        base_delay=0,
        catalog_delay=0,
        max_retries=3,
        user_agent="ua-default",
        user_agent_pool=["ua-0", "ua-1", "ua-2"],
    )


@pytest.fixture
def governor(settings):
    return FetchGovernor.from_settings(settings)


@pytest.fixture
def request_context():
    return FakeRequestContext()


@pytest.fixture
def fetcher(request_context, governor, settings):
    return PageFetcher(request_context, governor, settings)
