from typing import List, Optional, Tuple

import pytest

from danmu_gateway.cache import MemoryCommentCache, MemoryUrlIndex
from danmu_gateway.config import Settings
from danmu_gateway.gateway import Gateway
from danmu_gateway.handlers.base import DanmuHandlers
from danmu_gateway.models import CanonicalRequest, CanonicalResponse
from danmu_gateway.rate_limiter import RateLimiter

TOKEN = "secret"


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class RecordingHandlers(DanmuHandlers):
    """记录调用并返回固定响应的下游处理器。"""

    def __init__(self):
        self.calls: List[Tuple] = []
        self.error: Optional[Exception] = None

    def _record(self, *call) -> CanonicalResponse:
        self.calls.append(call)
        if self.error is not None:
            raise self.error
        return CanonicalResponse.from_json({"handler": call[0]})

    async def search_anime(self, request):
        return self._record("search_anime", dict(request.query))

    async def search_episodes(self, request):
        return self._record("search_episodes", dict(request.query))

    async def match(self, request):
        return self._record("match", request.body)

    async def get_bangumi(self, request, anime_id):
        return self._record("get_bangumi", anime_id)

    async def get_comment(self, request, comment_id, query_format):
        return self._record("get_comment", comment_id, query_format)

    async def get_comment_by_url(self, request, url, query_format):
        return self._record("get_comment_by_url", url, query_format)


def make_settings(**overrides) -> Settings:
    values = {"token": TOKEN, "rate_limit_max_requests": 2, "other_server": "https://upstream.example"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_request(path: str, method: str = "GET", query=None, client_ip: str = "10.0.0.1", body: bytes = b"") -> CanonicalRequest:
    return CanonicalRequest(method=method, path=path, query=query or {}, body=body, client_ip=client_ip)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def handlers() -> RecordingHandlers:
    return RecordingHandlers()


@pytest.fixture
def gateway(settings, clock, handlers) -> Gateway:
    return Gateway(
        settings,
        RateLimiter(settings.rate_limit_max_requests),
        MemoryCommentCache(ttl_minutes=5),
        MemoryUrlIndex(),
        handlers,
        clock=clock,
    )
