"""
下游处理器接口

Gateway 完成鉴权、路径规范化、缓存检查与限流之后，把请求交给这里的实现。
具体的搜索、匹配、弹幕获取逻辑由实现类负责；网关本身不做重试。
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import CanonicalRequest, CanonicalResponse


class DanmuHandlers(ABC):

    @abstractmethod
    async def search_anime(self, request: CanonicalRequest) -> CanonicalResponse:
        raise NotImplementedError

    @abstractmethod
    async def search_episodes(self, request: CanonicalRequest) -> CanonicalResponse:
        raise NotImplementedError

    @abstractmethod
    async def match(self, request: CanonicalRequest) -> CanonicalResponse:
        raise NotImplementedError

    @abstractmethod
    async def get_bangumi(self, request: CanonicalRequest, anime_id: str) -> CanonicalResponse:
        raise NotImplementedError

    @abstractmethod
    async def get_comment(self, request: CanonicalRequest, comment_id: int, query_format: Optional[str]) -> CanonicalResponse:
        raise NotImplementedError

    @abstractmethod
    async def get_comment_by_url(self, request: CanonicalRequest, url: str, query_format: Optional[str]) -> CanonicalResponse:
        raise NotImplementedError

    async def close(self) -> None:
        pass
