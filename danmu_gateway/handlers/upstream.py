"""
转发到上游 dandanplay 兼容弹幕服务的处理器

- 搜索、匹配、番剧详情直接转发，响应中的 episodeId 会被替换为本地分配的弹幕 ID，
  对应的上游弹幕地址登记到 UrlIndex 中，之后 /comment/{id} 可以命中缓存。
- 通过 url 获取弹幕时调用上游的 /api/v2/extcomment 接口。
- 获取到的弹幕写入 CommentCache。
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..cache import CommentCache, UrlIndex
from ..config import Settings
from ..danmaku_format import format_danmu_response
from ..exceptions import UpstreamError, UpstreamTimeoutError
from ..models import CanonicalRequest, CanonicalResponse
from .base import DanmuHandlers

logger = logging.getLogger(__name__)


class UpstreamDandanHandlers(DanmuHandlers):

    def __init__(
        self,
        settings: Settings,
        comment_cache: CommentCache,
        url_index: UrlIndex,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = settings.other_server.rstrip("/")
        self.timeout = settings.request_timeout_seconds
        self.comment_cache = comment_cache
        self.url_index = url_index
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            client_kwargs = {"timeout": self.timeout, "follow_redirects": True}
            if self._transport is not None:
                client_kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**client_kwargs)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def api_url(self, path: str) -> str:
        return f"{self.base_url}/api/v2{path}"

    async def _fetch_json(self, method: str, url: str, **kwargs) -> Any:
        response = await self._get_client().request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        logger.info(f"[上游请求] {method} {url}")
        try:
            # 总超时覆盖连接、发送和读取完整响应体
            return await asyncio.wait_for(self._fetch_json(method, url, **kwargs), self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"[上游请求] 请求超时 ({self.timeout}s): {url}")
            raise UpstreamTimeoutError() from e
        except httpx.HTTPStatusError as e:
            logger.error(f"[上游请求] 上游返回错误状态 {e.response.status_code}: {url}")
            raise UpstreamError(f"Upstream returned HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[上游请求] 请求失败: {url}, 错误: {e}")
            raise UpstreamError() from e

    def _localize_episode(self, episode: Dict[str, Any]):
        upstream_id = episode.get("episodeId")
        if upstream_id is None:
            return
        episode["episodeId"] = self.url_index.register(self.api_url(f"/comment/{upstream_id}"))

    def _localize_episode_ids(self, data: Any) -> Any:
        """把上游响应中的 episodeId 替换为本地弹幕 ID。"""
        if not isinstance(data, dict):
            return data
        for anime in data.get("animes") or []:
            for episode in anime.get("episodes") or []:
                self._localize_episode(episode)
        bangumi = data.get("bangumi")
        if isinstance(bangumi, dict):
            for episode in bangumi.get("episodes") or []:
                self._localize_episode(episode)
        for match in data.get("matches") or []:
            self._localize_episode(match)
        return data

    async def search_anime(self, request: CanonicalRequest) -> CanonicalResponse:
        data = await self._request("GET", self.api_url("/search/anime"), params=request.query)
        return CanonicalResponse.from_json(data)

    async def search_episodes(self, request: CanonicalRequest) -> CanonicalResponse:
        data = await self._request("GET", self.api_url("/search/episodes"), params=request.query)
        return CanonicalResponse.from_json(self._localize_episode_ids(data))

    async def match(self, request: CanonicalRequest) -> CanonicalResponse:
        data = await self._request(
            "POST", self.api_url("/match"),
            content=request.body,
            headers={"Content-Type": request.headers.get("content-type", "application/json")},
        )
        return CanonicalResponse.from_json(self._localize_episode_ids(data))

    async def get_bangumi(self, request: CanonicalRequest, anime_id: str) -> CanonicalResponse:
        data = await self._request("GET", self.api_url(f"/bangumi/{anime_id}"))
        return CanonicalResponse.from_json(self._localize_episode_ids(data))

    async def get_comment(self, request: CanonicalRequest, comment_id: int, query_format: Optional[str]) -> CanonicalResponse:
        source_url = self.url_index.resolve(comment_id)
        if source_url is None:
            # 未登记的 ID 视为上游自己的 episodeId，直接透传，不写缓存
            logger.info(f"弹幕 ID {comment_id} 未登记，直接请求上游")
            data = await self._request("GET", self.api_url(f"/comment/{comment_id}"), params={"withRelated": "true"})
            return format_danmu_response(_comments_of(data), query_format)

        if source_url.startswith(self.api_url("/comment/")):
            data = await self._request("GET", source_url, params={"withRelated": "true"})
        else:
            data = await self._request("GET", self.api_url("/extcomment"), params={"url": source_url})
        comments = _comments_of(data)
        await self.comment_cache.store(source_url, comments)
        return format_danmu_response(comments, query_format)

    async def get_comment_by_url(self, request: CanonicalRequest, url: str, query_format: Optional[str]) -> CanonicalResponse:
        data = await self._request("GET", self.api_url("/extcomment"), params={"url": url})
        comments = _comments_of(data)
        await self.comment_cache.store(url, comments)
        comment_id = self.url_index.register(url)
        logger.info(f"已获取外部弹幕: {url} -> 弹幕 ID {comment_id}, {len(comments)} 条")
        return format_danmu_response(comments, query_format)


def _comments_of(data: Any):
    if isinstance(data, dict):
        return data.get("comments") or []
    return []
