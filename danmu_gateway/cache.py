"""
弹幕缓存与 ID→URL 索引

Gateway 只依赖 CommentCache.lookup / UrlIndex.resolve 两个能力，
具体的过期与淘汰策略由实现自行决定。
"""

import collections
import itertools
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

Comments = List[Dict[str, Any]]

# 与 dandanplay 的 episodeId 区分开，本地分配的 ID 从 10001 开始
FIRST_EPISODE_ID = 10001


class CommentCache(ABC):
    """按源视频 URL 缓存弹幕列表"""

    @abstractmethod
    async def lookup(self, url: str) -> Optional[Comments]:
        """命中时返回弹幕列表（可以是空列表），未命中返回 None。"""
        raise NotImplementedError

    @abstractmethod
    async def store(self, url: str, comments: Comments) -> None:
        raise NotImplementedError

    async def clear_expired(self) -> int:
        return 0

    async def close(self) -> None:
        pass


class UrlIndex(ABC):
    """将数字弹幕 ID 映射回源视频 URL"""

    @abstractmethod
    def resolve(self, comment_id: int) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def register(self, url: str) -> int:
        raise NotImplementedError


class MemoryCommentCache(CommentCache):
    """进程内弹幕缓存，超过有效期的条目在读取时失效。"""

    def __init__(self, ttl_minutes: int = 1, clock=time.monotonic):
        self.ttl_seconds = ttl_minutes * 60
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Comments]] = {}

    async def lookup(self, url: str) -> Optional[Comments]:
        entry = self._entries.get(url)
        if entry is None:
            return None
        stored_at, comments = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[url]
            logger.debug(f"弹幕缓存已过期: {url}")
            return None
        return comments

    async def store(self, url: str, comments: Comments) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[url] = (self._clock(), comments)
        logger.info(f"弹幕已缓存: {url} ({len(comments)} 条)")

    async def clear_expired(self) -> int:
        now = self._clock()
        expired = [url for url, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl_seconds]
        for url in expired:
            del self._entries[url]
        return len(expired)


class MemoryUrlIndex(UrlIndex):
    """
    顺序分配弹幕 ID。同一 URL 重复注册时返回已有的 ID；
    超过容量后最早注册的条目会被淘汰，对应 ID 将无法再解析。
    """

    def __init__(self, max_entries: int = 1000, first_id: int = FIRST_EPISODE_ID):
        self.max_entries = max_entries
        self._ids = itertools.count(first_id)
        self._by_id: "collections.OrderedDict[int, str]" = collections.OrderedDict()
        self._by_url: Dict[str, int] = {}

    def resolve(self, comment_id: int) -> Optional[str]:
        return self._by_id.get(comment_id)

    def register(self, url: str) -> int:
        existing = self._by_url.get(url)
        if existing is not None:
            return existing

        comment_id = next(self._ids)
        self._by_id[comment_id] = url
        self._by_url[url] = comment_id
        while len(self._by_id) > self.max_entries:
            old_id, old_url = self._by_id.popitem(last=False)
            self._by_url.pop(old_url, None)
            logger.debug(f"弹幕 ID 索引已满，淘汰最早的条目: {old_id} -> {old_url}")
        return comment_id
