import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..cache import CommentCache, Comments
from . import crud
from .database import close_db_engine

logger = logging.getLogger(__name__)

COMMENT_CACHE_PREFIX = "danmu_comments_"


class SqlCommentCache(CommentCache):
    """把弹幕缓存保存在 cache_data 表中，进程重启后仍然有效（直到过期）。"""

    def __init__(self, engine: AsyncEngine, session_factory: async_sessionmaker[AsyncSession], ttl_minutes: int = 1):
        self.engine = engine
        self.session_factory = session_factory
        self.ttl_seconds = ttl_minutes * 60

    async def lookup(self, url: str) -> Optional[Comments]:
        async with self.session_factory() as session:
            return await crud.get_cache(session, COMMENT_CACHE_PREFIX + url)

    async def store(self, url: str, comments: Comments) -> None:
        if self.ttl_seconds <= 0:
            return
        async with self.session_factory() as session:
            await crud.set_cache(session, COMMENT_CACHE_PREFIX + url, comments, self.ttl_seconds, provider="comments")
        logger.info(f"弹幕已写入数据库缓存: {url} ({len(comments)} 条)")

    async def clear_expired(self) -> int:
        async with self.session_factory() as session:
            return await crud.clear_expired_cache(session)

    async def close(self) -> None:
        await close_db_engine(self.engine)
