"""
组装网关所需的组件

限流器、弹幕缓存和 ID 索引都在这里创建一次，并由 Gateway 持有；
ASGI 应用在 lifespan 中调用，serverless 入口在进程内首次请求时调用。
"""

import asyncio
import logging
from typing import Optional

import httpx

from .cache import CommentCache, MemoryCommentCache, MemoryUrlIndex
from .config import Settings
from .db import SqlCommentCache, create_db_engine_and_session
from .gateway import Gateway
from .handlers import DanmuHandlers, UpstreamDandanHandlers
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


async def create_comment_cache(settings: Settings) -> CommentCache:
    if not settings.database.url:
        return MemoryCommentCache(ttl_minutes=settings.comment_cache_minutes)

    engine, session_factory = await create_db_engine_and_session(settings.database.url)
    return SqlCommentCache(engine, session_factory, ttl_minutes=settings.comment_cache_minutes)


async def create_gateway(
    settings: Settings,
    handlers: Optional[DanmuHandlers] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Gateway:
    comment_cache = await create_comment_cache(settings)
    url_index = MemoryUrlIndex(max_entries=settings.max_episode_ids)
    rate_limiter = RateLimiter(settings.rate_limit_max_requests)
    if handlers is None:
        handlers = UpstreamDandanHandlers(settings, comment_cache, url_index, transport=transport)

    gateway = Gateway(settings, rate_limiter, comment_cache, url_index, handlers)
    gateway.database_valid = isinstance(comment_cache, SqlCommentCache)

    if rate_limiter.enabled:
        logger.info(f"限流已启用: 每个客户端每分钟最多 {rate_limiter.max_requests} 次未命中缓存的弹幕请求")
    else:
        logger.info("限流已关闭 (RATE_LIMIT_MAX_REQUESTS <= 0)")
    return gateway


async def close_gateway(gateway: Gateway):
    await gateway.handlers.close()
    await gateway.comment_cache.close()


async def cleanup_task(gateway: Gateway, interval_seconds: int):
    """定期清理过期的限流记录和弹幕缓存的后台任务。"""
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            removed_clients = gateway.rate_limiter.sweep(gateway.clock())
            removed_entries = await gateway.comment_cache.clear_expired()
            logger.debug(f"定期清理完成: 限流记录 {removed_clients} 个, 过期缓存 {removed_entries} 条")
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error(f"定期清理任务出错: {e}")
