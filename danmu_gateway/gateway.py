"""
请求准入与分发

所有部署入口（ASGI 应用、serverless 函数）都把请求转换为 CanonicalRequest 后交给
Gateway.handle()，因此鉴权、路径规范化、缓存优先与限流的行为在各平台上完全一致。

限流设计说明：
1. 弹幕请求先检查缓存，缓存命中时直接返回，不调用限流器，也不计入限流次数；
2. 只有缓存未命中时才执行限流检查和上游请求；
3. 这样频繁访问同一份弹幕时不会被限流。
"""

import logging
from typing import Callable, Optional

from ._version import APP_VERSION, REPOSITORY_URL
from .cache import CommentCache, UrlIndex
from .config import Settings
from .danmaku_format import format_danmu_response
from .exceptions import GatewayError, MissingParameterError, NotFoundError, RateLimitExceededError
from .handlers.base import DanmuHandlers
from .log_manager import get_logs
from .models import CanonicalRequest, CanonicalResponse, HomepageResponse
from .path_auth import API_PREFIX, LOGS_PATH, authenticate_path
from .rate_limiter import Admission, RateLimiter, now_ms

logger = logging.getLogger(__name__)

COMMENT_PATH = f"{API_PREFIX}/comment"
BANGUMI_PATH = f"{API_PREFIX}/bangumi/"


def parse_comment_id(path: str) -> Optional[int]:
    """解析 /api/v2/comment/{id} 末尾的数字 ID，无法解析时返回 None。"""
    if not path.startswith(COMMENT_PATH + "/"):
        return None
    last_segment = path.rstrip("/").rsplit("/", 1)[-1]
    # 只接受纯 ASCII 数字，int() 能解析的 "+5"、"1_000"、" 7" 都视为无效
    if not (last_segment.isascii() and last_segment.isdigit()):
        return None
    return int(last_segment)


class Gateway:

    def __init__(
        self,
        settings: Settings,
        rate_limiter: RateLimiter,
        comment_cache: CommentCache,
        url_index: UrlIndex,
        handlers: DanmuHandlers,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.comment_cache = comment_cache
        self.url_index = url_index
        self.handlers = handlers
        self.clock = clock
        self.database_valid = False

    async def handle(self, request: CanonicalRequest) -> CanonicalResponse:
        logger.info(f"请求: {request.method} {request.path}, 客户端 IP: {request.client_ip}")
        try:
            return await self._dispatch(request)
        except GatewayError as e:
            if e.status_code >= 500:
                logger.error(f"请求失败 ({e.status_code}): {e.message}")
            return CanonicalResponse.from_json(e.to_body(), status_code=e.status_code)

    async def _dispatch(self, request: CanonicalRequest) -> CanonicalResponse:
        method = request.method.upper()

        # 首页不需要 token
        if request.path == "/" and method == "GET":
            return self.homepage()

        path = authenticate_path(request.path, self.settings.token)
        if path is None:
            return CanonicalResponse.no_content()

        if path == "/" and method == "GET":
            return self.homepage()

        # 路径匹配但方法不匹配时同样返回 404，而不是 405
        if method == "GET":
            if path == f"{API_PREFIX}/search/anime":
                return await self.handlers.search_anime(request)
            if path == f"{API_PREFIX}/search/episodes":
                return await self.handlers.search_episodes(request)
            if path.startswith(BANGUMI_PATH):
                return await self.handlers.get_bangumi(request, path[len(BANGUMI_PATH):])
            if path == COMMENT_PATH or path.startswith(COMMENT_PATH + "/"):
                return await self.get_comment(request, path)
            if path == LOGS_PATH:
                return CanonicalResponse.from_text("\n".join(get_logs()))
        elif method == "POST" and path == f"{API_PREFIX}/match":
            return await self.handlers.match(request)

        raise NotFoundError()

    async def get_comment(self, request: CanonicalRequest, path: str) -> CanonicalResponse:
        query_format = request.query.get("format")
        video_url = request.query.get("url")

        # 如果有url参数，则通过URL获取弹幕
        if video_url:
            cached_comments = await self.comment_cache.lookup(video_url)
            if cached_comments is not None:
                logger.info(f"[Rate Limit] 缓存命中: {video_url}，跳过限流检查")
                return format_danmu_response(cached_comments, query_format)

            await self.check_rate_limit(request.client_ip)
            return await self.handlers.get_comment_by_url(request, video_url, query_format)

        # 否则通过commentId获取弹幕
        comment_id = parse_comment_id(path)
        if comment_id is None:
            logger.error("缺少 commentId 或 url 参数")
            raise MissingParameterError()

        url_for_comment = self.url_index.resolve(comment_id)
        if url_for_comment:
            cached_comments = await self.comment_cache.lookup(url_for_comment)
            if cached_comments is not None:
                logger.info(f"[Rate Limit] 缓存命中: {url_for_comment}，跳过限流检查")
                return format_danmu_response(cached_comments, query_format)

        await self.check_rate_limit(request.client_ip)
        return await self.handlers.get_comment(request, comment_id, query_format)

    async def check_rate_limit(self, client_ip: str):
        """缓存未命中时调用；已消耗的限流次数不会因为之后的上游失败而回退。"""
        if await self.rate_limiter.admit(client_ip, self.clock()) is Admission.REJECTED:
            raise RateLimitExceededError()

    def homepage(self) -> CanonicalResponse:
        logger.info("访问首页")
        envs = self.settings.public_envs()
        envs["databaseValid"] = self.database_valid
        envs["rateLimit"] = self.rate_limiter.get_status()
        response = HomepageResponse(
            message="Welcome to the Danmu API gateway",
            version=APP_VERSION,
            envs=envs,
            repository=REPOSITORY_URL,
            description=(
                "兼容弹弹play搜索、详情查询和弹幕获取接口规范的弹幕 API 网关，"
                "通过路径中的 token 鉴权，弹幕缓存优先，未命中缓存的请求按客户端 IP 限流。"
            ),
        )
        return CanonicalResponse.from_json(response.model_dump(exclude_none=True))
