"""
应用配置

所有配置项均从环境变量（或工作目录下的 .env 文件）读取，嵌套配置使用 `__` 分隔，
例如 `SERVER__PORT=7768`、`LOG__LEVEL=DEBUG`、`DATABASE__URL=sqlite+aiosqlite:///config/cache.db`。

使用方式:
    from danmu_gateway.config import get_settings
    settings = get_settings()
"""

from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VOD_REQUEST_TIMEOUT = 5000


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 9321


class LogConfig(BaseModel):
    level: str = "INFO"
    # /api/logs 可返回的最大日志行数
    buffer_size: int = Field(500, ge=1)


class DatabaseConfig(BaseModel):
    # 为空时使用内存缓存；否则为 SQLAlchemy 异步连接串
    url: Optional[str] = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    token: str = "87654321"
    # 每个客户端 IP 每分钟允许的未命中缓存的弹幕请求数，<=0 表示不限流
    rate_limit_max_requests: int = 3
    # 请求上游的超时时间（毫秒）
    vod_request_timeout: int = DEFAULT_VOD_REQUEST_TIMEOUT
    # 弹幕缓存有效期（分钟），0 表示不缓存
    comment_cache_minutes: int = Field(1, ge=0)
    max_episode_ids: int = Field(1000, ge=1)
    # 上游 dandanplay 兼容弹幕服务地址
    other_server: str = "http://127.0.0.1:7768"
    # 限流记录与过期缓存的清理间隔（秒）
    cleanup_interval_seconds: int = Field(3600, ge=1)
    environment: str = "production"
    tz: str = "Asia/Shanghai"

    server: ServerConfig = ServerConfig()
    log: LogConfig = LogConfig()
    database: DatabaseConfig = DatabaseConfig()

    @field_validator("token")
    @classmethod
    def _strip_token(cls, v: str) -> str:
        # token 作为路径段比较，首尾的 '/' 和空白没有意义
        return v.strip().strip("/")

    @property
    def request_timeout_seconds(self) -> float:
        # 未配置或 <=0 时回退到默认的 5000 毫秒
        timeout_ms = self.vod_request_timeout if self.vod_request_timeout > 0 else DEFAULT_VOD_REQUEST_TIMEOUT
        return timeout_ms / 1000

    def public_envs(self) -> Dict[str, Any]:
        """返回可在首页展示的配置项，token 会被打码。"""
        return {
            "TOKEN": "*" * len(self.token),
            "RATE_LIMIT_MAX_REQUESTS": self.rate_limit_max_requests,
            "VOD_REQUEST_TIMEOUT": self.vod_request_timeout,
            "COMMENT_CACHE_MINUTES": self.comment_cache_minutes,
            "MAX_EPISODE_IDS": self.max_episode_ids,
            "OTHER_SERVER": self.other_server,
            "ENVIRONMENT": self.environment,
        }


@lru_cache
def get_settings() -> Settings:
    """每个进程只解析一次环境变量。"""
    return Settings()
