"""
部署平台适配器

每个部署平台实现一个适配器，只负责请求/响应对象的转换，
鉴权、限流等逻辑全部在 Gateway 中完成。
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping, Optional, TypeVar

from ..models import CanonicalRequest, CanonicalResponse

PlatformRequest = TypeVar("PlatformRequest")
PlatformResponse = TypeVar("PlatformResponse")

UNKNOWN_CLIENT = "unknown"

# 按优先级排列的客户端真实 IP 请求头
CLIENT_IP_HEADERS = ("cf-connecting-ip", "x-nf-client-connection-ip", "x-forwarded-for", "x-real-ip")


def client_ip_from_headers(headers: Mapping[str, str], fallback: Optional[str] = None) -> str:
    """从代理请求头中解析客户端 IP；X-Forwarded-For 取第一跳。都没有时返回 "unknown"。"""
    lowered = {k.lower(): v for k, v in headers.items()}
    for header in CLIENT_IP_HEADERS:
        value = lowered.get(header)
        if value:
            return value.split(",")[0].strip() or UNKNOWN_CLIENT
    return fallback or UNKNOWN_CLIENT


class PlatformAdapter(ABC, Generic[PlatformRequest, PlatformResponse]):
    platform: str

    @abstractmethod
    async def to_canonical_request(self, request: PlatformRequest, context: Any = None) -> CanonicalRequest:
        raise NotImplementedError

    @abstractmethod
    def from_canonical_response(self, response: CanonicalResponse) -> PlatformResponse:
        raise NotImplementedError
