"""
Serverless 函数入口（Netlify Functions / AWS Lambda API Gateway 代理事件格式）

事件格式:
    {"httpMethod": "GET", "path": "/token/api/v2/...", "headers": {...},
     "queryStringParameters": {...}, "body": "...", "isBase64Encoded": false}
"""

import asyncio
import base64
from typing import Any, Dict, Optional

from ..config import get_settings
from ..gateway import Gateway
from ..log_manager import setup_logging
from ..models import CanonicalRequest, CanonicalResponse
from ..service import create_gateway
from .base import PlatformAdapter, client_ip_from_headers


FunctionEvent = Dict[str, Any]


class FunctionEventAdapter(PlatformAdapter[FunctionEvent, Dict[str, Any]]):
    platform = "netlify"

    async def to_canonical_request(self, event: FunctionEvent, context: Any = None) -> CanonicalRequest:
        headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
        body = event.get("body") or ""
        if event.get("isBase64Encoded"):
            raw_body = base64.b64decode(body)
        else:
            raw_body = body.encode("utf-8")

        context_ip = None
        if isinstance(context, dict):
            context_ip = context.get("ip")
        else:
            context_ip = getattr(context, "ip", None)

        return CanonicalRequest(
            method=event.get("httpMethod", "GET"),
            path=event.get("path") or "/",
            query={k: v for k, v in (event.get("queryStringParameters") or {}).items() if v is not None},
            headers=headers,
            body=raw_body,
            client_ip=client_ip_from_headers(headers, fallback=context_ip),
        )

    def from_canonical_response(self, response: CanonicalResponse) -> Dict[str, Any]:
        return {
            "statusCode": response.status_code,
            "headers": dict(response.headers),
            "body": response.body.decode("utf-8"),
            "isBase64Encoded": False,
        }


class FunctionHandler:
    """
    同步的函数入口。Gateway 在进程内第一次调用时创建，之后的热调用复用同一个实例，
    因此限流记录和弹幕缓存只在同一个函数实例的生命周期内有效。
    """

    def __init__(self, gateway: Optional[Gateway] = None, adapter: Optional[FunctionEventAdapter] = None):
        self.adapter = adapter or FunctionEventAdapter()
        self._gateway = gateway
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def _get_gateway(self) -> Gateway:
        if self._gateway is None:
            settings = get_settings()
            setup_logging(settings)
            self._gateway = await create_gateway(settings)
        return self._gateway

    async def handle(self, event: FunctionEvent, context: Any = None) -> Dict[str, Any]:
        gateway = await self._get_gateway()
        request = await self.adapter.to_canonical_request(event, context)
        response = await gateway.handle(request)
        return self.adapter.from_canonical_response(response)

    def __call__(self, event: FunctionEvent, context: Any = None) -> Dict[str, Any]:
        # 复用同一个事件循环，httpx 连接池绑定在该循环上
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(self.handle(event, context))


handler = FunctionHandler()
