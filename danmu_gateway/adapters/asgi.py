from typing import Any

from fastapi import Request, Response

from ..models import CanonicalRequest, CanonicalResponse
from .base import PlatformAdapter, client_ip_from_headers


class AsgiAdapter(PlatformAdapter[Request, Response]):
    """FastAPI / Starlette 请求与 CanonicalRequest 之间的转换（Docker、uvicorn 部署）。"""
    platform = "docker"

    async def to_canonical_request(self, request: Request, context: Any = None) -> CanonicalRequest:
        headers = {k.lower(): v for k, v in request.headers.items()}
        peer = request.client.host if request.client else None
        return CanonicalRequest(
            method=request.method,
            path=request.url.path,
            query=dict(request.query_params),
            headers=headers,
            body=await request.body(),
            client_ip=client_ip_from_headers(headers, fallback=peer),
        )

    def from_canonical_response(self, response: CanonicalResponse) -> Response:
        return Response(content=response.body, status_code=response.status_code, headers=response.headers)
