"""
网关错误类型

每种错误都带有 HTTP 状态码与对外展示的错误信息，由 Gateway 统一转换为
`{"errorCode": ..., "success": false, "errorMessage": ...}` 格式的 JSON 响应。
"""

from typing import Any, Dict


class GatewayError(Exception):
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_body(self) -> Dict[str, Any]:
        return {"errorCode": self.status_code, "success": False, "errorMessage": self.message}


class UnauthorizedError(GatewayError):
    """路径中的 token 缺失或不匹配"""
    status_code = 401
    message = "Unauthorized"


class RateLimitExceededError(GatewayError):
    """客户端在当前窗口内的请求次数已达上限"""
    status_code = 429
    message = "Too many requests, please try again later"


class MissingParameterError(GatewayError):
    status_code = 400
    message = "Missing commentId or url parameter"


class NotFoundError(GatewayError):
    status_code = 404
    message = "Not found"

    def to_body(self) -> Dict[str, Any]:
        # 404 保持与原有客户端兼容的简单格式
        return {"message": self.message}


class UpstreamError(GatewayError):
    """上游弹幕服务请求失败"""
    status_code = 502
    message = "Upstream request failed"


class UpstreamTimeoutError(UpstreamError):
    status_code = 504
    message = "Upstream request timed out"
