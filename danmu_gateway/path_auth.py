"""
路径鉴权与规范化

客户端把 token 作为路径的第一段传入，例如 `/{token}/api/v2/search/anime`。
部分客户端会自己补 `/api/v2`，用户又在地址里填了 `/api/v2`，于是出现
`/{token}/api/v2/api/v2/...`；也有客户端完全不带前缀（`/{token}/search/anime`）。
这里统一把它们规范化为 `/api/v2/...`。
"""

import logging
import secrets
from typing import List, Optional

from .exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v2"
LOGS_PATH = "/api/logs"
# 这两个路径不需要 token，直接返回 204
NO_CONTENT_PATHS = frozenset({"/favicon.ico", "/robots.txt"})


def split_segments(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


def normalize_path(path: str) -> str:
    """
    将去掉 token 之后的路径规范化到 /api/v2 前缀下。
    `/` 与 `/api/logs` 原样返回；该函数是幂等的。
    """
    if path in ("/", LOGS_PATH):
        return path

    original = path
    # 1. 清理重复前缀：/api/v2/api/v2/... -> /api/v2/...
    while path.startswith(f"{API_PREFIX}{API_PREFIX}/"):
        path = path[len(API_PREFIX):]

    # 2. 补全缺失的前缀：/search/anime -> /api/v2/search/anime
    if not path.startswith(API_PREFIX) and path != "/" and not path.startswith(LOGS_PATH):
        path = API_PREFIX + path

    if path != original:
        logger.debug(f"[Path Check] 路径已规范化: '{original}' -> '{path}'")
    return path


def authenticate_path(path: str, token: str) -> Optional[str]:
    """
    校验路径中的 token 并返回规范化后的路径。

    - `/favicon.ico`、`/robots.txt` 不校验 token，返回 None，调用方应直接响应 204。
    - 没有路径段或第一段不等于 token 时抛出 UnauthorizedError。
    """
    if path in NO_CONTENT_PATHS:
        return None

    parts = split_segments(path)
    if not parts or not secrets.compare_digest(parts[0].encode("utf-8"), token.encode("utf-8")):
        logger.error(f"路径中的 token 无效或缺失: {path}")
        raise UnauthorizedError()

    # 移除 token 部分，剩下的才是真正的路径
    working_path = "/" + "/".join(parts[1:])
    return normalize_path(working_path)
