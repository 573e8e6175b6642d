"""
网关内部使用的请求/响应模型

各部署平台的适配器负责把平台自己的请求对象转换为 CanonicalRequest，
再把 CanonicalResponse 转换回平台的响应格式。
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

JSON_CONTENT_TYPE = "application/json"
XML_CONTENT_TYPE = "application/xml"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass
class CanonicalRequest:
    method: str
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_ip: str = "unknown"

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body)


@dataclass
class CanonicalResponse:
    status_code: int = 200
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any, status_code: int = 200) -> "CanonicalResponse":
        return cls(
            status_code=status_code,
            body=json.dumps(data, ensure_ascii=False).encode("utf-8"),
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )

    @classmethod
    def from_text(cls, text: str, content_type: str = TEXT_CONTENT_TYPE, status_code: int = 200) -> "CanonicalResponse":
        return cls(status_code=status_code, body=text.encode("utf-8"), headers={"Content-Type": content_type})

    @classmethod
    def no_content(cls) -> "CanonicalResponse":
        return cls(status_code=204)

    def json(self) -> Any:
        return json.loads(self.body)


class Comment(BaseModel):
    cid: int
    p: str
    m: str


class CommentResponse(BaseModel):
    count: int
    comments: List[Comment]


class HomepageResponse(BaseModel):
    message: str
    version: str
    envs: Dict[str, Any]
    repository: Optional[str] = None
    description: str = ""
