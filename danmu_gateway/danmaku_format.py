"""弹幕响应格式化：dandanplay JSON 或 XML"""
import logging
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape as xml_escape
from xml.sax.saxutils import quoteattr

from .models import XML_CONTENT_TYPE, CanonicalResponse, Comment, CommentResponse

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = '25'


def _comment_cid(item: Dict[str, Any], index: int) -> int:
    cid = item.get("cid")
    if isinstance(cid, int) and not isinstance(cid, bool):
        return cid
    if isinstance(cid, str) and cid.isascii() and cid.isdigit():
        return int(cid)
    return index


def to_comment_models(comments_data: List[Dict[str, Any]]) -> List[Comment]:
    """缺少 cid 或 cid 不是整数的弹幕按顺序编号。"""
    return [
        Comment(cid=_comment_cid(item, i), p=str(item.get("p", "")), m=str(item.get("m", "")))
        for i, item in enumerate(comments_data)
    ]


def generate_dandan_xml(comments: List[Comment]) -> str:
    """
    根据弹幕列表生成 dandanplay 格式的 XML 字符串。
    dandanplay JSON 的 p 属性为 "时间,模式,颜色,[来源]"，XML 需要 "时间,模式,字体大小,颜色"。
    """
    xml_parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<i>',
        '  <chatserver>chat.bilibili.com</chatserver>',
        '  <chatid>0</chatid>',
        '  <mission>0</mission>',
        f'  <maxlimit>{len(comments)}</maxlimit>',
        '  <state>0</state>',
        '  <real_name>0</real_name>',
        '  <source>k-v</source>',
    ]
    for comment in comments:
        p_parts = (comment.p or '0,1,16777215').split(',')

        # 可选的来源标签（如 [bilibili]）之前的部分才是核心参数
        core_parts_end_index = len(p_parts)
        for i, part in enumerate(p_parts):
            if '[' in part and ']' in part:
                core_parts_end_index = i
                break
        core_parts = p_parts[:core_parts_end_index]
        optional_parts = p_parts[core_parts_end_index:]

        # 缺少字体大小 (e.g., "1.23,1,16777215")
        if len(core_parts) == 3:
            core_parts.insert(2, DEFAULT_FONT_SIZE)
        # 字体大小为空或无效 (e.g., "1.23,1,,16777215")
        elif len(core_parts) == 4 and not core_parts[2].strip().isdigit():
            core_parts[2] = DEFAULT_FONT_SIZE

        final_p_attr = ','.join(core_parts + optional_parts)
        xml_parts.append(f'  <d p={quoteattr(final_p_attr)}>{xml_escape(comment.m)}</d>')
    xml_parts.append('</i>')
    return '\n'.join(xml_parts)


def format_danmu_response(comments_data: List[Dict[str, Any]], query_format: Optional[str] = None) -> CanonicalResponse:
    """format=xml 时返回 XML，其它情况返回 {count, comments} JSON。"""
    comments = to_comment_models(comments_data)
    if (query_format or "").lower() == "xml":
        return CanonicalResponse.from_text(generate_dandan_xml(comments), content_type=XML_CONTENT_TYPE)

    response = CommentResponse(count=len(comments), comments=comments)
    return CanonicalResponse.from_json(response.model_dump())
