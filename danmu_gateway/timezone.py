import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import get_settings

logger = logging.getLogger(__name__)
_app_timezone: Optional[ZoneInfo] = None

# 时间格式常量
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_app_timezone() -> ZoneInfo:
    """
    获取并缓存由环境变量 TZ 定义的应用程序时区。
    如果 TZ 无效或未设置，则默认为东八区 (Asia/Shanghai)。
    """
    global _app_timezone
    if _app_timezone is None:
        tz_str = get_settings().tz
        try:
            if not tz_str:
                logger.warning("环境变量 TZ 未设置，将默认使用东八区 (Asia/Shanghai) 时区。")
                tz_str = "Asia/Shanghai"
            _app_timezone = ZoneInfo(tz_str)
        except ZoneInfoNotFoundError:
            logger.error(f"环境变量 TZ 的值 '{tz_str}' 是一个无效的时区，将默认使用东八区 (Asia/Shanghai)。")
            _app_timezone = ZoneInfo("Asia/Shanghai")
    return _app_timezone


def get_now() -> datetime:
    """
    获取附加了应用程序时区的当前时间，并返回一个不带时区信息的（naive）datetime对象。
    缓存过期时间等写入数据库的时间字段都使用这个值。
    """
    return datetime.now(get_app_timezone()).replace(tzinfo=None)
