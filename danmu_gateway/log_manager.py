import collections
import logging
from datetime import datetime
from typing import List, Optional

from .config import Settings, get_settings
from .timezone import TIME_FORMAT, get_app_timezone

# 这个双端队列将用于在内存中存储最新的日志，以供 /api/logs 接口展示
_logs_deque: collections.deque = collections.deque(maxlen=500)


class AppTimezoneFormatter(logging.Formatter):
    """使用应用时区（TZ）而不是服务器本地时区来格式化 asctime。"""

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, get_app_timezone())
        return dt.strftime(datefmt or TIME_FORMAT)


# 自定义一个日志处理器，它会将日志记录发送到我们的双端队列中
class DequeHandler(logging.Handler):
    def __init__(self, deque):
        super().__init__()
        self.deque = deque

    def emit(self, record):
        # 我们只存储格式化后的消息字符串；按时间顺序追加，/api/logs 从旧到新输出
        self.deque.append(self.format(record))


class ConsoleHandler(logging.StreamHandler):
    pass


# 一个过滤器，用于从接口日志中排除 httpx 的日志
class NoHttpxLogFilter(logging.Filter):
    def filter(self, record):
        return not record.name.startswith(("httpx", "httpcore"))


def setup_logging(settings: Optional[Settings] = None):
    """
    配置根日志记录器，使其能够将日志输出到控制台，以及一个用于 /api/logs 的内存双端队列。
    此函数应在应用启动时被调用一次；重复调用会先清理已存在的处理器。
    """
    global _logs_deque
    settings = settings or get_settings()

    if _logs_deque.maxlen != settings.log.buffer_size:
        _logs_deque = collections.deque(_logs_deque, maxlen=settings.log.buffer_size)

    # 控制台使用详细格式
    verbose_formatter = AppTimezoneFormatter(
        '[%(asctime)s] [%(name)s:%(lineno)d] [%(levelname)s] - %(message)s',
        datefmt=TIME_FORMAT
    )
    # /api/logs 使用 "[时间] 级别: 消息" 格式
    buffer_formatter = AppTimezoneFormatter('[%(asctime)s] %(levelname)s: %(message)s', datefmt=TIME_FORMAT)

    # 从配置中获取日志级别，如果无效则默认为 INFO
    log_level = getattr(logging, settings.log.level.upper(), logging.INFO)
    logger = logging.getLogger()
    logger.setLevel(log_level)

    # 清理已存在的处理器，以避免在热重载时重复添加
    for handler in list(logger.handlers):
        if isinstance(handler, (DequeHandler, ConsoleHandler)):
            logger.removeHandler(handler)

    console_handler = ConsoleHandler()
    console_handler.setFormatter(verbose_formatter)
    logger.addHandler(console_handler)

    deque_handler = DequeHandler(_logs_deque)
    deque_handler.addFilter(NoHttpxLogFilter())
    deque_handler.setFormatter(buffer_formatter)
    logger.addHandler(deque_handler)

    logging.info("日志系统已初始化，级别: %s，内存日志容量: %d", logging.getLevelName(log_level), settings.log.buffer_size)


def get_logs() -> List[str]:
    """返回为 /api/logs 存储的所有日志条目（从旧到新）。"""
    return list(_logs_deque)


def clear_logs():
    _logs_deque.clear()
