import logging
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .orm_models import Base

# 使用模块级日志记录器
logger = logging.getLogger(__name__)


def _engine_args(db_url: str) -> dict:
    args = {"echo": False}
    # SQLite 不支持连接池参数
    if not db_url.startswith("sqlite"):
        args.update({"pool_recycle": 3600, "pool_size": 10, "max_overflow": 20, "pool_timeout": 30})
    return args


async def create_db_engine_and_session(db_url: str) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """创建数据库引擎和会话工厂，并确保缓存表存在。"""
    engine = create_async_engine(db_url, **_engine_args(db_url))
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"数据库引擎和会话工厂创建成功 ({engine.url.get_backend_name()})。")
    return engine, session_factory


async def close_db_engine(engine: AsyncEngine):
    """关闭数据库引擎"""
    await engine.dispose()
    logger.info("数据库引擎已关闭。")
