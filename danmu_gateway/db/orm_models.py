from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, String, TEXT, TypeDecorator
from sqlalchemy.dialects.mysql import MEDIUMTEXT
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class NaiveDateTime(TypeDecorator):
    """
    自定义数据库类型，确保无论数据库驱动返回何种datetime对象，
    在应用层面我们得到的都是不带时区信息的（naive）datetime。
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            return value.replace(tzinfo=None)
        return value


class Base(DeclarativeBase):
    pass


class CacheData(Base):
    __tablename__ = "cache_data"
    cacheProvider: Mapped[Optional[str]] = mapped_column("cache_provider", String(500))
    cacheKey: Mapped[str] = mapped_column("cache_key", String(500), primary_key=True)
    cacheValue: Mapped[str] = mapped_column("cache_value", TEXT().with_variant(MEDIUMTEXT, "mysql"))
    expiresAt: Mapped[datetime] = mapped_column("expires_at", NaiveDateTime, index=True)
