"""
Cache相关的CRUD操作
"""

import json
import logging
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..timezone import get_now
from .orm_models import CacheData

logger = logging.getLogger(__name__)


async def get_cache(session: AsyncSession, key: str) -> Optional[Any]:
    stmt = select(CacheData.cacheValue).where(CacheData.cacheKey == key, CacheData.expiresAt > get_now())
    result = await session.execute(stmt)
    value = result.scalar_one_or_none()
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        logger.warning(f"缓存值无法解析为 JSON，已忽略: {key}")
        return None


async def set_cache(session: AsyncSession, key: str, value: Any, ttl_seconds: int, provider: Optional[str] = None):
    json_value = json.dumps(value, ensure_ascii=False)
    expires_at = get_now() + timedelta(seconds=ttl_seconds)

    dialect = session.bind.dialect.name
    values_to_insert = {"cacheProvider": provider, "cacheKey": key, "cacheValue": json_value, "expiresAt": expires_at}
    # values() 使用 ORM 属性名；excluded / inserted 按数据库列名索引
    updated_columns = ("cache_provider", "cache_value", "expires_at")

    if dialect == 'mysql':
        stmt = mysql_insert(CacheData).values(values_to_insert)
        stmt = stmt.on_duplicate_key_update({c: stmt.inserted[c] for c in updated_columns})
    elif dialect == 'postgresql':
        stmt = postgresql_insert(CacheData).values(values_to_insert)
        stmt = stmt.on_conflict_do_update(
            index_elements=['cache_key'],
            set_={c: stmt.excluded[c] for c in updated_columns}
        )
    elif dialect == 'sqlite':
        stmt = sqlite_insert(CacheData).values(values_to_insert)
        stmt = stmt.on_conflict_do_update(
            index_elements=['cache_key'],
            set_={c: stmt.excluded[c] for c in updated_columns}
        )
    else:
        raise NotImplementedError(f"缓存设置功能尚未为数据库类型 '{dialect}' 实现。")

    await session.execute(stmt)
    await session.commit()


async def clear_expired_cache(session: AsyncSession) -> int:
    result = await session.execute(delete(CacheData).where(CacheData.expiresAt <= get_now()))
    await session.commit()
    return result.rowcount
