from .comment_cache import SqlCommentCache
from .database import close_db_engine, create_db_engine_and_session

__all__ = ['SqlCommentCache', 'create_db_engine_and_session', 'close_db_engine']
