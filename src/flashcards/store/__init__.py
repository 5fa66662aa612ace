from __future__ import annotations

from ..config import Settings
from ..logging import logger
from .base import ReviewTransaction, Store
from .memory import InMemoryStore
from .sqlite import SQLiteStore


def create_store(config: Settings) -> Store:
    """設定に従ってストアを構築する。

    モジュールレベルの共有ハンドルは持たず、呼び出し側（create_app 等）が
    生成したストアを明示的に受け渡す。
    """

    if config.store_backend == "memory":
        logger.info("store_initialized", backend="memory")
        return InMemoryStore()
    logger.info("store_initialized", backend="sqlite", db_path=config.flashcards_db_path)
    return SQLiteStore(config.flashcards_db_path, timeout=config.sqlite_timeout_seconds)


__all__ = [
    "InMemoryStore",
    "ReviewTransaction",
    "SQLiteStore",
    "Store",
    "create_store",
]
