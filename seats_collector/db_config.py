"""
Seats Collector - 履歴ストア接続設定

責務:
  - DB接続情報の一元管理
  - 環境変数からの設定読み込み
  - コネクションプールの生成・管理

DATABASE_URL が未設定の場合は履歴ストアを使わず、GitHub API から直接取得する。
"""
import os
from typing import Optional

import asyncpg


# ─────────────────────────────────
# 接続情報（環境変数）
# ─────────────────────────────────
DATABASE_URL: Optional[str] = os.environ.get("DATABASE_URL") or None

# コネクションプール設定
POOL_MIN_SIZE = int(os.environ.get("DB_POOL_MIN", "1"))
POOL_MAX_SIZE = int(os.environ.get("DB_POOL_MAX", "5"))

# 1クエリで取得する最大件数（日次スナップショット2年分）
MAX_ITEMS = int(os.environ.get("SEATS_HISTORY_MAX_ITEMS", str(365 * 2)))


def history_store_configured() -> bool:
    return bool(DATABASE_URL)


async def create_pool() -> asyncpg.Pool:
    """
    コネクションプールを生成して返す。

    プールは内部で複数の接続を保持し、
    acquire() で1本借りて使い終わったら自動的に返却される。
    """
    return await asyncpg.create_pool(
        DATABASE_URL,
        min_size=POOL_MIN_SIZE,
        max_size=POOL_MAX_SIZE,
    )
