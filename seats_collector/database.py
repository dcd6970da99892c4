"""
Seats Collector - データベース初期化・テーブル定義

責務:
  - シート履歴（日次スナップショット）テーブルの生成
"""
import asyncpg


async def init_db(pool: asyncpg.Pool):
    """データベースのテーブルを初期化する。"""
    async with pool.acquire() as conn:
        async with conn.transaction():
            # ══════════════════════════════════════
            # 1. シート履歴テーブル
            #    1スナップショット日 × 1スコープ × 1ページ = 1レコード
            #    page / total_active_seats は旧データでは NULL
            # ══════════════════════════════════════
            await conn.execute('''
                CREATE TABLE IF NOT EXISTS seats_history (
                    id                  TEXT PRIMARY KEY,
                    date                TEXT    NOT NULL,
                    enterprise          TEXT,
                    organization        TEXT,
                    page                INTEGER,
                    has_next_page       BOOLEAN NOT NULL DEFAULT FALSE,
                    total_seats         INTEGER NOT NULL DEFAULT 0,
                    total_active_seats  INTEGER,
                    last_update         TIMESTAMPTZ DEFAULT NOW(),
                    seats               JSONB   NOT NULL DEFAULT '[]'::jsonb,
                    CHECK (enterprise IS NULL OR organization IS NULL)
                )
            ''')

            # ══════════════════════════════════════
            # 2. インデックス（日付 + スコープでの検索）
            # ══════════════════════════════════════
            await conn.execute('''
                CREATE INDEX IF NOT EXISTS idx_seats_history_org
                    ON seats_history(date, organization)
            ''')
            await conn.execute('''
                CREATE INDEX IF NOT EXISTS idx_seats_history_ent
                    ON seats_history(date, enterprise)
            ''')
