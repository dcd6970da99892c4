"""
Seats Collector - リポジトリ層

責務:
  - シート履歴テーブルに対する検索・保存の一元管理
  - page 列を持たない旧データへの互換（page 条件を外して再検索）
  - シート割当元チームの重複なし一覧

設計方針:
  - asyncpg コネクションプールから接続を取得して操作する
  - スナップショット保存はトランザクションで原子性を保証する
"""
import json
import logging
from datetime import datetime
from typing import Any, List, Tuple

import asyncpg

from aggregator import build_team_catalog
from db_config import MAX_ITEMS
from models import SeatFilter, SeatRecord, TeamReference
from seat_parser import parse_seat_list

logger = logging.getLogger(__name__)

_SEAT_COLUMNS = (
    "id, date, enterprise, organization, page, has_next_page, "
    "total_seats, total_active_seats, last_update, seats"
)


def _load_json(value: Any) -> Any:
    # asyncpg は codec 未設定だと JSONB を str で返す
    if isinstance(value, str):
        return json.loads(value)
    return value


def build_seats_query(
    seat_filter: SeatFilter, include_page: bool = True
) -> Tuple[str, List[Any]]:
    """
    検索条件から (SQL, パラメータ) を組み立てる。
    チーム指定時は seats 配列内に該当 assigning_team を含むレコードに絞る。
    """
    clauses = ["date = $1"]
    args: List[Any] = [seat_filter.date_string()]

    def add(expr: str, value: Any):
        args.append(value)
        clauses.append(expr.format(f"${len(args)}"))

    scope = seat_filter.scope
    if scope is not None and scope.enterprise:
        add("enterprise = {}", scope.enterprise)
    if scope is not None and scope.organization:
        add("organization = {}", scope.organization)
    if seat_filter.teams:
        add(
            "EXISTS (SELECT 1 FROM jsonb_array_elements(seats) AS seat "
            "WHERE seat->'assigning_team'->>'name' = ANY({}::text[]))",
            list(seat_filter.teams),
        )
    if include_page and seat_filter.page:
        add("page = {}", seat_filter.page)

    query = (
        f"SELECT {_SEAT_COLUMNS} FROM seats_history "
        f"WHERE {' AND '.join(clauses)} "
        f"ORDER BY page NULLS FIRST, id LIMIT {MAX_ITEMS}"
    )
    return query, args


def row_to_record(row) -> SeatRecord:
    last_update = row["last_update"]
    if isinstance(last_update, datetime):
        last_update = last_update.isoformat()
    return SeatRecord(
        id=row["id"],
        date=row["date"],
        enterprise=row["enterprise"],
        organization=row["organization"],
        page=row["page"] or 1,
        has_next_page=bool(row["has_next_page"]),
        total_seats=row["total_seats"] or 0,
        total_active_seats=row["total_active_seats"],
        last_update=last_update,
        seats=parse_seat_list(_load_json(row["seats"])),
    )


class SeatHistoryRepository:
    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    # ─────────────────────────────────
    # 検索: シート履歴
    # ─────────────────────────────────
    async def find_seat_records(self, seat_filter: SeatFilter) -> List[SeatRecord]:
        """
        指定日のシート履歴を返す。
        page 指定で0件の場合、page 列の無い旧データ向けに条件を外して再検索する。
        """
        query, args = build_seats_query(seat_filter)
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
            if not rows and seat_filter.page:
                logger.info(
                    f"page={seat_filter.page} で0件のため page 条件なしで再検索"
                )
                query, args = build_seats_query(seat_filter, include_page=False)
                rows = await conn.fetch(query, *args)
        return [row_to_record(row) for row in rows]

    # ─────────────────────────────────
    # 検索: 割当元チーム
    # ─────────────────────────────────
    async def find_assigning_teams(self, seat_filter: SeatFilter) -> List[TeamReference]:
        clauses = [
            "jsonb_typeof(seat->'assigning_team') = 'object'",
            "c.date = $1",
        ]
        args: List[Any] = [seat_filter.date_string()]
        scope = seat_filter.scope
        if scope is not None and scope.enterprise:
            args.append(scope.enterprise)
            clauses.append(f"c.enterprise = ${len(args)}")
        if scope is not None and scope.organization:
            args.append(scope.organization)
            clauses.append(f"c.organization = ${len(args)}")

        query = (
            "SELECT DISTINCT seat->'assigning_team' AS team "
            "FROM seats_history AS c, jsonb_array_elements(c.seats) AS seat "
            f"WHERE {' AND '.join(clauses)}"
        )
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
        return build_team_catalog(
            TeamReference.from_dict(_load_json(row["team"])) for row in rows
        )

    # ─────────────────────────────────
    # UPSERT: スナップショット
    # ─────────────────────────────────
    async def save_seat_record(self, conn: asyncpg.Connection, record: SeatRecord):
        """
        1ページ分のシート情報をUPSERTする。
        id が空なら (date, スコープ, page) から決定的に採番する。
        """
        record_id = record.id or (
            f"{record.date}-{record.enterprise or record.organization}-{record.page}"
        )
        await conn.execute(
            '''
            INSERT INTO seats_history (
                id, date, enterprise, organization, page, has_next_page,
                total_seats, total_active_seats, last_update, seats
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, NOW(), $9::jsonb)
            ON CONFLICT(id) DO UPDATE SET
                has_next_page      = EXCLUDED.has_next_page,
                total_seats        = EXCLUDED.total_seats,
                total_active_seats = EXCLUDED.total_active_seats,
                last_update        = NOW(),
                seats              = EXCLUDED.seats
            ''',
            record_id,
            record.date,
            record.enterprise,
            record.organization,
            record.page,
            record.has_next_page,
            record.total_seats,
            record.total_active_seats,
            json.dumps([s.to_dict() for s in record.seats]),
        )

    async def save_snapshot(self, records: List[SeatRecord]):
        """1日分の全ページを単一トランザクションで保存する。"""
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                for record in records:
                    await self.save_seat_record(conn, record)
