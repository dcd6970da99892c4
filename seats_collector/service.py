"""
Seats Collector - サービス層

責務:
  - 取得元の切り替え（履歴ストアが設定されていればストア、なければ GitHub API）
  - スコープ未指定時の既定スコープ補完（GITHUB_API_SCOPE）
  - 取得 → 集計、チーム一覧、スナップショット保存のオーケストレーション
"""
import asyncio
import dataclasses
import logging
from datetime import date as date_type, datetime
from typing import Callable, List, Optional

import aiohttp
import asyncpg

from activity import utc_now
from aggregator import aggregate_seat_records, build_team_catalog
from client import GitHubClient
from errors import ConfigError, NoDataError, StoreError, UpstreamError
from fetcher import fetch_assigning_teams, fetch_seat_records
from github_config import GitHubConfig
from models import Scope, SeatFilter, SeatRecord, TeamReference
from repository import SeatHistoryRepository
from team_resolver import TeamMembershipResolver

logger = logging.getLogger(__name__)

# 履歴ストア問い合わせで StoreError にまとめる失敗
STORE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    ValueError,
    asyncio.TimeoutError,
)

# チーム一覧取得で NoDataError にまとめる失敗
TEAM_LIST_ERRORS = (
    StoreError,
    UpstreamError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ValueError,
)


class SeatService:
    def __init__(
        self,
        config: GitHubConfig,
        client: GitHubClient,
        repository: Optional[SeatHistoryRepository] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._config = config
        self._client = client
        self._repository = repository
        self._clock = clock

    # ─────────────────────────────────
    # 補助
    # ─────────────────────────────────
    def resolve_filter(self, seat_filter: SeatFilter) -> SeatFilter:
        """スコープ未指定なら設定の既定スコープを補った新しい条件を返す。"""
        if seat_filter.scope is not None:
            return seat_filter
        return dataclasses.replace(seat_filter, scope=self._config.default_scope())

    def _resolver(self, scope: Scope) -> Optional[TeamMembershipResolver]:
        # Enterprise スコープでもチームは組織単位なので設定の組織を使う
        organization = scope.organization or self._config.organization
        if not organization:
            return None
        return TeamMembershipResolver(
            self._client, organization, self._config.team_hierarchy
        )

    async def _query_store(self, query, seat_filter: SeatFilter):
        """履歴ストアへの問い合わせ。接続・SQL・データ破損の失敗は StoreError にまとめる。"""
        try:
            return await query(seat_filter)
        except STORE_ERRORS as e:
            logger.error(f"履歴ストア問い合わせ失敗: {e.__class__.__name__}: {e}")
            raise StoreError(str(e)) from e

    async def _load_records(self, seat_filter: SeatFilter) -> List[SeatRecord]:
        if self._repository is not None:
            records = await self._query_store(
                self._repository.find_seat_records, seat_filter
            )
        else:
            records = await fetch_seat_records(
                self._client, seat_filter.scope, self._clock()
            )
        if not records:
            raise NoDataError()
        return records

    # ─────────────────────────────────
    # シート
    # ─────────────────────────────────
    async def get_seats(self, seat_filter: SeatFilter) -> SeatRecord:
        """集計済みのシート情報を返す。"""
        seat_filter = self.resolve_filter(seat_filter)
        records = await self._load_records(seat_filter)
        return await aggregate_seat_records(
            records,
            team_filter=seat_filter.teams,
            resolver=self._resolver(seat_filter.scope),
            now=self._clock(),
        )

    async def get_seats_management(self, seat_filter: SeatFilter) -> SeatRecord:
        """get_seats と同じだが、失敗時はエラーではなく空の集計結果を返す。"""
        try:
            return await self.get_seats(seat_filter)
        except Exception as e:
            logger.warning(f"シート取得失敗のため空の結果を返却: {e.__class__.__name__}: {e}")
            return SeatRecord(seats=[], total_seats=0, total_active_seats=0)

    # ─────────────────────────────────
    # チーム一覧
    # ─────────────────────────────────
    async def get_seats_teams(self, seat_filter: SeatFilter) -> List[TeamReference]:
        """割当元チームの一覧。取得に失敗した場合は NoDataError。"""
        seat_filter = self.resolve_filter(seat_filter)
        try:
            if self._repository is not None:
                return await self._query_store(
                    self._repository.find_assigning_teams, seat_filter
                )
            teams = await fetch_assigning_teams(self._client, seat_filter.scope)
        except TEAM_LIST_ERRORS as e:
            logger.warning(f"チーム一覧取得失敗: {e.__class__.__name__}: {e}")
            raise NoDataError() from e
        return build_team_catalog(teams)

    # ─────────────────────────────────
    # スナップショット保存
    # ─────────────────────────────────
    async def save_snapshot(
        self, scope: Optional[Scope] = None, day: Optional[date_type] = None
    ) -> List[SeatRecord]:
        """GitHub API から全ページを取得し、指定日（既定は当日）の履歴として保存する。"""
        if self._repository is None:
            raise ConfigError("DATABASE_URL is not set")
        scope = scope or self._config.default_scope()
        records = await fetch_seat_records(self._client, scope, self._clock())
        day_string = (day or self._clock().date()).strftime("%Y-%m-%d")
        records = [dataclasses.replace(r, date=day_string) for r in records]
        await self._repository.save_snapshot(records)
        logger.info(f"スナップショット保存: {scope.name} {day_string} {len(records)}ページ")
        return records
