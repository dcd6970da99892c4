"""
Seats Collector - シート取得層

責務:
  - スコープ（Enterprise / Organization）の全シートをページ送りで取得
  - 1往復 = 1 SeatRecord（page は1始まりの連番）
  - 全ページ取得後、total_active_seats を全ページ合計のアクティブ数で上書き
  - シート割当元チームの取得（見つからなければ組織のチーム一覧で代替）

途中のページで失敗した場合は UpstreamError を送出し、取得済みページは破棄する。
"""
import logging
from datetime import datetime
from typing import AsyncIterator, List, Optional

from activity import count_active_seats, utc_now
from client import GitHubClient
from models import Scope, SeatRecord, TeamReference
from seat_parser import parse_assigning_teams, parse_seat_page, parse_teams
from team_resolver import LOOKUP_ERRORS

logger = logging.getLogger(__name__)


async def iter_seat_pages(client: GitHubClient, scope: Scope) -> AsyncIterator[SeatRecord]:
    """スコープのシート一覧を1ページずつ SeatRecord として返す。"""
    page = 1
    async for payload, next_url in client.iter_pages(client.seats_url(scope), scope.name):
        seats, total_seats = parse_seat_page(payload)
        logger.info(
            f"シート取得: {scope.name} p{page} {len(seats)}件"
            f"{' | 次ページあり' if next_url else ' | 最終ページ'}"
        )
        yield SeatRecord.for_scope(
            scope,
            seats=seats,
            total_seats=total_seats,
            total_active_seats=0,
            page=page,
            has_next_page=bool(next_url),
        )
        page += 1


async def fetch_seat_records(
    client: GitHubClient,
    scope: Scope,
    now: Optional[datetime] = None,
) -> List[SeatRecord]:
    """全ページを取得し、各ページの total_active_seats を全体のアクティブ数に揃える。"""
    records = [record async for record in iter_seat_pages(client, scope)]

    active = count_active_seats(
        (seat for record in records for seat in record.seats), now or utc_now()
    )
    for record in records:
        record.total_active_seats = active

    logger.info(f"シート取得完了: {scope.name} {len(records)}ページ | アクティブ={active}")
    return records


async def fetch_assigning_teams(client: GitHubClient, scope: Scope) -> List[TeamReference]:
    """
    シート一覧から assigning_team を収集する。
    1件も無い場合は組織のチーム一覧で代替する（Enterpriseは代替なし）。
    """
    teams: List[TeamReference] = []
    async for payload, _ in client.iter_pages(client.seats_url(scope), scope.name):
        teams.extend(parse_assigning_teams(payload))

    if teams or scope.is_enterprise:
        return teams

    url = client.teams_url(scope.organization)
    try:
        async for payload, _ in client.iter_pages(url, scope.name):
            teams.extend(parse_teams(payload))
    except LOOKUP_ERRORS as e:
        logger.warning(f"チーム一覧取得失敗 ({scope.organization}): {e}")
    return teams
