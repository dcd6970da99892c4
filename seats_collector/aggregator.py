"""
Seats Collector - 集計層

責務:
  - 複数ページ（または複数スナップショット）のシート情報を1件に集約
  - チーム絞り込み → login による重複排除 → 件数の再計算
  - シート割当元チームの一覧化（重複排除 + 名前順ソート）

入力の SeatRecord は変更せず、常に新しい SeatRecord を返す。
"""
import dataclasses
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from activity import count_active_seats, utc_now
from models import SeatAssignment, SeatRecord, TeamReference
from team_resolver import TeamMembershipResolver, filter_seats_by_team

logger = logging.getLogger(__name__)


def dedupe_seats(seats: Iterable[SeatAssignment]) -> List[SeatAssignment]:
    """assignee.login で重複排除する。先に出現したシートを残す。"""
    unique: Dict[str, SeatAssignment] = {}
    for seat in seats:
        if seat.login not in unique:
            unique[seat.login] = seat
    return list(unique.values())


async def aggregate_seat_records(
    records: Sequence[SeatRecord],
    team_filter: Optional[Sequence[str]] = None,
    resolver: Optional[TeamMembershipResolver] = None,
    now: Optional[datetime] = None,
) -> SeatRecord:
    """
    SeatRecord 群を1件の集計結果にまとめる。

    - 0件: シート0・件数0
    - 1件: チーム絞り込み後に件数を再計算したコピー
    - 複数件: 全シートを入力順に平坦化 → 絞り込み → 重複排除 → 件数再計算。
      スコープ・page・date・last_update・id は先頭レコードのもの、
      has_next_page は常に False
    """
    now = now or utc_now()

    if not records:
        return SeatRecord(seats=[], total_seats=0, total_active_seats=0)

    first = records[0]
    # total_active_seats を持たない旧データとの互換
    if first.total_active_seats is None:
        first = dataclasses.replace(
            first, total_active_seats=count_active_seats(first.seats, now)
        )

    if len(records) == 1:
        seats = list(first.seats)
        if team_filter:
            seats = await filter_seats_by_team(seats, team_filter, resolver)
        return dataclasses.replace(
            first,
            seats=seats,
            total_seats=len(seats),
            total_active_seats=count_active_seats(seats, now),
        )

    all_seats = [seat for record in records for seat in record.seats]
    if team_filter:
        all_seats = await filter_seats_by_team(all_seats, team_filter, resolver)
    seats = dedupe_seats(all_seats)

    logger.info(
        f"集計: {len(records)}件 → シート{len(seats)}件"
        f"{f' (チーム={list(team_filter)})' if team_filter else ''}"
    )

    return SeatRecord(
        enterprise=first.enterprise,
        organization=first.organization,
        seats=seats,
        total_seats=len(seats),
        total_active_seats=count_active_seats(seats, now),
        page=first.page,
        has_next_page=False,
        last_update=first.last_update,
        date=first.date,
        id=first.id,
    )


def build_team_catalog(teams: Iterable[TeamReference]) -> List[TeamReference]:
    """
    チーム一覧を重複排除し、名前順（大文字小文字を区別、空名は先頭）に並べる。
    両方に id があれば id で、そうでなければ name で同一判定する。
    """
    unique: List[TeamReference] = []
    for team in teams:
        duplicate = any(
            (seen.id == team.id) if (seen.id is not None and team.id is not None)
            else (seen.name == team.name)
            for seen in unique
        )
        if not duplicate:
            unique.append(team)
    return sorted(unique, key=lambda t: t.name or "")
