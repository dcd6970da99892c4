"""
Seats Collector - チーム所属解決

責務:
  - シートを指定チームで絞り込む（2段階）
      1) assigning_team.name による直接一致
      2) 1) で1件も一致しない場合のみ、チームメンバーAPIで所属ユーザーを解決
  - 子チーム（1階層のみ）のメンバーも親チームに含める

2) の途中で起きたAPI失敗はログに残して「メンバー0人」として扱い、処理を続行する。
どちらでも見つからない場合は空リストを返す（絞り込みを素通りさせない）。
"""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Set

import aiohttp

from client import GitHubClient
from errors import UpstreamError
from models import SeatAssignment, TeamReference
from seat_parser import parse_member_logins, parse_teams

logger = logging.getLogger(__name__)

# サブ検索で吸収する失敗
# ValueError は 200 応答でもボディが JSON でない場合
LOOKUP_ERRORS = (UpstreamError, aiohttp.ClientError, asyncio.TimeoutError, ValueError)


class TeamMembershipResolver:
    """
    チーム名 → 所属ユーザーlogin集合 を解決する。

    hierarchy に親チーム名が登録されていればその子チームを使い、
    無ければチーム一覧APIから parent.name が一致するチームを子チームとみなす。
    """

    def __init__(
        self,
        client: GitHubClient,
        organization: str,
        hierarchy: Optional[Dict[str, List[str]]] = None,
    ):
        self._client = client
        self._organization = organization
        self._hierarchy = hierarchy or {}

    async def _collect_members(self, team: str, members: Set[str]) -> None:
        """チームの直属メンバーを members に追加する（ページ送りあり）。"""
        url = self._client.team_members_url(self._organization, team)
        try:
            async for payload, _ in self._client.iter_pages(url, self._organization):
                members.update(parse_member_logins(payload))
        except LOOKUP_ERRORS as e:
            logger.warning(f"チームメンバー取得失敗 ({team}): {e}")

    async def _list_teams(self) -> List[TeamReference]:
        teams: List[TeamReference] = []
        url = self._client.teams_url(self._organization)
        try:
            async for payload, _ in self._client.iter_pages(url, self._organization):
                teams.extend(parse_teams(payload))
        except LOOKUP_ERRORS as e:
            logger.warning(f"チーム一覧取得失敗 ({self._organization}): {e}")
            return []
        return teams

    async def resolve_members(self, team_names: Sequence[str]) -> Set[str]:
        """指定チームと、その子チームの全メンバーのlogin集合を返す。"""
        members: Set[str] = set()
        all_teams: Optional[List[TeamReference]] = None

        for team in team_names:
            await self._collect_members(team, members)

            if team in self._hierarchy:
                children = self._hierarchy[team]
            else:
                # チーム一覧は1回の解決につき1度だけ取得する
                if all_teams is None:
                    all_teams = await self._list_teams()
                children = [t.name for t in all_teams if t.parent == team]

            for child in children:
                await self._collect_members(child, members)

        logger.info(f"チーム所属解決: {list(team_names)} → {len(members)}人")
        return members


async def filter_seats_by_team(
    seats: Sequence[SeatAssignment],
    team_names: Sequence[str],
    resolver: Optional[TeamMembershipResolver] = None,
) -> List[SeatAssignment]:
    """シートを指定チームで絞り込む。"""
    requested = set(team_names)

    direct = [
        seat for seat in seats
        if seat.assigning_team and seat.assigning_team.name
        and seat.assigning_team.name in requested
    ]
    if direct:
        return direct

    if resolver is None:
        return []

    members = await resolver.resolve_members(list(team_names))
    return [seat for seat in seats if seat.login in members]
