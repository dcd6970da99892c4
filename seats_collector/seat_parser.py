"""
Seats Collector - レスポンス解析層

責務:
  - Linkヘッダーからの次ページURL抽出
  - 各APIのJSONボディからモデルへの変換
  - HTTP通信やDB操作は一切行わない（疎結合）

対象エンドポイント:
  - シート一覧       (parse_seat_page, parse_seat_list)
  - チームメンバー一覧 (parse_member_logins)
  - チーム一覧       (parse_teams)
"""
import logging
import re
from typing import Any, List, Optional, Tuple

from models import SeatAssignment, TeamReference

logger = logging.getLogger(__name__)

# <https://api.github.com/...?page=2>; rel="next"
_LINK_PATTERN = re.compile(r'<([^>]+)>;\s*rel="([^"]+)"')


# ═══════════════════════════════════════
# ページネーション
# ═══════════════════════════════════════

def parse_next_link(link_header: Optional[str]) -> Optional[str]:
    """
    Linkヘッダーから rel="next" のURLを返す。
    ヘッダーが無い・壊れている場合は None（最終ページ扱い、例外は出さない）。
    """
    if not link_header or not isinstance(link_header, str):
        return None
    for link in link_header.split(","):
        match = _LINK_PATTERN.search(link)
        if match and match.group(2) == "next":
            return match.group(1)
    return None


# ═══════════════════════════════════════
# シート一覧
# ═══════════════════════════════════════

def parse_seat_list(items: Any) -> List[SeatAssignment]:
    """シートの配列を SeatAssignment のリストに変換する。変換できないシートはスキップ。"""
    seats: List[SeatAssignment] = []
    for raw in items or []:
        try:
            seats.append(SeatAssignment.from_dict(raw))
        except (ValueError, AttributeError) as e:
            # assignee.login が無いシートは重複排除キーが作れないのでスキップ
            logger.warning(f"シート解析スキップ: {e}")
    return seats


def parse_seat_page(payload: Any) -> Tuple[List[SeatAssignment], int]:
    """
    シート一覧APIのボディをパースし、以下を返す:
      1) SeatAssignment のリスト
      2) total_seats（欠落時はシート件数）
    """
    if not isinstance(payload, dict):
        return [], 0

    seats = parse_seat_list(payload.get("seats"))

    total = payload.get("total_seats")
    if not isinstance(total, int):
        total = len(seats)
    return seats, total


def parse_assigning_teams(payload: Any) -> List[TeamReference]:
    """シート一覧APIのボディから assigning_team のみを抽出する。"""
    if not isinstance(payload, dict):
        return []
    teams: List[TeamReference] = []
    for raw in payload.get("seats") or []:
        team = raw.get("assigning_team") if isinstance(raw, dict) else None
        if team:
            teams.append(TeamReference.from_dict(team))
    return teams


# ═══════════════════════════════════════
# チーム
# ═══════════════════════════════════════

def parse_member_logins(payload: Any) -> List[str]:
    """チームメンバー一覧から login を抽出する（login の無い要素は無視）。"""
    if not isinstance(payload, list):
        return []
    return [
        m["login"] for m in payload
        if isinstance(m, dict) and m.get("login")
    ]


def parse_teams(payload: Any) -> List[TeamReference]:
    """チーム一覧をパースする。"""
    if not isinstance(payload, list):
        return []
    return [TeamReference.from_dict(t) for t in payload if isinstance(t, dict)]
