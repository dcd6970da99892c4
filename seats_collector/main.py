"""
Seats Collector - CLI

責務:
  - 引数・環境変数からの取得条件の組み立て
  - HTTPセッション / DBプールの生成と解放
  - 集計結果のテーブル表示、チーム一覧表示、スナップショット保存

使い方:
  python main.py --organization my-org --team platform --team infra
  python main.py --teams
  python main.py --snapshot
"""
import argparse
import asyncio
import logging
from datetime import date as date_type
from typing import List, Optional

import aiohttp

import db_config
from client import GitHubClient
from database import init_db
from errors import SeatsError
from github_config import load_github_config
from models import Scope, SeatFilter, SeatRecord, TeamReference
from repository import SeatHistoryRepository
from service import SeatService

# ─────────────────────────────────
# 定数
# ─────────────────────────────────
REQUEST_TIMEOUT = 30             # HTTP要求タイムアウト（秒）

# ─────────────────────────────────
# ロガー
# ─────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("seats_collector")


# ═══════════════════════════════════════
# 表示
# ═══════════════════════════════════════

def format_editor_name(editor: str) -> str:
    """"vscode/1.90.0" → "vscode (1.90.0)"。バージョンが無ければそのまま。"""
    if not editor:
        return editor
    name, sep, version = editor.partition("/")
    if not sep:
        return editor
    return f"{name} ({version.split('/')[0]})"


def seat_rows(record: SeatRecord) -> List[List[str]]:
    rows = []
    for seat in record.seats:
        rows.append([
            seat.login,
            seat.assignee.name or "",
            seat.organization or "",
            seat.assigning_team.name if seat.assigning_team else "",
            seat.created_at,
            seat.last_activity_at or "",
            format_editor_name(seat.last_activity_editor),
            seat.plan_type,
            seat.pending_cancellation_date or "",
        ])
    return rows


def render_table(headers: List[str], rows: List[List[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]
    lines = ["  ".join(h.ljust(w) for h, w in zip(headers, widths))]
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        lines.append("  ".join(cell.ljust(w) for cell, w in zip(row, widths)))
    return "\n".join(lines)


def print_seats(record: SeatRecord):
    headers = [
        "User", "Name", "Organization", "Team", "Created",
        "Last Activity", "Editor", "Plan", "Pending Cancellation",
    ]
    print(render_table(headers, seat_rows(record)))
    print(
        f"\n総シート数={record.total_seats} | "
        f"アクティブ={record.total_active_seats} | "
        f"スコープ={record.enterprise or record.organization or '-'} | "
        f"日付={record.date or '-'}"
    )


def print_teams(teams: List[TeamReference]):
    rows = [[t.name, "" if t.id is None else str(t.id), t.parent or ""] for t in teams]
    print(render_table(["Team", "ID", "Parent"], rows))


# ═══════════════════════════════════════
# エントリポイント
# ═══════════════════════════════════════

async def run(args: argparse.Namespace) -> int:
    config = load_github_config()

    scope: Optional[Scope] = None
    if args.enterprise:
        scope = Scope.for_enterprise(args.enterprise)
    elif args.organization:
        scope = Scope.for_organization(args.organization)

    seat_filter = SeatFilter(
        scope=scope,
        date=date_type.fromisoformat(args.date) if args.date else None,
        teams=args.team or [],
        page=args.page,
    )

    pool = None
    if db_config.history_store_configured():
        pool = await db_config.create_pool()
        await init_db(pool)

    timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            client = GitHubClient(session, config)
            repository = SeatHistoryRepository(pool) if pool is not None else None
            service = SeatService(config, client, repository)

            if args.snapshot:
                records = await service.save_snapshot(scope, seat_filter.date)
                logger.info(f"保存完了: {len(records)}ページ")
            elif args.teams:
                print_teams(await service.get_seats_teams(seat_filter))
            else:
                print_seats(await service.get_seats(seat_filter))
    finally:
        if pool is not None:
            await pool.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="GitHub Copilot シート利用状況レポート")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--enterprise", default=None, help="Enterprise 名")
    scope.add_argument("--organization", default=None, help="Organization 名")
    parser.add_argument(
        "--team",
        action="append",
        help="チームで絞り込み（複数指定可）",
    )
    parser.add_argument("--date", default=None, help="履歴の日付 yyyy-MM-dd (省略時は当日)")
    parser.add_argument("--page", type=int, default=None, help="履歴のページ番号")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--teams", action="store_true", help="割当元チーム一覧を表示")
    mode.add_argument("--snapshot", action="store_true", help="当日分を履歴ストアへ保存")
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()

    try:
        import uvloop
        uvloop.install()
        logger.info("uvloop 有効化")
    except ImportError:
        pass

    try:
        raise SystemExit(asyncio.run(run(args)))
    except SeatsError as e:
        logger.error(f"取得失敗: {e}")
        raise SystemExit(1)
