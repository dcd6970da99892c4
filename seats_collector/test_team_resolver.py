"""
チーム所属解決テスト

検証項目:
  1. assigning_team で一致した場合、メンバーAPIを一切呼ばない
  2. 一致しない場合、チームメンバー + 子チームメンバーで絞り込む
  3. 設定された親子関係はチーム一覧APIより優先される
  4. API失敗はログのみで吸収され、他のチームの解決は続行される
  5. 全て失敗した場合は空リスト（未絞り込みにしない）
  6. 200 応答でもボディが JSON でない場合は失敗として吸収される
"""
import sys
sys.path.insert(0, '.')

import asyncio

import aiohttp
from aiohttp import web
from aiohttp import test_utils

from client import GitHubClient
from errors import UpstreamError
from github_config import GitHubConfig
from models import Assignee, SeatAssignment, TeamReference
from team_resolver import TeamMembershipResolver, filter_seats_by_team

passed = 0
failed = 0


def run_test(name, func):
    global passed, failed
    try:
        func()
        passed += 1
        print(f"  ✅ {name}")
    except AssertionError as e:
        failed += 1
        print(f"  ❌ {name}: {e}")
    except Exception as e:
        failed += 1
        print(f"  ❌ {name}: 例外発生 {e.__class__.__name__}: {e}")


class FakeGitHub:
    """
    GitHubClient の代用。routes は URL → ページ（JSONボディ）のリスト。
    ページの代わりに例外を置くとそのページで失敗する。未登録URLは404。
    """

    def __init__(self, routes):
        self.routes = routes
        self.requested = []

    def team_members_url(self, organization, team):
        return f"members:{team}"

    def teams_url(self, organization):
        return f"teams:{organization}"

    async def iter_pages(self, url, scope_name):
        self.requested.append(url)
        if url not in self.routes:
            raise UpstreamError(404, scope_name, "Not Found", url)
        pages = self.routes[url]
        for i, payload in enumerate(pages):
            if isinstance(payload, Exception):
                raise payload
            next_url = f"{url}?page={i + 2}" if i + 1 < len(pages) else None
            yield payload, next_url


def _seat(login, team=None):
    return SeatAssignment(
        assignee=Assignee(login=login),
        assigning_team=TeamReference(name=team) if team else None,
    )


SEATS = [_seat("alice"), _seat("bob"), _seat("carol"), _seat("dave")]


# ═══════════════════════════════════════
# 1. 直接一致（第1段階）
# ═══════════════════════════════════════
def test_direct_match_skips_lookup():
    """assigning_team が一致すればメンバーAPIは呼ばれない"""
    github = FakeGitHub({"members:X": [[{"login": "bob"}]]})
    resolver = TeamMembershipResolver(github, "acme")
    seats = [_seat("alice", "X"), _seat("bob", "Y"), _seat("carol")]
    result = asyncio.run(filter_seats_by_team(seats, ["X"], resolver))
    assert [s.login for s in result] == ["alice"]
    assert github.requested == []

def test_direct_match_multiple_teams():
    seats = [_seat("alice", "X"), _seat("bob", "Y"), _seat("carol", "Z")]
    result = asyncio.run(filter_seats_by_team(seats, ["X", "Z"]))
    assert [s.login for s in result] == ["alice", "carol"]


# ═══════════════════════════════════════
# 2. メンバーAPIによる解決（第2段階）
# ═══════════════════════════════════════
def test_fallback_members_and_children():
    """チーム直属 + 子チーム（チーム一覧の parent.name）のメンバー"""
    github = FakeGitHub({
        "members:eng": [[{"login": "alice"}], [{"login": "bob"}]],
        "members:platform": [[{"login": "carol"}]],
        "members:design": [[{"login": "dave"}]],
        "teams:acme": [[
            {"id": 1, "name": "eng", "parent": None},
            {"id": 2, "name": "platform", "parent": {"name": "eng"}},
            {"id": 3, "name": "design", "parent": {"name": "product"}},
        ]],
    })
    resolver = TeamMembershipResolver(github, "acme")
    result = asyncio.run(filter_seats_by_team(SEATS, ["eng"], resolver))
    assert [s.login for s in result] == ["alice", "bob", "carol"]
    assert "members:design" not in github.requested

def test_configured_hierarchy():
    """設定済みの親チームはチーム一覧APIを使わずに子チームを解決する"""
    github = FakeGitHub({
        "members:Birdeye_team": [[]],
        "members:Insights_team": [[{"login": "alice"}]],
        "members:labs_team": [[{"login": "dave"}]],
    })
    resolver = TeamMembershipResolver(
        github, "acme", {"Birdeye_team": ["Insights_team", "labs_team"]}
    )
    result = asyncio.run(filter_seats_by_team(SEATS, ["Birdeye_team"], resolver))
    assert [s.login for s in result] == ["alice", "dave"]
    assert "teams:acme" not in github.requested

def test_team_listing_fetched_once():
    """複数チーム指定でもチーム一覧は1回だけ取得する"""
    github = FakeGitHub({
        "members:a": [[{"login": "alice"}]],
        "members:b": [[{"login": "bob"}]],
        "teams:acme": [[]],
    })
    resolver = TeamMembershipResolver(github, "acme")
    members = asyncio.run(resolver.resolve_members(["a", "b"]))
    assert members == {"alice", "bob"}
    assert github.requested.count("teams:acme") == 1


# ═══════════════════════════════════════
# 3. 失敗時の扱い
# ═══════════════════════════════════════
def test_lookup_failure_absorbed():
    """1チームの失敗は吸収され、他チームの解決は続く"""
    github = FakeGitHub({
        "members:good": [[{"login": "carol"}]],
        "teams:acme": [[]],
    })
    resolver = TeamMembershipResolver(github, "acme")
    result = asyncio.run(filter_seats_by_team(SEATS, ["missing", "good"], resolver))
    assert [s.login for s in result] == ["carol"]

def test_failure_on_later_page_keeps_earlier_members():
    """2ページ目で失敗しても1ページ目のメンバーは残る"""
    github = FakeGitHub({
        "members:eng": [[{"login": "alice"}], UpstreamError(502, "acme", "Bad Gateway")],
        "teams:acme": [UpstreamError(500, "acme")],
    })
    resolver = TeamMembershipResolver(github, "acme")
    result = asyncio.run(filter_seats_by_team(SEATS, ["eng"], resolver))
    assert [s.login for s in result] == ["alice"]

def test_all_lookups_fail_returns_empty():
    """全ての解決に失敗しても未絞り込みのリストは返さない"""
    github = FakeGitHub({})
    resolver = TeamMembershipResolver(github, "acme")
    result = asyncio.run(filter_seats_by_team(SEATS, ["ghost"], resolver))
    assert result == []
    assert "members:ghost" in github.requested

def test_no_resolver_returns_empty():
    result = asyncio.run(filter_seats_by_team(SEATS, ["ghost"]))
    assert result == []

def test_non_json_body_absorbed():
    """200 でもボディが JSON でなければ「メンバー0人」扱い"""
    app = web.Application()

    async def html(request):
        return web.Response(text="<html>oops</html>", content_type="text/html")

    app.router.add_get("/orgs/{org}/teams/{team}/members", html)
    app.router.add_get("/orgs/{org}/teams", html)

    async def run():
        async with test_utils.TestServer(app) as server:
            base_url = str(server.make_url("/")).rstrip("/")
            config = GitHubConfig(token="test-token", organization="acme", base_url=base_url)
            async with aiohttp.ClientSession() as session:
                resolver = TeamMembershipResolver(GitHubClient(session, config), "acme")
                return await filter_seats_by_team(SEATS, ["X"], resolver)

    assert asyncio.run(run()) == []


if __name__ == '__main__':
    sections = [
        ("直接一致", [
            ("メンバーAPIを呼ばない", test_direct_match_skips_lookup),
            ("複数チーム", test_direct_match_multiple_teams),
        ]),
        ("メンバーAPIによる解決", [
            ("直属 + 子チーム", test_fallback_members_and_children),
            ("設定済みの親子関係", test_configured_hierarchy),
            ("チーム一覧は1回", test_team_listing_fetched_once),
        ]),
        ("失敗時", [
            ("1チーム失敗", test_lookup_failure_absorbed),
            ("途中ページ失敗", test_failure_on_later_page_keeps_earlier_members),
            ("全失敗 → 空", test_all_lookups_fail_returns_empty),
            ("解決手段なし → 空", test_no_resolver_returns_empty),
            ("JSON以外の応答", test_non_json_body_absorbed),
        ]),
    ]

    for section_name, tests in sections:
        print(f"\n[{section_name}]")
        for test_name, test_func in tests:
            run_test(test_name, test_func)

    print(f"\n{'='*50}")
    print(f"結果: {passed} 件通過, {failed} 件失敗 / 全 {passed+failed} 件")
    if failed > 0:
        print("❌ テスト失敗あり")
        sys.exit(1)
    else:
        print("✅ 全テスト通過")
