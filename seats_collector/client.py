"""
Seats Collector - GitHub API 通信層

責務:
  - 非同期HTTP通信（aiohttp）と認証ヘッダーの付与
  - Linkヘッダーに従った逐次ページ送り（1論理取得につき同時1リクエスト）
  - 非2xx応答の UpstreamError への変換

リトライは行わない。失敗したら即座に呼び出し元へ伝える。
"""
import logging
from typing import Any, AsyncIterator, Optional, Tuple
from urllib.parse import quote

import aiohttp

from errors import UpstreamError
from github_config import GitHubConfig, PAGE_SIZE
from models import Scope
from seat_parser import parse_next_link

logger = logging.getLogger(__name__)


class GitHubClient:
    def __init__(self, session: aiohttp.ClientSession, config: GitHubConfig):
        self._session = session
        self._config = config
        self._headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {config.token}",
            "X-GitHub-Api-Version": config.version,
        }

    # ─────────────────────────────────
    # URL組み立て
    # ─────────────────────────────────
    def seats_url(self, scope: Scope) -> str:
        if scope.is_enterprise:
            path = f"/enterprises/{quote(scope.enterprise, safe='')}"
        else:
            path = f"/orgs/{quote(scope.organization, safe='')}"
        return f"{self._config.base_url}{path}/copilot/billing/seats?per_page={PAGE_SIZE}"

    def team_members_url(self, organization: str, team: str) -> str:
        return (
            f"{self._config.base_url}/orgs/{quote(organization, safe='')}"
            f"/teams/{quote(team, safe='')}/members?per_page={PAGE_SIZE}"
        )

    def teams_url(self, organization: str) -> str:
        return (
            f"{self._config.base_url}/orgs/{quote(organization, safe='')}"
            f"/teams?per_page={PAGE_SIZE}"
        )

    # ─────────────────────────────────
    # HTTP通信
    # ─────────────────────────────────
    async def get_page(self, url: str, scope_name: str) -> Tuple[Any, Optional[str]]:
        """
        1ページ取得し、(JSONボディ, 次ページURL) を返す。
        - 2xx: ボディとLinkヘッダー由来の次ページURL
        - それ以外: UpstreamError（リトライしない）
        """
        async with self._session.get(url, headers=self._headers) as resp:
            if resp.status >= 300:
                text = await resp.text()
                logger.warning(f"HTTP {resp.status}: {url}")
                raise UpstreamError(resp.status, scope_name, text[:500], url)
            payload = await resp.json(content_type=None)
            return payload, parse_next_link(resp.headers.get("Link"))

    async def iter_pages(self, url: str, scope_name: str) -> AsyncIterator[Tuple[Any, Optional[str]]]:
        """
        next リンクが無くなるまで逐次ページを取得する非同期ジェネレーター。
        各ページは前ページの応答に依存するため並列化しない。
        """
        next_url: Optional[str] = url
        while next_url:
            payload, next_url = await self.get_page(next_url, scope_name)
            yield payload, next_url
