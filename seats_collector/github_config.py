"""
Seats Collector - GitHub API 接続設定

責務:
  - トークン・APIバージョン・既定スコープの一元管理
  - 環境変数からの設定読み込み
  - チーム階層（親 → 子チーム）の設定解析
"""
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from errors import ConfigError
from models import Scope

# ─────────────────────────────────
# 既定値
# ─────────────────────────────────
DEFAULT_API_BASE_URL = "https://api.github.com"
DEFAULT_API_VERSION = "2022-11-28"
PAGE_SIZE = 100                      # 1リクエストあたりの取得件数（固定）


def parse_team_hierarchy(raw: Optional[str]) -> Dict[str, List[str]]:
    """
    "parent=child1,child2;parent2=child3" 形式を
    {"parent": ["child1", "child2"], "parent2": ["child3"]} に変換する。
    不正なエントリは無視する。
    """
    hierarchy: Dict[str, List[str]] = {}
    if not raw:
        return hierarchy
    for entry in raw.split(";"):
        parent, sep, children = entry.partition("=")
        parent = parent.strip()
        if not sep or not parent:
            continue
        names = [c.strip() for c in children.split(",") if c.strip()]
        if names:
            hierarchy.setdefault(parent, []).extend(names)
    return hierarchy


@dataclass
class GitHubConfig:
    token: str
    enterprise: str = ""
    organization: str = ""
    api_scope: str = "organization"          # 完全一致の "enterprise" 以外は organization 扱い
    version: str = DEFAULT_API_VERSION
    base_url: str = DEFAULT_API_BASE_URL
    team_hierarchy: Dict[str, List[str]] = field(default_factory=dict)

    def default_scope(self) -> Scope:
        """GITHUB_API_SCOPE に従って既定のスコープを返す。"""
        if self.api_scope == "enterprise":
            if not self.enterprise:
                raise ConfigError("GITHUB_ENTERPRISE is not set")
            return Scope.for_enterprise(self.enterprise)
        if not self.organization:
            raise ConfigError("GITHUB_ORGANIZATION is not set")
        return Scope.for_organization(self.organization)


def load_github_config(environ: Optional[Mapping[str, str]] = None) -> GitHubConfig:
    """環境変数から GitHubConfig を生成する。トークン未設定なら ConfigError。"""
    env = os.environ if environ is None else environ

    token = (env.get("GITHUB_TOKEN") or "").strip()
    if not token:
        raise ConfigError("GITHUB_TOKEN is not set")

    return GitHubConfig(
        token=token,
        enterprise=(env.get("GITHUB_ENTERPRISE") or "").strip(),
        organization=(env.get("GITHUB_ORGANIZATION") or "").strip(),
        api_scope=(env.get("GITHUB_API_SCOPE") or "organization").strip(),
        version=(env.get("GITHUB_API_VERSION") or DEFAULT_API_VERSION).strip(),
        base_url=(env.get("GITHUB_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/"),
        team_hierarchy=parse_team_hierarchy(env.get("TEAM_HIERARCHY")),
    )
