"""
Seats Collector - データモデル定義

各Entityの責務:
  - Scope: 集計単位（Enterprise / Organization のどちらか一方）
  - TeamReference: シート割当元チーム（親チーム名を1階層まで保持）
  - Assignee: シートの割当先ユーザー
  - SeatAssignment: 1シート分の割当情報
  - SeatRecord: 1ページ分（またはスナップショット1件分）のシート情報
  - SeatFilter: シート取得時の絞り込み条件
"""
from dataclasses import dataclass, field, asdict
from datetime import date as date_type
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Scope:
    """課金単位。enterprise と organization は排他。"""
    enterprise: Optional[str] = None
    organization: Optional[str] = None

    def __post_init__(self):
        enterprise = (self.enterprise or "").strip() or None
        organization = (self.organization or "").strip() or None
        if (enterprise is None) == (organization is None):
            raise ValueError(
                "exactly one of enterprise / organization must be set"
            )
        object.__setattr__(self, "enterprise", enterprise)
        object.__setattr__(self, "organization", organization)

    @classmethod
    def for_enterprise(cls, name: str) -> "Scope":
        return cls(enterprise=name)

    @classmethod
    def for_organization(cls, name: str) -> "Scope":
        return cls(organization=name)

    @property
    def is_enterprise(self) -> bool:
        return self.enterprise is not None

    @property
    def name(self) -> str:
        return self.enterprise or self.organization


@dataclass
class TeamReference:
    """シート割当元チーム"""
    name: str
    id: Optional[int] = None
    parent: Optional[str] = None   # 親チーム名（2階層のみ）

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if self.parent is not None:
            self.parent = self.parent.strip() or None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeamReference":
        parent = data.get("parent")
        if isinstance(parent, dict):
            parent = parent.get("name")
        return cls(name=data.get("name") or "", id=data.get("id"), parent=parent)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name}
        if self.id is not None:
            data["id"] = self.id
        if self.parent is not None:
            data["parent"] = {"name": self.parent}
        return data


@dataclass
class Assignee:
    """シート割当先ユーザー"""
    login: str
    name: Optional[str] = None
    url: str = ""

    def __post_init__(self):
        if not self.login or not self.login.strip():
            raise ValueError("assignee login must not be empty")
        self.login = self.login.strip()


@dataclass
class SeatAssignment:
    """1シート分の割当情報（ISO 8601 の日時文字列はAPIの値をそのまま保持）"""
    assignee: Assignee
    organization: Optional[str] = None
    assigning_team: Optional[TeamReference] = None
    created_at: str = ""
    updated_at: str = ""
    last_activity_at: Optional[str] = None
    last_activity_editor: str = ""      # 例: "vscode/1.90.0"
    plan_type: str = ""
    pending_cancellation_date: Optional[str] = None

    @property
    def login(self) -> str:
        return self.assignee.login

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeatAssignment":
        """
        シート一覧APIの1要素、または履歴ストアに保存したJSONから生成する。
        organization は API では {"login": ...} 、保存済みデータでは文字列のことがある。
        """
        raw_assignee = data.get("assignee") or {}
        org = data.get("organization")
        if isinstance(org, dict):
            org = org.get("login")
        team = data.get("assigning_team")
        return cls(
            assignee=Assignee(
                login=raw_assignee.get("login") or "",
                name=raw_assignee.get("name"),
                url=raw_assignee.get("url") or "",
            ),
            organization=org,
            assigning_team=TeamReference.from_dict(team) if team else None,
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
            last_activity_at=data.get("last_activity_at"),
            last_activity_editor=data.get("last_activity_editor") or "",
            plan_type=data.get("plan_type") or "",
            pending_cancellation_date=data.get("pending_cancellation_date"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["assigning_team"] = (
            self.assigning_team.to_dict() if self.assigning_team else None
        )
        return data


@dataclass
class SeatRecord:
    """1ページ分のシート情報（集計後は全ページ分を1件にまとめたもの）"""
    seats: List[SeatAssignment] = field(default_factory=list)
    total_seats: int = 0
    total_active_seats: Optional[int] = None   # 旧データでは欠落
    page: int = 1
    has_next_page: bool = False
    date: str = ""                 # yyyy-MM-dd
    last_update: Optional[str] = None
    id: str = ""
    enterprise: Optional[str] = None
    organization: Optional[str] = None

    def __post_init__(self):
        if self.enterprise and self.organization:
            raise ValueError(
                f"enterprise and organization are exclusive: "
                f"{self.enterprise} / {self.organization}"
            )
        if self.page < 1:
            raise ValueError(f"page must be >= 1: {self.page}")

    @classmethod
    def for_scope(cls, scope: Scope, **kwargs) -> "SeatRecord":
        return cls(
            enterprise=scope.enterprise,
            organization=scope.organization,
            **kwargs,
        )


@dataclass
class SeatFilter:
    """シート取得条件（date省略時は当日）"""
    scope: Optional[Scope] = None
    date: Optional[date_type] = None
    teams: List[str] = field(default_factory=list)
    page: Optional[int] = None

    def __post_init__(self):
        self.teams = [t.strip() for t in self.teams if t and t.strip()]

    def date_string(self) -> str:
        return (self.date or date_type.today()).strftime("%Y-%m-%d")
