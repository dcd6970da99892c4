"""
Seats Collector - 例外定義

  - UpstreamError: GitHub API が非2xxを返した（部分結果は返さない）
  - NoDataError: 履歴ストア/APIから対象データが得られなかった
  - StoreError: 履歴ストアへの問い合わせ自体が失敗した
  - ConfigError: 必須の環境変数が不足している
"""
from typing import Optional


class SeatsError(Exception):
    """Seats Collector の全例外の基底クラス"""


class ConfigError(SeatsError):
    pass


class UpstreamError(SeatsError):
    def __init__(
        self,
        status: int,
        scope: str,
        message: str = "",
        url: Optional[str] = None,
    ):
        self.status = status
        self.scope = scope
        self.message = message
        self.url = url
        super().__init__(f"[{status}] {scope}: {message or 'request failed'}")


class NoDataError(SeatsError):
    def __init__(self, message: str = "No data found"):
        super().__init__(message)


class StoreError(SeatsError):
    pass
