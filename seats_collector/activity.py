"""
Seats Collector - アクティブ判定

直近30日以内（ちょうど30日前を含む）に利用履歴があるシートを「アクティブ」とする。
取得時の全ページ集計と、絞り込み後の再集計の両方で同じ判定を使うこと。
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from models import SeatAssignment

ACTIVE_WINDOW_DAYS = 30

# 秒の小数部。Python 3.10 の fromisoformat は3桁・6桁しか受け付けない
_FRACTION_PATTERN = re.compile(r"(?<=:\d\d)\.(\d+)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """ISO 8601 文字列を aware な datetime に変換する。解釈できなければ None。"""
    if not value:
        return None
    try:
        text = value.strip().replace("Z", "+00:00")
        text = _FRACTION_PATTERN.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], text, count=1)
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_active(last_activity_at: Optional[str], now: Optional[datetime] = None) -> bool:
    last_activity = parse_timestamp(last_activity_at)
    if last_activity is None:
        return False
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return last_activity >= now - timedelta(days=ACTIVE_WINDOW_DAYS)


def count_active_seats(
    seats: Iterable[SeatAssignment], now: Optional[datetime] = None
) -> int:
    now = now or utc_now()
    return sum(1 for seat in seats if is_active(seat.last_activity_at, now))
