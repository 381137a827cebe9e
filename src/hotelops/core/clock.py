"""可替换时钟

所有"当前时间"都通过 Clock 获取，测试中可用 ManualClock 精确推进时间。
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """时钟接口"""

    def now(self) -> datetime:
        """返回带时区的当前时间"""
        ...


class SystemClock:
    """真实时钟（UTC）"""

    def now(self) -> datetime:
        return datetime.now(UTC)


class ManualClock:
    """手动推进的时钟"""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(
        self,
        delta: timedelta | None = None,
        *,
        seconds: float = 0,
        minutes: float = 0,
    ) -> datetime:
        """推进时间并返回推进后的时间"""
        self._now += (delta or timedelta()) + timedelta(seconds=seconds, minutes=minutes)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value
