from abc import ABC, abstractmethod
from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

from errors import MalformedTimestamp, MalformedTimeWindow

__all__ = ["now_utc", "to_iso_utc", "parse_iso_utc", "parse_hhmm", "utc_to_user_local",
           "Clock", "SystemClock"]

def now_utc() -> datetime:
    """获取当前 UTC 时间"""
    return datetime.now(timezone.utc)

def to_iso_utc(dt: datetime) -> str:
    """格式化为 ISO-8601 UTC 字符串，例如 '2026-10-17T08:00:00.123456+00:00'"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()

def parse_iso_utc(raw: str | None) -> datetime:
    """解析 ISO-8601 时间戳为 aware UTC datetime，不带时区的按 UTC 处理"""
    if not raw or not isinstance(raw, str):
        raise MalformedTimestamp(f"空时间戳: {raw!r}")
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError as e:
        raise MalformedTimestamp(f"非法时间戳: {raw!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def parse_hhmm(raw: str | None) -> time:
    # "HH:MM"，小时 00-23
    if not raw or not isinstance(raw, str):
        raise MalformedTimeWindow(f"空时间: {raw!r}")
    try:
        return datetime.strptime(raw.strip(), "%H:%M").time()
    except ValueError as e:
        raise MalformedTimeWindow(f"非法时间: {raw!r}") from e

def utc_to_user_local(utc_dt: datetime, user_tz: str) -> datetime:
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=timezone.utc)
    return utc_dt.astimezone(ZoneInfo(user_tz))


class Clock(ABC):
    """时间来源。调度核心所有“现在”的读取都经过这里，测试时可替换"""

    @abstractmethod
    def now_utc(self) -> datetime:
        pass

    @abstractmethod
    def now_local(self) -> datetime:
        pass


class SystemClock(Clock):
    def __init__(self, user_tz: str = "UTC") -> None:
        self.user_tz = user_tz

    def now_utc(self) -> datetime:
        return now_utc()

    def now_local(self) -> datetime:
        return utc_to_user_local(self.now_utc(), self.user_tz)
