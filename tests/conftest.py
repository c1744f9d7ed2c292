"""测试公共夹具：可控时钟、内存存储、记录型展示层和临时数据库"""

import asyncio
import dataclasses
import time
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio

import storage.db_config as db_config
from config.settings import SchedulerSettings
from datamodel import Reminder, ReminderDraft
from errors import PresentationError, StoreError
from utils import Clock, to_iso_utc

BASE_TIME = datetime(2026, 10, 14, 2, 0, tzinfo=timezone.utc)  # 周三 10:00 Asia/Shanghai


class FixedClock(Clock):
    def __init__(self, now: datetime = BASE_TIME, user_tz: str = "UTC") -> None:
        self.now = now
        self.user_tz = user_tz

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)

    def now_utc(self) -> datetime:
        return self.now

    def now_local(self) -> datetime:
        return self.now.astimezone(ZoneInfo(self.user_tz))


class MonotonicClock(Clock):
    """从 start 开始随真实单调时间前进，配合真实的 asyncio 等待使用"""

    def __init__(self, start: datetime = BASE_TIME, user_tz: str = "UTC") -> None:
        self.start = start
        self.user_tz = user_tz
        self._t0 = time.monotonic()

    def now_utc(self) -> datetime:
        return self.start + timedelta(seconds=time.monotonic() - self._t0)

    def now_local(self) -> datetime:
        return self.now_utc().astimezone(ZoneInfo(self.user_tz))


class InMemoryStore:
    """与 storage.reminder 接口一致的内存实现，并记录调用与注入故障"""

    def __init__(self, reminders: list[Reminder] | None = None) -> None:
        self.reminders: dict[int, Reminder] = {r.id: r for r in reminders or []}
        self.list_calls = 0
        self.triggers: list[tuple[int, datetime]] = []
        self.fail_list_times = 0
        self.fail_record = False

    async def list_enabled(self) -> list[Reminder]:
        self.list_calls += 1
        if self.fail_list_times > 0:
            self.fail_list_times -= 1
            raise StoreError("database is locked")
        return [dataclasses.replace(r) for r in sorted(self.reminders.values(), key=lambda r: r.id) if r.enabled]

    async def record_trigger(self, reminder_id: int, at: datetime | None = None) -> None:
        at = at or datetime.now(timezone.utc)
        self.triggers.append((reminder_id, at))
        if self.fail_record:
            raise StoreError("disk I/O error")
        if reminder_id in self.reminders:
            self.reminders[reminder_id].last_triggered = to_iso_utc(at)

    async def get_all_reminders(self) -> list[Reminder]:
        return [dataclasses.replace(r) for r in sorted(self.reminders.values(), key=lambda r: -r.id)]

    async def get_reminder_by_id(self, reminder_id: int) -> Reminder | None:
        reminder = self.reminders.get(reminder_id)
        return dataclasses.replace(reminder) if reminder is not None else None

    async def create_reminder(self, draft: ReminderDraft) -> Reminder:
        reminder_id = max(self.reminders, default=0) + 1
        reminder = Reminder(id=reminder_id, created_at=to_iso_utc(BASE_TIME), **dataclasses.asdict(draft))
        self.reminders[reminder_id] = reminder
        return dataclasses.replace(reminder)

    async def update_reminder(self, reminder_id: int, draft: ReminderDraft) -> Reminder | None:
        if reminder_id not in self.reminders:
            return None
        self.reminders[reminder_id] = dataclasses.replace(self.reminders[reminder_id], **dataclasses.asdict(draft))
        return dataclasses.replace(self.reminders[reminder_id])

    async def delete_reminder(self, reminder_id: int) -> bool:
        return self.reminders.pop(reminder_id, None) is not None

    async def toggle_reminder(self, reminder_id: int, enabled: bool) -> Reminder | None:
        if reminder_id not in self.reminders:
            return None
        self.reminders[reminder_id].enabled = enabled
        return dataclasses.replace(self.reminders[reminder_id])


class RecordingSink:
    def __init__(self, fail: bool = False) -> None:
        self.fired: list[Reminder] = []
        self.fail = fail

    def on_reminder_due(self, reminder: Reminder) -> None:
        self.fired.append(reminder)
        if self.fail:
            raise PresentationError("popup window could not be created")


class RecordingHandle:
    """只记录刷新请求的调度器句柄替身"""

    def __init__(self) -> None:
        self.refresh_requests = 0

    def request_refresh(self) -> bool:
        self.refresh_requests += 1
        return True


def make_reminder(reminder_id: int = 1, **overrides) -> Reminder:
    fields = {
        "id": reminder_id,
        "name": f"reminder-{reminder_id}",
        "interval_minutes": 1,
        "created_at": to_iso_utc(BASE_TIME),
    }
    fields.update(overrides)
    return Reminder(**fields)


@pytest.fixture
def fast_settings() -> SchedulerSettings:
    return SchedulerSettings(
        store_retry_backoff_seconds=0.05,
        max_sleep_seconds=0.2,
        idle_sleep_seconds=0.05,
        post_fire_delay_seconds=0.01,
        control_queue_size=4,
    )


@pytest.fixture
def wait_until():
    async def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            await asyncio.sleep(interval)
        return predicate()
    return _wait_until


@pytest_asyncio.fixture
async def db(tmp_path):
    await db_config.init_db(str(tmp_path / "data" / "reminders.db"))
    try:
        yield db_config.conn
    finally:
        await db_config.close_db()
