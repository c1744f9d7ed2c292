"""提醒的增删改查入口

所有修改在写入存储后都会广播事件并调用 scheduler.request_refresh()，
调度循环会立即醒来并基于最新数据重新计算。
"""

import re

import storage.reminder as reminder_storage
from config.settings import MAX_INTERVAL_MINUTES, SOUND_OPTIONS
from datamodel import Reminder, ReminderDraft
from errors import InvalidReminder, ReminderNotFound
from events import bus, E
from logger import logger
from world.reminder import SchedulerHandle

__all__ = ["ReminderService", "validate_draft"]

_HHMM_RE = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


def validate_draft(draft: ReminderDraft) -> ReminderDraft:
    """校验并规范化创建/更新请求，非法时抛出 InvalidReminder"""
    name = (draft.name or "").strip()
    if not name:
        raise InvalidReminder("name 不能为空")
    if isinstance(draft.interval_minutes, bool) or not isinstance(draft.interval_minutes, int):
        raise InvalidReminder("interval_minutes 必须为整数")
    if draft.interval_minutes < 1:
        raise InvalidReminder("interval_minutes 必须大于 0")
    if draft.interval_minutes > MAX_INTERVAL_MINUTES:
        raise InvalidReminder(f"interval_minutes 不能超过 {MAX_INTERVAL_MINUTES}")

    start, end = draft.active_start_time, draft.active_end_time
    if (start is None) != (end is None):
        raise InvalidReminder("active_start_time 与 active_end_time 必须同时设置或同时为空")
    for value in (start, end):
        if value is not None and not _HHMM_RE.match(value):
            raise InvalidReminder(f"时间格式必须为 HH:MM: {value}")

    days = draft.active_days
    if days is not None:
        if any(isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6 for d in days):
            raise InvalidReminder(f"active_days 只能包含 0-6: {days}")
        days = sorted(set(days))

    sound = (draft.sound or "").strip().lower()
    if sound not in SOUND_OPTIONS:
        raise InvalidReminder(f"不支持的提示音: {draft.sound}")

    message = draft.message.strip() if draft.message else None

    return ReminderDraft(
        name=name,
        interval_minutes=draft.interval_minutes,
        message=message or None,
        enabled=bool(draft.enabled),
        active_start_time=start,
        active_end_time=end,
        active_days=days,
        sound=sound,
    )


class ReminderService:
    def __init__(self, scheduler: SchedulerHandle, store=reminder_storage) -> None:
        self.scheduler = scheduler
        self.store = store

    def _refresh(self) -> None:
        if not self.scheduler.request_refresh():
            logger.debug("调度循环未运行或信号已在队列中，跳过刷新")

    async def list_reminders(self) -> list[Reminder]:
        return await self.store.get_all_reminders()

    async def get_reminder(self, reminder_id: int) -> Reminder:
        reminder = await self.store.get_reminder_by_id(reminder_id)
        if reminder is None:
            raise ReminderNotFound(reminder_id)
        return reminder

    async def create_reminder(self, draft: ReminderDraft) -> Reminder:
        draft = validate_draft(draft)
        reminder = await self.store.create_reminder(draft)
        logger.info(f"创建提醒: id={reminder.id}, name={reminder.name}, interval_minutes={reminder.interval_minutes}")
        bus.emit(E.REMINDER_CREATED, reminder=reminder)
        self._refresh()
        return reminder

    async def update_reminder(self, reminder_id: int, draft: ReminderDraft) -> Reminder:
        draft = validate_draft(draft)
        reminder = await self.store.update_reminder(reminder_id, draft)
        if reminder is None:
            raise ReminderNotFound(reminder_id)
        logger.info(f"更新提醒: id={reminder.id}, name={reminder.name}")
        bus.emit(E.REMINDER_UPDATED, reminder=reminder)
        self._refresh()
        return reminder

    async def delete_reminder(self, reminder_id: int) -> None:
        if not await self.store.delete_reminder(reminder_id):
            raise ReminderNotFound(reminder_id)
        logger.info(f"删除提醒: id={reminder_id}")
        bus.emit(E.REMINDER_DELETED, reminder_id=reminder_id)
        self._refresh()

    async def toggle_reminder(self, reminder_id: int, enabled: bool) -> Reminder:
        reminder = await self.store.toggle_reminder(reminder_id, enabled)
        if reminder is None:
            raise ReminderNotFound(reminder_id)
        logger.info(f"{'启用' if enabled else '禁用'}提醒: id={reminder_id}")
        bus.emit(E.REMINDER_TOGGLED, reminder=reminder)
        self._refresh()
        return reminder

    async def dismiss_reminder(self, reminder_id: int) -> None:
        """确认提醒：以当前时间重置 last_triggered，下一次在一个完整间隔后"""
        await self.get_reminder(reminder_id)
        await self.store.record_trigger(reminder_id)
        logger.info(f"确认提醒: id={reminder_id}")
        bus.emit(E.REMINDER_DISMISSED, reminder_id=reminder_id)
        self._refresh()

    async def snooze_reminder(self, reminder_id: int, minutes: int) -> None:
        # 与 dismiss 相同，按重置 last_triggered 处理，minutes 不影响下次触发时间
        await self.get_reminder(reminder_id)
        await self.store.record_trigger(reminder_id)
        logger.info(f"稍后提醒: id={reminder_id}, minutes={minutes}")
        bus.emit(E.REMINDER_SNOOZED, reminder_id=reminder_id, minutes=minutes)
        self._refresh()
