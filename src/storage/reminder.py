"""提醒存储

调度循环只依赖其中两个操作: list_enabled() 与 record_trigger()。
所有操作共用 db_config 中唯一的 aiosqlite 连接，由其工作线程串行执行。
"""

import json
from datetime import datetime
from functools import wraps

import aiosqlite
import storage.db_config as db_config
from datamodel import Reminder, ReminderDraft, DEFAULT_SOUND
from errors import StoreError
from logger import logger
from utils import now_utc, to_iso_utc

__all__ = [
    "get_all_reminders", "get_reminder_by_id", "list_enabled",
    "create_reminder", "update_reminder", "delete_reminder", "toggle_reminder",
    "record_trigger",
]

_COLUMNS = (
    "id, name, message, interval_minutes, enabled, active_start_time, active_end_time, "
    "active_days, sound, last_triggered, created_at"
)


def _ensure_conn():
    if db_config.conn is None:
        raise StoreError("数据库未初始化，请先调用 init_db()")


def _store_op(func):
    """把 aiosqlite 的异常统一转换为 StoreError"""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        _ensure_conn()
        try:
            return await func(*args, **kwargs)
        except aiosqlite.Error as e:
            raise StoreError(f"{func.__name__} 失败: {e}") from e
        except ValueError as e:  # aiosqlite 在连接已关闭时抛出 ValueError
            raise StoreError(f"{func.__name__} 失败: {e}") from e
    return wrapper


def _dump_days(days: list[int] | None) -> str | None:
    if days is None:
        return None
    return json.dumps(days)


def _load_days(raw: str | None) -> list[int] | None:
    if raw is None:
        return None
    try:
        days = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"active_days 无法解析，按每天处理: {raw!r}")
        return None
    if not isinstance(days, list):
        return None
    return [int(d) for d in days if isinstance(d, int) or (isinstance(d, str) and d.isdigit())]


def _row_to_reminder(row) -> Reminder:
    return Reminder(
        id=row[0],
        name=row[1],
        message=row[2],
        interval_minutes=row[3],
        enabled=bool(row[4]),
        active_start_time=row[5],
        active_end_time=row[6],
        active_days=_load_days(row[7]),
        sound=row[8] or DEFAULT_SOUND,
        last_triggered=row[9],
        created_at=row[10],
    )


@_store_op
async def get_all_reminders() -> list[Reminder]:
    """获取全部提醒，按创建时间倒序"""
    async with db_config.conn.execute(
        f"SELECT {_COLUMNS} FROM reminders ORDER BY created_at DESC, id DESC"
    ) as cursor:
        rows = await cursor.fetchall()
        return [_row_to_reminder(row) for row in rows]


@_store_op
async def get_reminder_by_id(reminder_id: int) -> Reminder | None:
    async with db_config.conn.execute(
        f"SELECT {_COLUMNS} FROM reminders WHERE id = ?",
        (reminder_id,)
    ) as cursor:
        row = await cursor.fetchone()
        return _row_to_reminder(row) if row is not None else None


@_store_op
async def list_enabled() -> list[Reminder]:
    """获取所有已启用的提醒，供调度循环使用"""
    async with db_config.conn.execute(
        f"SELECT {_COLUMNS} FROM reminders WHERE enabled = 1 ORDER BY id"
    ) as cursor:
        rows = await cursor.fetchall()
        return [_row_to_reminder(row) for row in rows]


@_store_op
async def create_reminder(draft: ReminderDraft, created_at: datetime | None = None) -> Reminder:
    created_at_str = to_iso_utc(created_at or now_utc())
    async with db_config.conn.execute(
        "INSERT INTO reminders (name, message, interval_minutes, enabled, active_start_time, active_end_time, "
        "active_days, sound, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            draft.name,
            draft.message,
            draft.interval_minutes,
            int(draft.enabled),
            draft.active_start_time,
            draft.active_end_time,
            _dump_days(draft.active_days),
            draft.sound,
            created_at_str,
        )
    ) as cursor:
        reminder_id = cursor.lastrowid
    await db_config.conn.commit()
    logger.trace(f"创建提醒: id={reminder_id}, name={draft.name}, interval_minutes={draft.interval_minutes}")
    return Reminder(
        id=reminder_id,
        name=draft.name,
        message=draft.message,
        interval_minutes=draft.interval_minutes,
        enabled=draft.enabled,
        active_start_time=draft.active_start_time,
        active_end_time=draft.active_end_time,
        active_days=draft.active_days,
        sound=draft.sound,
        last_triggered=None,
        created_at=created_at_str,
    )


@_store_op
async def update_reminder(reminder_id: int, draft: ReminderDraft) -> Reminder | None:
    """更新提醒的可编辑字段，last_triggered 与 created_at 保持不变"""
    async with db_config.conn.execute(
        "UPDATE reminders SET name = ?, message = ?, interval_minutes = ?, enabled = ?, active_start_time = ?, "
        "active_end_time = ?, active_days = ?, sound = ? WHERE id = ?",
        (
            draft.name,
            draft.message,
            draft.interval_minutes,
            int(draft.enabled),
            draft.active_start_time,
            draft.active_end_time,
            _dump_days(draft.active_days),
            draft.sound,
            reminder_id,
        )
    ) as cursor:
        updated = cursor.rowcount
    await db_config.conn.commit()
    if updated == 0:
        return None
    logger.trace(f"更新提醒: id={reminder_id}, name={draft.name}")
    return await get_reminder_by_id(reminder_id)


@_store_op
async def delete_reminder(reminder_id: int) -> bool:
    async with db_config.conn.execute(
        "DELETE FROM reminders WHERE id = ?",
        (reminder_id,)
    ) as cursor:
        deleted = cursor.rowcount
    await db_config.conn.commit()
    logger.trace(f"删除提醒: id={reminder_id}, deleted={deleted}")
    return deleted > 0


@_store_op
async def toggle_reminder(reminder_id: int, enabled: bool) -> Reminder | None:
    async with db_config.conn.execute(
        "UPDATE reminders SET enabled = ? WHERE id = ?",
        (int(enabled), reminder_id)
    ) as cursor:
        updated = cursor.rowcount
    await db_config.conn.commit()
    if updated == 0:
        return None
    logger.trace(f"切换提醒状态: id={reminder_id}, enabled={enabled}")
    return await get_reminder_by_id(reminder_id)


@_store_op
async def record_trigger(reminder_id: int, at: datetime | None = None) -> None:
    """记录触发时间 last_triggered，默认为当前 UTC 时间"""
    triggered_at = to_iso_utc(at or now_utc())
    await db_config.conn.execute(
        "UPDATE reminders SET last_triggered = ? WHERE id = ?",
        (triggered_at, reminder_id)
    )
    await db_config.conn.commit()
    logger.trace(f"记录触发时间: id={reminder_id}, last_triggered={triggered_at}")
