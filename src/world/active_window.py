from datetime import datetime

from datamodel import Reminder
from errors import MalformedTimeWindow
from logger import logger
from utils import parse_hhmm

__all__ = ["is_active"]


def is_active(reminder: Reminder, now_local: datetime) -> bool:
    """判断用户本地时间 now_local 是否落在提醒的活动日与活动时间窗内

    - 未设置 active_days 视为每天都可触发；
    - 起止时间只有成对且都能解析时才检查，start > end 视为跨夜窗口（如 22:00-06:00）；
    - 起止时间格式错误时跳过时间检查，不会因为脏数据把提醒静默关掉。
    """
    if reminder.active_days is not None and now_local.weekday() not in reminder.active_days:
        return False

    if reminder.active_start_time is None or reminder.active_end_time is None:
        return True

    try:
        start = parse_hhmm(reminder.active_start_time)
        end = parse_hhmm(reminder.active_end_time)
    except MalformedTimeWindow as e:
        logger.debug(f"活动时间窗无法解析，跳过时间检查: id={reminder.id}, {e}")
        return True

    current = now_local.time()
    if start <= end:
        return start <= current <= end
    # 跨夜窗口
    return not (current < start and current > end)
