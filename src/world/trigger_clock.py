"""下次触发时间计算

以最近一次真实触发为锚点保持稳定的节奏；若锚点缺失、格式错误，或者
锚点 + 间隔已经过去（例如程序关闭期间错过了若干次），则合并为一次
“从现在起一个间隔后”的触发，不补发。

超出 datetime 可表示范围时不抛异常：锚点溢出按从未触发处理，
now + 间隔溢出则截断到 FAR_FUTURE。
"""

from datetime import datetime, timedelta, timezone

from datamodel import Reminder
from errors import MalformedTimestamp
from logger import logger
from utils import parse_iso_utc

__all__ = ["compute_next", "FAR_FUTURE"]

FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def compute_next(reminder: Reminder, now: datetime) -> datetime:
    try:
        interval = timedelta(minutes=reminder.interval_minutes)
    except OverflowError:
        logger.warning(f"interval_minutes 超出范围: id={reminder.id}, {reminder.interval_minutes}")
        return FAR_FUTURE

    if reminder.last_triggered is not None:
        try:
            last = parse_iso_utc(reminder.last_triggered)
            candidate = last + interval
        except MalformedTimestamp as e:
            logger.debug(f"last_triggered 无法解析，按从未触发处理: id={reminder.id}, {e}")
        except OverflowError:
            logger.warning(f"last_triggered + 间隔超出范围，按从未触发处理: id={reminder.id}")
        else:
            if candidate > now:
                return candidate

    try:
        return now + interval
    except OverflowError:
        logger.warning(f"下次触发时间超出范围，截断为最大时间: id={reminder.id}")
        return FAR_FUTURE
