import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from logger import logger
load_dotenv()

__all__ = [
    "DB_PATH", "LOG_FILE", "LOG_LEVEL", "CONSOLE_LOG_LEVEL",
    "USER_TIMEZONE", "DEFAULT_SOUND", "SOUND_OPTIONS",
    "STORE_RETRY_BACKOFF_SECONDS", "MAX_SLEEP_SECONDS", "IDLE_SLEEP_SECONDS",
    "POST_FIRE_DELAY_SECONDS", "CONTROL_QUEUE_SIZE",
    "ADMIN_HTTP_HOST", "ADMIN_HTTP_PORT", "ADMIN_AUTH_TOKEN",
    "SchedulerSettings", "scheduler_settings",
]


def _parse_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"{name} 非法: {raw}, 已回退到 {default}")
        return default
    if value < minimum:
        logger.warning(f"{name} 不能小于 {minimum}: {raw}, 已回退到 {default}")
        return default
    return value


def _parse_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"{name} 非法: {raw}, 已回退到 {default}")
        return default
    if value < minimum:
        logger.warning(f"{name} 不能小于 {minimum}: {raw}, 已回退到 {default}")
        return default
    return value


# 存储与日志
DB_PATH = os.getenv("DB_PATH", "data/reminders.db")
LOG_FILE = os.getenv("LOG_FILE", "logs/reminder.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").strip().upper()
CONSOLE_LOG_LEVEL = os.getenv("CONSOLE_LOG_LEVEL", "INFO").strip().upper()

# 用户时区，活动时间窗按该时区判断
USER_TIMEZONE = os.getenv("USER_TIMEZONE", "Asia/Shanghai").strip()
try:
    ZoneInfo(USER_TIMEZONE)
except (ZoneInfoNotFoundError, ValueError):
    logger.warning(f"USER_TIMEZONE 非法: {USER_TIMEZONE}, 已回退到 UTC")
    USER_TIMEZONE = "UTC"

# 提示音，仅作为标识透传给展示层
SOUND_OPTIONS = ("none", "chime", "bell", "ping", "alert", "gong")
DEFAULT_SOUND = os.getenv("DEFAULT_SOUND", "chime").strip().lower()
if DEFAULT_SOUND not in SOUND_OPTIONS:
    logger.warning(f"DEFAULT_SOUND 非法: {DEFAULT_SOUND}, 已回退到 chime")
    DEFAULT_SOUND = "chime"

# 提醒间隔上限（分钟），一年
MAX_INTERVAL_MINUTES = 60 * 24 * 366

# 调度循环的时间策略
STORE_RETRY_BACKOFF_SECONDS = _parse_float("STORE_RETRY_BACKOFF_SECONDS", 5.0)
MAX_SLEEP_SECONDS = _parse_float("MAX_SLEEP_SECONDS", 60.0, minimum=0.01)
IDLE_SLEEP_SECONDS = _parse_float("IDLE_SLEEP_SECONDS", 10.0, minimum=0.01)
POST_FIRE_DELAY_SECONDS = _parse_float("POST_FIRE_DELAY_SECONDS", 0.1)
CONTROL_QUEUE_SIZE = _parse_int("CONTROL_QUEUE_SIZE", 32, minimum=1)

# Admin API
ADMIN_HTTP_HOST = os.getenv("ADMIN_HTTP_HOST", "127.0.0.1")
ADMIN_HTTP_PORT = _parse_int("ADMIN_HTTP_PORT", 18080, minimum=1)
ADMIN_AUTH_TOKEN = os.getenv("ADMIN_AUTH_TOKEN", "")


@dataclass(frozen=True)
class SchedulerSettings:
    store_retry_backoff_seconds: float = STORE_RETRY_BACKOFF_SECONDS
    max_sleep_seconds: float = MAX_SLEEP_SECONDS
    idle_sleep_seconds: float = IDLE_SLEEP_SECONDS
    post_fire_delay_seconds: float = POST_FIRE_DELAY_SECONDS
    control_queue_size: int = CONTROL_QUEUE_SIZE


scheduler_settings = SchedulerSettings()
