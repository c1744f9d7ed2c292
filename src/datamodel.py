from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from config.settings import DEFAULT_SOUND

__all__ = [
    "Reminder", "ReminderDraft", "DEFAULT_SOUND",
]

# ----------------- Reminder 数据模型 ----------------
@dataclass
class Reminder:
    id: int
    name: str
    interval_minutes: int
    message: Optional[str] = None
    enabled: bool = True
    active_start_time: Optional[str] = None  # 格式: "HH:MM"，与 active_end_time 成对出现
    active_end_time: Optional[str] = None  # 格式: "HH:MM"
    active_days: Optional[List[int]] = None  # 0=周一 ... 6=周日，None 表示每天
    sound: str = DEFAULT_SOUND
    last_triggered: Optional[str] = None  # ISO-8601 UTC，None 表示从未触发
    created_at: str = ""  # ISO-8601 UTC

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ----------------- 创建/更新请求 ----------------
@dataclass
class ReminderDraft:
    name: str
    interval_minutes: int
    message: Optional[str] = None
    enabled: bool = True
    active_start_time: Optional[str] = None
    active_end_time: Optional[str] = None
    active_days: Optional[List[int]] = None
    sound: str = DEFAULT_SOUND
