"""异常定义

调度核心不会因为这些异常终止进程：
- StoreError: 存储读写失败，LOADING 阶段退避重试，FIRING 阶段记录日志后继续；
- MalformedTimestamp / MalformedTimeWindow: 数据格式错误，回退到宽松默认值；
- PresentationError: 展示层失败，只记录日志，不影响调度状态。
"""

__all__ = [
    "ReminderError", "StoreError", "MalformedTimestamp", "MalformedTimeWindow",
    "PresentationError", "ReminderNotFound", "InvalidReminder",
]


class ReminderError(Exception):
    pass


class StoreError(ReminderError):
    pass


class MalformedTimestamp(ReminderError, ValueError):
    pass


class MalformedTimeWindow(ReminderError, ValueError):
    pass


class PresentationError(ReminderError):
    pass


class ReminderNotFound(ReminderError):
    def __init__(self, reminder_id: int) -> None:
        super().__init__(f"提醒不存在: id={reminder_id}")
        self.reminder_id = reminder_id


class InvalidReminder(ReminderError, ValueError):
    pass
