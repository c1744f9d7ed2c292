"""事件总线模块，定义了事件总线类 Bus 及事件名集合 E

存储层的增删改、调度器的启停以及提醒触发都会在总线上广播，
展示层（弹窗、托盘、前端推送等）只需订阅 E.REMINDER_TRIGGERED。
处理器在事件循环中以独立任务执行，不会阻塞调度循环。
"""

from __future__ import annotations
from pyee.asyncio import AsyncIOEventEmitter
from typing import Awaitable, Callable

from logger import logger

AsyncHandler = Callable[..., Awaitable[None]]

# 事件名集中定义
class E:
    REMINDER_CREATED = "reminder.created"
    REMINDER_UPDATED = "reminder.updated"
    REMINDER_DELETED = "reminder.deleted"
    REMINDER_TOGGLED = "reminder.toggled"
    REMINDER_DISMISSED = "reminder.dismissed"
    REMINDER_SNOOZED = "reminder.snoozed"
    REMINDER_TRIGGERED = "reminder.triggered"
    SCHEDULER_STARTED = "scheduler.started"
    SCHEDULER_STOPPED = "scheduler.stopped"


class Bus(AsyncIOEventEmitter):
    def __init__(self) -> None:
        super().__init__()
        super(Bus, self).on("error", self._log_handler_error)

    @staticmethod
    def _log_handler_error(error: Exception) -> None:
        logger.opt(exception=error).error(f"事件处理器执行失败: {error}")

    def on(self, event: str) -> Callable[[AsyncHandler], AsyncHandler]:
        """注册事件处理器装饰器"""
        def decorator(handler: AsyncHandler) -> AsyncHandler:
            logger.debug(f"注册事件处理器: {event} -> {handler.__name__}")
            super(Bus, self).on(event, handler)
            return handler

        return decorator


bus = Bus()

__all__ = ["bus", "E", "Bus"]
