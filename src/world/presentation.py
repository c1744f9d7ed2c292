"""展示层接口

调度核心只调用 PresentationSink.on_reminder_due()，不关心弹窗、声音如何实现。
默认实现把提醒连同弹窗参数广播到事件总线，由订阅者异步处理。
"""

from abc import ABC, abstractmethod
from urllib.parse import quote

from datamodel import Reminder
from errors import PresentationError
from events import bus, Bus, E
from logger import logger
from metrics import runtime_metrics

__all__ = ["PresentationSink", "BusPresentationSink", "build_popup_payload"]


class PresentationSink(ABC):
    @abstractmethod
    def on_reminder_due(self, reminder: Reminder) -> None:
        """每次逻辑触发调用一次；不得长时间阻塞调用方"""
        pass


def build_popup_payload(reminder: Reminder) -> dict[str, object]:
    route = "/#/popup?id={}&name={}&message={}&sound={}".format(
        reminder.id,
        quote(reminder.name, safe=""),
        quote(reminder.message or "", safe=""),
        quote(reminder.sound, safe=""),
    )
    return {
        "label": f"popup-{reminder.id}",
        "title": f"Reminder: {reminder.name}",
        "message": reminder.message or "",
        "sound": reminder.sound,
        "route": route,
        "width": 450,
        "height": 500,
        "always_on_top": True,
    }


class BusPresentationSink(PresentationSink):
    def __init__(self, event_bus: Bus = bus) -> None:
        self.bus = event_bus

    def on_reminder_due(self, reminder: Reminder) -> None:
        popup = build_popup_payload(reminder)
        try:
            self.bus.emit(E.REMINDER_TRIGGERED, reminder=reminder, popup=popup)
        except Exception as e:
            raise PresentationError(f"广播提醒失败: id={reminder.id}, {e}") from e
        runtime_metrics.record_reminder_triggered()


@bus.on(E.REMINDER_TRIGGERED)
async def log_reminder_popup(reminder: Reminder, popup: dict[str, object]) -> None:
    logger.info(f"弹出提醒: {popup['title']} (id={reminder.id}, sound={reminder.sound}, route={popup['route']})")
