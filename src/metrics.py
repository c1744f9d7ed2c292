"""
运行时指标，统计调度循环的周期数、触发次数和失败次数，供 Admin API 查询。
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class RuntimeMetrics:
    scheduler_cycle_count: int = 0
    reminder_triggered_count: int = 0
    store_error_count: int = 0
    presentation_error_count: int = 0
    refresh_count: int = 0
    last_triggered_at: float | None = None

    def record_cycle(self) -> None:
        self.scheduler_cycle_count += 1

    def record_reminder_triggered(self) -> None:
        self.reminder_triggered_count += 1
        self.last_triggered_at = time.time()

    def record_store_error(self) -> None:
        self.store_error_count += 1

    def record_presentation_error(self) -> None:
        self.presentation_error_count += 1

    def record_refresh(self) -> None:
        self.refresh_count += 1

    def snapshot(self) -> dict:
        return {
            "scheduler_cycle_count": self.scheduler_cycle_count,
            "reminder_triggered_count": self.reminder_triggered_count,
            "store_error_count": self.store_error_count,
            "presentation_error_count": self.presentation_error_count,
            "refresh_count": self.refresh_count,
            "last_triggered_at_epoch": self.last_triggered_at,
            "last_triggered_at_utc": (
                time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.last_triggered_at))
                if self.last_triggered_at is not None
                else None
            ),
        }


runtime_metrics = RuntimeMetrics()


__all__ = ["RuntimeMetrics", "runtime_metrics"]
