"""提醒调度循环

单个 asyncio 任务顺序执行状态机：
    LOADING -> SELECTING -> WAITING -> (FIRING | PREEMPTED) -> LOADING ...，终态 STOPPED

- LOADING: 读取所有已启用的提醒，为新出现的 id 计算下次触发时间，清理已删除/禁用的 id；
  存储失败时记录日志并退避重试，这是唯一会重试的失败路径。
- SELECTING: 在处于活动时间窗内的提醒中选出 next_triggers 最早者，同一时刻按 id 最小者。
- WAITING: 已到期则立即触发；否则睡眠 min(剩余时间, 上限)，没有目标时空闲睡眠。
  睡眠始终与控制通道赛跑，这是循环唯一的挂起点。
- FIRING: 通知展示层、写回 last_triggered、重新计算该提醒的下次触发时间。
- PREEMPTED: REFRESH 清空 next_triggers 并重新开始；STOP 进入 STOPPED，不再访问存储和展示层。

next_triggers 只是缓存，随时可以由存储中的 last_triggered 与当前时间重建。
"""

import asyncio
import dataclasses
import time
from datetime import datetime
from enum import Enum

import storage.reminder as reminder_storage
from config.settings import SchedulerSettings, scheduler_settings
from datamodel import Reminder
from errors import StoreError
from events import bus, E
from logger import logger
from metrics import runtime_metrics
from utils import Clock, SystemClock, to_iso_utc
from world.active_window import is_active
from world.control import ControlChannel, SchedulerCommand
from world.presentation import BusPresentationSink, PresentationSink
from world.trigger_clock import compute_next

__all__ = ["SchedulerState", "ReminderScheduler", "SchedulerHandle"]


class SchedulerState(str, Enum):
    IDLE = "idle"  # 尚未启动
    LOADING = "loading"
    SELECTING = "selecting"
    WAITING = "waiting"
    FIRING = "firing"
    PREEMPTED = "preempted"
    STOPPED = "stopped"


class ReminderScheduler:
    def __init__(
        self,
        store=reminder_storage,
        sink: PresentationSink | None = None,
        clock: Clock | None = None,
        settings: SchedulerSettings = scheduler_settings,
    ) -> None:
        # store 只需提供 list_enabled() 与 record_trigger(id, at)
        self.store = store
        self.sink = sink or BusPresentationSink()
        self.clock = clock or SystemClock()
        self.settings = settings

        self.channel = ControlChannel(settings.control_queue_size)
        self.next_triggers: dict[int, datetime] = {}
        self.state = SchedulerState.IDLE
        self.current_target: int | None = None
        self.last_cycle_at_epoch: float | None = None

    async def run(self) -> None:
        logger.info("提醒调度循环已启动")
        bus.emit(E.SCHEDULER_STARTED)
        try:
            while True:
                timeout = await self._run_cycle()
                self.state = SchedulerState.WAITING
                command = await self.channel.receive(timeout)
                if command is None:
                    continue

                self.state = SchedulerState.PREEMPTED
                if command is SchedulerCommand.STOP:
                    logger.info("调度循环收到停止信号")
                    break
                logger.debug("调度循环收到刷新信号，清空 next_triggers")
                runtime_metrics.record_refresh()
                self.next_triggers.clear()
        finally:
            self.state = SchedulerState.STOPPED
            self.current_target = None
            self.channel.close()
            bus.emit(E.SCHEDULER_STOPPED)
            logger.info("提醒调度循环已关闭")

    async def _run_cycle(self) -> float:
        """执行一次 LOADING -> SELECTING (-> FIRING)，返回接下来需要等待的秒数"""
        self.last_cycle_at_epoch = time.time()
        runtime_metrics.record_cycle()

        self.state = SchedulerState.LOADING
        try:
            reminders = await self.store.list_enabled()
        except StoreError as e:
            runtime_metrics.record_store_error()
            logger.error(f"加载提醒失败，{self.settings.store_retry_backoff_seconds} 秒后重试: {e}")
            return self.settings.store_retry_backoff_seconds

        now = self.clock.now_utc()
        self._sync_next_triggers(reminders, now)

        self.state = SchedulerState.SELECTING
        target = self.select_target(reminders)
        self.current_target = target.id if target is not None else None
        if target is None:
            return self.settings.idle_sleep_seconds

        remaining = (self.next_triggers[target.id] - self.clock.now_utc()).total_seconds()
        if remaining > 0:
            return min(remaining, self.settings.max_sleep_seconds)

        await self._fire(target)
        return self.settings.post_fire_delay_seconds

    def _sync_next_triggers(self, reminders: list[Reminder], now: datetime) -> None:
        active_ids = {r.id for r in reminders}
        for reminder in reminders:
            if reminder.id not in self.next_triggers:
                self.next_triggers[reminder.id] = compute_next(reminder, now)

        for stale_id in [i for i in self.next_triggers if i not in active_ids]:
            del self.next_triggers[stale_id]

    def select_target(self, reminders: list[Reminder]) -> Reminder | None:
        now_local = self.clock.now_local()
        candidates = [
            r for r in reminders
            if r.id in self.next_triggers and is_active(r, now_local)
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda r: (self.next_triggers[r.id], r.id))

    async def _fire(self, reminder: Reminder) -> None:
        self.state = SchedulerState.FIRING
        now = self.clock.now_utc()
        logger.info(f"触发提醒: id={reminder.id}, name={reminder.name}")

        try:
            self.sink.on_reminder_due(reminder)
        except Exception as e:
            runtime_metrics.record_presentation_error()
            logger.opt(exception=e).error(f"展示提醒失败: id={reminder.id}, {e}")

        try:
            await self.store.record_trigger(reminder.id, now)
        except StoreError as e:
            runtime_metrics.record_store_error()
            logger.error(f"写入 last_triggered 失败: id={reminder.id}, {e}")

        fired = dataclasses.replace(reminder, last_triggered=to_iso_utc(now))
        self.next_triggers[reminder.id] = compute_next(fired, now)
        logger.debug(f"下次触发: id={reminder.id}, at={to_iso_utc(self.next_triggers[reminder.id])}")

    def get_status(self) -> dict[str, object]:
        return {
            "state": self.state.value,
            "current_target": self.current_target,
            "next_triggers": {
                reminder_id: to_iso_utc(at) for reminder_id, at in sorted(self.next_triggers.items())
            },
            "pending_signals": self.channel.pending(),
            "last_cycle_at_epoch": self.last_cycle_at_epoch,
        }


class SchedulerHandle:
    """调度器句柄，在启动时显式创建并传给需要发信号的调用方

    循环未运行（未启动或已退出）时，request_refresh()/request_stop() 静默返回 False。
    """

    def __init__(self, scheduler: ReminderScheduler) -> None:
        self.scheduler = scheduler
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        if self._task is not None:
            raise RuntimeError("调度循环已启动过，不能重复启动")
        # 新建通道，保证循环看不到启动前发出的信号
        self.scheduler.channel = ControlChannel(self.scheduler.settings.control_queue_size)
        self._task = asyncio.create_task(self.scheduler.run(), name="reminder-scheduler")
        return self._task

    def request_refresh(self) -> bool:
        if not self.running:
            return False
        return self.scheduler.channel.send(SchedulerCommand.REFRESH)

    def request_stop(self) -> bool:
        if not self.running:
            return False
        return self.scheduler.channel.send(SchedulerCommand.STOP)

    async def join(self) -> None:
        if self._task is not None:
            await self._task

    async def stop(self, timeout: float = 5.0) -> None:
        """请求停止并等待循环退出，超时则取消任务"""
        if self._task is None:
            return
        self.request_stop()
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"调度循环未在 {timeout} 秒内退出，强制取消")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def get_status(self) -> dict[str, object]:
        status = self.scheduler.get_status()
        status["running"] = self.running
        return status
