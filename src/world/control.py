"""调度循环的控制通道

一个有界的 asyncio.Queue，只承载两种信号: REFRESH（立即重新计算）与 STOP（有序退出）。
发送端永不阻塞：队列已满时丢弃本次信号。对 REFRESH 来说，队列中已有的刷新信号
能达到同样的效果；STOP 同样是尽力而为，由 SchedulerHandle.stop() 的超时取消兜底。
"""

import asyncio
from enum import Enum

from logger import logger

__all__ = ["SchedulerCommand", "ControlChannel"]


class SchedulerCommand(str, Enum):
    REFRESH = "refresh"
    STOP = "stop"


class ControlChannel:
    def __init__(self, maxsize: int = 32) -> None:
        self._queue: asyncio.Queue[SchedulerCommand] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        return self._queue.qsize()

    def send(self, command: SchedulerCommand) -> bool:
        """非阻塞发送，返回信号是否入队"""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(command)
        except asyncio.QueueFull:
            logger.trace(f"控制通道已满，丢弃信号: {command.value}")
            return False
        return True

    async def receive(self, timeout: float) -> SchedulerCommand | None:
        """等待信号，最多 timeout 秒；超时返回 None

        这是调度循环唯一的挂起点：睡眠与接收信号赛跑，先到者胜出。
        """
        if self._closed:
            return SchedulerCommand.STOP
        if timeout <= 0:
            try:
                return self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return None
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        """关闭通道并丢弃未消费的信号，此后发送静默失败"""
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
