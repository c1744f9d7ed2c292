from logger import setup_logging, logger
from config.settings import *
setup_logging(
    log_level=LOG_LEVEL,
    log_file=LOG_FILE,
    console_level=CONSOLE_LOG_LEVEL,
)

import asyncio
import signal

import storage.db_config as db_config
from admin.http_server import main_loop as admin_http_main
from services.reminders import ReminderService
from utils import SystemClock
from world.presentation import BusPresentationSink
from world.reminder import ReminderScheduler, SchedulerHandle

shutdown_event = asyncio.Event()

def signal_handler(sig, frame):
    """处理 SIGINT (Ctrl+C) / SIGTERM 信号"""
    logger.info("收到中断信号,正在依次关闭组件...")
    shutdown_event.set()


async def scheduler_main(shutdown_event: asyncio.Event, scheduler: SchedulerHandle) -> None:
    """启动调度循环，收到关闭信号后发送 STOP 并等待其退出"""
    scheduler.start()
    await shutdown_event.wait()
    logger.info("关闭调度循环...")
    await scheduler.stop()


async def main():
    # 注册信号处理器
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    await db_config.init_db(DB_PATH)

    scheduler = SchedulerHandle(ReminderScheduler(
        sink=BusPresentationSink(),
        clock=SystemClock(USER_TIMEZONE),
        settings=scheduler_settings,
    ))
    service = ReminderService(scheduler)

    try:
        await asyncio.gather(
            scheduler_main(shutdown_event, scheduler),
            admin_http_main(shutdown_event, service, scheduler),
        )
    finally:
        logger.info("关闭数据库连接...")
        await db_config.close_db()
        logger.info("提醒服务已关闭")


if __name__ == "__main__":
    logger.info("启动提醒服务...")
    asyncio.run(main())
