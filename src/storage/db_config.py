import aiosqlite
import os

from logger import logger


conn: aiosqlite.Connection | None = None

_SCHEMA_V1 = """
CREATE TABLE IF NOT EXISTS reminders (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    name              TEXT NOT NULL,
    message           TEXT,
    interval_minutes  INTEGER NOT NULL,
    enabled           INTEGER NOT NULL DEFAULT 1,
    active_start_time TEXT,
    active_end_time   TEXT,
    active_days       TEXT,
    last_triggered    TEXT,
    created_at        TEXT NOT NULL
);
"""


async def _column_exists(table: str, column: str) -> bool:
    global conn
    async with conn.execute(f"PRAGMA table_info({table})") as cursor:
        async for row in cursor:
            if row[1] == column:
                return True
    return False


async def init_db(db_path: str) -> None:
    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)
    global conn
    conn = await aiosqlite.connect(db_path)

    async with conn.execute("PRAGMA user_version") as cursor:
        row = await cursor.fetchone()
        user_version = row[0]

    if user_version == 0:
        await conn.executescript(_SCHEMA_V1)
        await conn.execute("PRAGMA user_version = 1")

    if user_version < 2:  # v2: 增加提示音
        if not await _column_exists("reminders", "sound"):
            await conn.execute("ALTER TABLE reminders ADD COLUMN sound TEXT DEFAULT 'chime'")
        await conn.execute("PRAGMA user_version = 2")

    # 数据库升级逻辑可以在这里继续添加
    await conn.commit()
    logger.info(f"数据库已就绪: path={db_path}, user_version={max(user_version, 2)}")


async def close_db() -> None:
    global conn
    if conn is not None:
        await conn.close()
        conn = None


__all__ = ["conn", "init_db", "close_db"]
