from datetime import timedelta

import pytest

import storage.db_config as db_config
import storage.reminder as reminder_storage
from conftest import BASE_TIME
from datamodel import ReminderDraft
from errors import StoreError
from utils import to_iso_utc


def draft(**overrides) -> ReminderDraft:
    fields = {"name": "Drink water", "interval_minutes": 30}
    fields.update(overrides)
    return ReminderDraft(**fields)


async def test_create_and_read_back(db):
    created = await reminder_storage.create_reminder(
        draft(message="stay hydrated", active_start_time="22:00", active_end_time="06:00", active_days=[0, 2, 4], sound="bell"),
        created_at=BASE_TIME,
    )
    assert created.id > 0
    assert created.created_at == to_iso_utc(BASE_TIME)
    assert created.last_triggered is None

    loaded = await reminder_storage.get_reminder_by_id(created.id)
    assert loaded == created


async def test_defaults(db):
    created = await reminder_storage.create_reminder(draft())
    loaded = await reminder_storage.get_reminder_by_id(created.id)
    assert loaded.enabled is True
    assert loaded.sound == "chime"
    assert loaded.active_days is None
    assert loaded.message is None


async def test_missing_reminder_is_none(db):
    assert await reminder_storage.get_reminder_by_id(999) is None
    assert await reminder_storage.update_reminder(999, draft()) is None
    assert await reminder_storage.toggle_reminder(999, False) is None
    assert await reminder_storage.delete_reminder(999) is False


async def test_list_enabled_excludes_disabled(db):
    a = await reminder_storage.create_reminder(draft(name="a"))
    b = await reminder_storage.create_reminder(draft(name="b", enabled=False))
    c = await reminder_storage.create_reminder(draft(name="c"))

    enabled = await reminder_storage.list_enabled()
    assert [r.id for r in enabled] == [a.id, c.id]

    await reminder_storage.toggle_reminder(b.id, True)
    await reminder_storage.toggle_reminder(a.id, False)
    enabled = await reminder_storage.list_enabled()
    assert [r.id for r in enabled] == [b.id, c.id]


async def test_get_all_newest_first(db):
    old = await reminder_storage.create_reminder(draft(name="old"), created_at=BASE_TIME)
    new = await reminder_storage.create_reminder(draft(name="new"), created_at=BASE_TIME + timedelta(minutes=1))
    assert [r.id for r in await reminder_storage.get_all_reminders()] == [new.id, old.id]


async def test_update_keeps_trigger_state(db):
    created = await reminder_storage.create_reminder(draft(), created_at=BASE_TIME)
    await reminder_storage.record_trigger(created.id, BASE_TIME + timedelta(minutes=5))

    updated = await reminder_storage.update_reminder(created.id, draft(name="Stretch", interval_minutes=45, active_days=[5, 6]))
    assert updated.name == "Stretch"
    assert updated.interval_minutes == 45
    assert updated.active_days == [5, 6]
    assert updated.last_triggered == to_iso_utc(BASE_TIME + timedelta(minutes=5))
    assert updated.created_at == created.created_at


async def test_record_trigger_defaults_to_now(db):
    created = await reminder_storage.create_reminder(draft())
    await reminder_storage.record_trigger(created.id)
    loaded = await reminder_storage.get_reminder_by_id(created.id)
    assert loaded.last_triggered is not None
    assert loaded.last_triggered.endswith("+00:00")


async def test_delete(db):
    created = await reminder_storage.create_reminder(draft())
    assert await reminder_storage.delete_reminder(created.id) is True
    assert await reminder_storage.get_reminder_by_id(created.id) is None


async def test_corrupt_active_days_reads_as_every_day(db):
    created = await reminder_storage.create_reminder(draft())
    await db.execute("UPDATE reminders SET active_days = ? WHERE id = ?", ("not json", created.id))
    await db.commit()
    loaded = await reminder_storage.get_reminder_by_id(created.id)
    assert loaded.active_days is None


async def test_schema_version(db):
    async with db.execute("PRAGMA user_version") as cursor:
        row = await cursor.fetchone()
    assert row[0] == 2


async def test_reopen_existing_database(tmp_path):
    path = str(tmp_path / "reminders.db")
    await db_config.init_db(path)
    created = await reminder_storage.create_reminder(draft())
    await db_config.close_db()

    await db_config.init_db(path)
    try:
        assert (await reminder_storage.get_reminder_by_id(created.id)).name == "Drink water"
    finally:
        await db_config.close_db()


async def test_uninitialized_store_raises_store_error():
    assert db_config.conn is None
    with pytest.raises(StoreError):
        await reminder_storage.list_enabled()
    with pytest.raises(StoreError):
        await reminder_storage.record_trigger(1)
