from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic import BaseModel, Field

from config.settings import MAX_INTERVAL_MINUTES
from datamodel import ReminderDraft, DEFAULT_SOUND


@dataclass
class RuntimeControl:
    shutdown_event: asyncio.Event
    started_at: float


class ShutdownRequest(BaseModel):
    reason: str = Field(default="manual")


class ReminderPayload(BaseModel):
    name: str
    message: str | None = None
    interval_minutes: int = Field(ge=1, le=MAX_INTERVAL_MINUTES)
    enabled: bool = True
    active_start_time: str | None = None
    active_end_time: str | None = None
    active_days: list[int] | None = None
    sound: str = DEFAULT_SOUND

    def to_draft(self) -> ReminderDraft:
        return ReminderDraft(
            name=self.name,
            message=self.message,
            interval_minutes=self.interval_minutes,
            enabled=self.enabled,
            active_start_time=self.active_start_time,
            active_end_time=self.active_end_time,
            active_days=self.active_days,
            sound=self.sound,
        )


class ToggleRequest(BaseModel):
    enabled: bool


class SnoozeRequest(BaseModel):
    minutes: int = Field(default=10, ge=1)
