from __future__ import annotations

import asyncio
import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

import storage.db_config as db_config
from errors import InvalidReminder, ReminderNotFound, StoreError
from logger import logger
from metrics import runtime_metrics
from services.reminders import ReminderService
from world.reminder import SchedulerHandle

from .auth import require_admin_auth
from .schemas import ReminderPayload, RuntimeControl, ShutdownRequest, SnoozeRequest, ToggleRequest


def create_app(service: ReminderService, scheduler: SchedulerHandle, control: RuntimeControl) -> FastAPI:
    app = FastAPI(title="Reminder Admin API", version="1.0.0")

    @app.exception_handler(ReminderNotFound)
    async def handle_not_found(request: Request, exc: ReminderNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidReminder)
    async def handle_invalid(request: Request, exc: InvalidReminder) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(f"存储操作失败: {request.method} {request.url.path}, {exc}")
        return JSONResponse(status_code=503, content={"detail": "存储暂不可用"})

    def health_payload() -> dict[str, Any]:
        return {
            "status": "ok",
            "now_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "uptime_seconds": max(0.0, time.time() - control.started_at),
            "db_connected": db_config.conn is not None,
            "scheduler_running": scheduler.running,
            "shutdown_requested": control.shutdown_event.is_set(),
        }

    @app.get("/", include_in_schema=False)
    async def home() -> RedirectResponse:
        return RedirectResponse(url="/api/v1/health")

    @app.get("/healthz", include_in_schema=False)
    async def healthz() -> PlainTextResponse:
        return PlainTextResponse("ok")

    @app.get("/api/v1/health")
    async def api_health() -> dict[str, Any]:
        return health_payload()

    @app.get("/api/v1/auth/check")
    async def auth_check(request: Request) -> dict[str, bool]:
        await require_admin_auth(request)
        return {"ok": True}

    @app.get("/api/v1/reminders")
    async def list_reminders(request: Request, enabled: bool | None = None) -> dict[str, Any]:
        await require_admin_auth(request)
        reminders = await service.list_reminders()
        if enabled is not None:
            reminders = [r for r in reminders if r.enabled == enabled]
        return {"items": [r.to_dict() for r in reminders], "total": len(reminders)}

    @app.get("/api/v1/reminders/{reminder_id}")
    async def get_reminder(reminder_id: int, request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        reminder = await service.get_reminder(reminder_id)
        return reminder.to_dict()

    @app.post("/api/v1/reminders", status_code=201)
    async def create_reminder(payload: ReminderPayload, request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        reminder = await service.create_reminder(payload.to_draft())
        return reminder.to_dict()

    @app.put("/api/v1/reminders/{reminder_id}")
    async def update_reminder(reminder_id: int, payload: ReminderPayload, request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        reminder = await service.update_reminder(reminder_id, payload.to_draft())
        return reminder.to_dict()

    @app.delete("/api/v1/reminders/{reminder_id}")
    async def delete_reminder(reminder_id: int, request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        await service.delete_reminder(reminder_id)
        return {"ok": True, "id": reminder_id}

    @app.post("/api/v1/reminders/{reminder_id}/toggle")
    async def toggle_reminder(reminder_id: int, payload: ToggleRequest, request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        reminder = await service.toggle_reminder(reminder_id, payload.enabled)
        return reminder.to_dict()

    @app.post("/api/v1/reminders/{reminder_id}/dismiss")
    async def dismiss_reminder(reminder_id: int, request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        await service.dismiss_reminder(reminder_id)
        return {"ok": True, "id": reminder_id, "action": "dismiss"}

    @app.post("/api/v1/reminders/{reminder_id}/snooze")
    async def snooze_reminder(reminder_id: int, payload: SnoozeRequest, request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        await service.snooze_reminder(reminder_id, payload.minutes)
        return {"ok": True, "id": reminder_id, "action": "snooze", "minutes": payload.minutes}

    @app.get("/api/v1/scheduler")
    async def get_scheduler_status(request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        return {
            "scheduler": scheduler.get_status(),
            "runtime": runtime_metrics.snapshot(),
            "active_tasks": len(asyncio.all_tasks()),
        }

    @app.post("/api/v1/scheduler/refresh")
    async def refresh_scheduler(request: Request) -> dict[str, Any]:
        await require_admin_auth(request)
        return {"ok": True, "queued": scheduler.request_refresh()}

    @app.post("/api/v1/admin/shutdown")
    async def admin_shutdown(payload: ShutdownRequest, request: Request) -> dict[str, Any]:
        auth_info = await require_admin_auth(request)
        logger.warning(f"收到远程关闭请求: by={auth_info['user']}, reason={payload.reason}")
        control.shutdown_event.set()
        return {"ok": True, "action": "shutdown", "reason": payload.reason}

    return app
