"""FastAPI application that exposes a local web UI and API for the tracker."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict

from .config import MonitorSettings
from .errors import NotFoundError, ParseError, StorageError, TrackerError, ValidationError
from .monitors import NotificationMonitor, TrayMonitor
from .parsing import format_timestamp, parse_date
from .paths import get_db_path, get_icon_dir
from .tracker import Tracker, build_tracker

logger = logging.getLogger(__name__)


class StartTimerPayload(BaseModel):
    task_name: str

    model_config = ConfigDict(extra="forbid")


class TimeSlotUpdate(BaseModel):
    task_name: str
    start_time: str
    end_time: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


_ERROR_STATUS: tuple[tuple[type[TrackerError], int], ...] = (
    (ValidationError, 400),
    (ParseError, 400),
    (NotFoundError, 404),
    (StorageError, 500),
)


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except TrackerError as exc:
        for error_type, status_code in _ERROR_STATUS:
            if isinstance(exc, error_type):
                raise HTTPException(status_code=status_code, detail=str(exc)) from exc
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[MonitorSettings] = None,
    tracker: Optional[Tracker] = None,
    enable_notifications: bool = True,
    enable_tray: bool = False,
    dashboard_url: Optional[str] = None,
    on_quit: Optional[Callable[[], Any]] = None,
) -> FastAPI:
    """Instantiate the FastAPI application.

    Opening the database happens here so that a storage failure aborts startup.
    ``on_quit`` runs after the tray's Quit item has stopped the monitors; the
    runner uses it to shut the server down.
    """
    resolved_db_path = Path(db_path or get_db_path())
    resolved_settings = settings or MonitorSettings()
    resolved_tracker = tracker or build_tracker(resolved_db_path)

    monitors = []
    if enable_notifications:
        monitors.append(NotificationMonitor(resolved_tracker.timer, resolved_settings))

    app = FastAPI(title="Light Tracking", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.tracker = resolved_tracker
    app.state.monitors = monitors
    app.state.tray_indicator = None
    app.state.on_quit = on_quit

    static_dir = Path(__file__).parent / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    @app.on_event("startup")
    async def _startup() -> None:
        if enable_tray:
            _start_tray(
                app, resolved_settings, dashboard_url, _quit_handler(app, on_quit)
            )
        for monitor in app.state.monitors:
            monitor.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        for monitor in app.state.monitors:
            monitor.stop()
        if app.state.tray_indicator is not None:
            app.state.tray_indicator.shutdown()
        if tracker is None:
            resolved_tracker.close()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        timer_status = request.app.state.tracker.status()
        return {
            "is_running": timer_status.is_running,
            "task_name": timer_status.task_name,
            "slot_id": timer_status.slot_id,
            "start_time": (
                format_timestamp(timer_status.start_time)
                if timer_status.start_time
                else None
            ),
            "elapsed_seconds": timer_status.elapsed_seconds,
            "database_path": str(request.app.state.db_path),
        }

    @app.post("/api/timer/start")
    def start_timer(payload: StartTimerPayload, request: Request) -> Dict[str, Any]:
        with _http_errors():
            slot = request.app.state.tracker.start_timer(payload.task_name)
        return {"slot": slot.to_payload()}

    @app.post("/api/timer/stop")
    def stop_timer(request: Request) -> Dict[str, Any]:
        with _http_errors():
            slot = request.app.state.tracker.stop_timer()
        return {"slot": slot.to_payload() if slot else None}

    @app.get("/api/time-slots")
    def time_slots(
        request: Request,
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format.",
        ),
    ) -> Dict[str, Any]:
        with _http_errors():
            target_day = parse_date(date)
            slots = request.app.state.tracker.time_slots_for(target_day.isoformat())
        return {
            "date": target_day.isoformat(),
            "time_slots": [slot.to_payload() for slot in slots],
        }

    @app.get("/api/statistics")
    def statistics(
        request: Request,
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format.",
        ),
    ) -> Dict[str, Any]:
        with _http_errors():
            target_day = parse_date(date)
            totals = request.app.state.tracker.statistics_for(target_day.isoformat())
        return {
            "date": target_day.isoformat(),
            "total_seconds": sum(seconds for _, seconds in totals),
            "tasks": [
                {"task_name": task_name, "seconds": seconds}
                for task_name, seconds in totals
            ],
        }

    @app.put("/api/time-slots/{slot_id}")
    def update_time_slot(
        slot_id: int,
        payload: TimeSlotUpdate,
        request: Request,
    ) -> Dict[str, Any]:
        with _http_errors():
            slot = request.app.state.tracker.update_time_slot(
                slot_id, payload.task_name, payload.start_time, payload.end_time
            )
        return slot.to_payload()

    @app.delete("/api/time-slots/{slot_id}")
    def delete_time_slot(slot_id: int, request: Request) -> Dict[str, Any]:
        with _http_errors():
            request.app.state.tracker.delete_time_slot(slot_id)
        return {"deleted": slot_id}

    @app.get("/")
    def index(request: Request):
        index_path = (Path(__file__).parent / "static" / "index.html").resolve()
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="UI not found")
        return FileResponse(index_path)

    return app


def _quit_handler(
    app: FastAPI, on_quit: Optional[Callable[[], Any]]
) -> Callable[[], None]:
    def _quit() -> None:
        logger.info("Quit requested from the system tray.")
        for monitor in app.state.monitors:
            monitor.stop()
        if on_quit is not None:
            on_quit()

    return _quit


def _start_tray(
    app: FastAPI,
    settings: MonitorSettings,
    dashboard_url: Optional[str],
    on_quit: Callable[[], None],
) -> None:
    from .tray import PystrayIndicator

    tracker: Tracker = app.state.tracker
    indicator = PystrayIndicator(
        on_stop=tracker.stop_timer,
        dashboard_url=dashboard_url,
        on_quit=on_quit,
        icon_dir=get_icon_dir(),
    )
    try:
        indicator.run_detached()
    except Exception:
        logger.warning("System tray unavailable; continuing without it.", exc_info=True)
        return
    app.state.tray_indicator = indicator
    app.state.monitors.append(TrayMonitor(tracker.timer, indicator, settings))
