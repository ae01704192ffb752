"""Helpers to launch the local web dashboard."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from pathlib import Path
from typing import Optional

import uvicorn

from .config import MonitorSettings
from .paths import get_db_path
from .webapp import create_app


def run_dashboard(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    db_path: Optional[Path] = None,
    settings: Optional[MonitorSettings] = None,
    open_browser: bool = True,
    enable_tray: bool = True,
    enable_notifications: bool = True,
    log_level: str = "info",
) -> None:
    """Start the FastAPI dashboard, its monitors and optional browser tab.

    Blocks until the server exits, either on Ctrl+C or from the tray's Quit.
    """
    url = f"http://{host}:{port}"
    server: Optional[uvicorn.Server] = None

    def _request_exit() -> None:
        if server is not None:
            server.should_exit = True

    app = create_app(
        db_path=db_path or get_db_path(),
        settings=settings or MonitorSettings(),
        enable_tray=enable_tray,
        enable_notifications=enable_notifications,
        dashboard_url=url,
        on_quit=_request_exit,
    )

    if open_browser:
        threading.Thread(
            target=_launch_browser_after_delay, args=(url,), daemon=True
        ).start()

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    server = uvicorn.Server(
        uvicorn.Config(app, host=host, port=port, log_level=log_level)
    )
    server.run()


def _launch_browser_after_delay(url: str) -> None:
    time.sleep(1.0)
    try:
        webbrowser.open(url)
    except Exception:
        logging.getLogger(__name__).exception("Failed to launch browser for %s", url)
