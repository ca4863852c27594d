"""UI layer - PySide6 Timer Widget"""

import asyncio
import sys
from typing import Optional

from worktimer.infra.config import Settings, get_settings


def run_widget(settings: Optional[Settings] = None) -> int:
    """Open the Timer Widget against the configured API"""
    from PySide6.QtWidgets import QApplication

    from worktimer.client import TimerApiClient
    from .timer_widget import TimerWidget

    cfg = settings or get_settings()
    app = QApplication(sys.argv)

    # Event loop for async operations (the widget drives it with run_until_complete)
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    client = TimerApiClient(
        cfg.get_api_base_url(),
        cfg.user_id,
        timeout=cfg.preferences.request_timeout_seconds,
    )
    widget = TimerWidget(client, poll_interval_seconds=cfg.preferences.poll_interval_seconds)
    widget.show()
    try:
        return app.exec()
    finally:
        loop.close()


__all__ = ["run_widget"]
