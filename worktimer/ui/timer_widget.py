"""
Timer Widget - the live clock and the timer controls.

Architecture Decision: Presentation Layer
The widget holds no authoritative state. It renders an ElapsedClock rebuilt
from the last server snapshot: a 1s QTimer only re-derives the display, and a
slower poll QTimer replaces the snapshot. Both timers die with the widget.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

import httpx
from PySide6.QtCore import QTimer, Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QLineEdit
)

from worktimer.client import TimerApiClient
from worktimer.domain.errors import CommandOutcomeUnknown, ConcurrentModification, PersistenceFailure, TimerError
from worktimer.domain.models import TimerStatus
from worktimer.services.elapsed_clock import ElapsedClock
from worktimer.utils import utc_now
from .dialogs import PauseReasonDialog, StopTimerDialog

logger = logging.getLogger(__name__)


class TimerWidget(QWidget):
    """
    Shows work time (frozen while paused) and break time (ticking while paused).
    """

    def __init__(self, client: TimerApiClient, poll_interval_seconds: int = 30, parent=None):
        super().__init__(parent)
        self.client = client
        self.loop = asyncio.get_event_loop()
        self.clock: Optional[ElapsedClock] = None
        self.status: Optional[TimerStatus] = None
        # Last failed command with the snapshot it was issued against
        self._pending: Optional[Tuple[Callable[[], Awaitable], bool, Optional[TimerStatus]]] = None
        self.description: Optional[str] = None
        self.pause_presets: List[str] = []

        self.setWindowTitle("WorkTimer")
        self._setup_ui()

        # Display tick: derive from baseline, never accumulate
        self.tick_timer = QTimer(self)
        self.tick_timer.setInterval(1000)
        self.tick_timer.timeout.connect(self._on_tick)

        # Reconcile with the server on a fixed interval
        self.poll_timer = QTimer(self)
        self.poll_timer.setInterval(poll_interval_seconds * 1000)
        self.poll_timer.timeout.connect(self.refresh_status)
        self.poll_timer.start()

        self._load_presets()
        self.refresh_status()

    def _setup_ui(self):
        layout = QVBoxLayout(self)

        self.task_label = QLabel("No Active Timer")
        self.task_label.setStyleSheet("font-weight: bold;")
        layout.addWidget(self.task_label)

        mono = QFont("Monospace")
        mono.setStyleHint(QFont.TypeWriter)
        mono.setPointSize(28)
        self.work_label = QLabel("00:00")
        self.work_label.setFont(mono)
        self.work_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.work_label)

        self.work_human_label = QLabel("")
        self.work_human_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.work_human_label)

        self.break_label = QLabel("")
        self.break_label.setAlignment(Qt.AlignCenter)
        self.break_label.setStyleSheet("color: #ea580c;")
        layout.addWidget(self.break_label)

        self.reason_label = QLabel("")
        self.reason_label.setWordWrap(True)
        layout.addWidget(self.reason_label)

        # Start row
        start_row = QHBoxLayout()
        self.task_edit = QLineEdit()
        self.task_edit.setPlaceholderText("Task ID")
        self.start_btn = QPushButton("Start")
        self.start_btn.clicked.connect(self._on_start)
        start_row.addWidget(self.task_edit)
        start_row.addWidget(self.start_btn)
        layout.addLayout(start_row)

        # Controls
        controls = QHBoxLayout()
        self.pause_btn = QPushButton("Pause")
        self.pause_btn.clicked.connect(self._on_pause)
        self.resume_btn = QPushButton("Resume Work")
        self.resume_btn.clicked.connect(self._on_resume)
        self.stop_btn = QPushButton("Stop")
        self.stop_btn.clicked.connect(self._on_stop)
        for btn in (self.pause_btn, self.resume_btn, self.stop_btn):
            controls.addWidget(btn)
        layout.addLayout(controls)

        # Error display with retry affordance
        error_row = QHBoxLayout()
        self.error_label = QLabel("")
        self.error_label.setStyleSheet("color: #dc2626;")
        self.error_label.setWordWrap(True)
        self.retry_btn = QPushButton("Retry")
        self.retry_btn.clicked.connect(self._on_retry)
        error_row.addWidget(self.error_label, 1)
        error_row.addWidget(self.retry_btn)
        layout.addLayout(error_row)

        self._show_error(None)
        self._update_controls()
        self.setMinimumWidth(320)

    # --- state -----------------------------------------------------------

    def refresh_status(self):
        """Replace the local baseline with the server's snapshot"""
        status = self._run(self.client.status)
        if status is not None:
            self._show_error(None)
            self._apply_status(status)

    def _apply_status(self, status: TimerStatus):
        self.status = status
        self.clock = ElapsedClock.from_status(status, received_at=utc_now())
        if self.clock is None:
            self.tick_timer.stop()
            self.description = None
            self.task_label.setText("No Active Timer")
        else:
            self.description = status.timer.description
            self.task_label.setText(status.timer.task_title or status.timer.task_id)
            if not self.tick_timer.isActive():
                self.tick_timer.start()
        self._update_controls()
        self._on_tick()

    def _on_tick(self):
        if self.clock is None:
            self.work_label.setText("00:00")
            self.work_human_label.setText("")
            self.break_label.setText("")
            self.reason_label.setText("")
            return
        reading = self.clock.render(utc_now())
        self.work_label.setText(reading.work_display)
        self.work_human_label.setText(f"{reading.work_human} of active work")
        if reading.is_paused:
            self.break_label.setText(f"On break: {reading.break_display}")
            self.reason_label.setText(f"Break reason: {self.clock.pause_reason or ''}")
        else:
            self.break_label.setText(f"Total breaks: {reading.total_breaks_human}")
            self.reason_label.setText("")

    def _update_controls(self):
        active = self.clock is not None
        paused = active and self.clock.is_paused
        self.start_btn.setEnabled(not active)
        self.task_edit.setEnabled(not active)
        self.pause_btn.setVisible(active and not paused)
        self.resume_btn.setVisible(paused)
        self.stop_btn.setEnabled(active)

    def _show_error(self, message: Optional[str]):
        self.error_label.setText(message or "")
        self.error_label.setVisible(bool(message))
        self.retry_btn.setVisible(bool(message))

    # --- commands --------------------------------------------------------

    def _load_presets(self):
        presets = self._run(self.client.pause_reasons)
        if presets:
            self.pause_presets = presets

    def _on_start(self):
        task_id = self.task_edit.text().strip()
        if not task_id:
            self._show_error("Enter a task ID to start tracking")
            return
        self._command(lambda: self.client.start(task_id))

    def _on_pause(self):
        dialog = PauseReasonDialog(self.pause_presets, self)
        if dialog.exec() and dialog.reason:
            self._command(lambda: self.client.pause(dialog.reason))

    def _on_resume(self):
        self._command(self.client.resume)

    def _on_stop(self):
        work = self.clock.render(utc_now()).work_display if self.clock else "00:00"
        dialog = StopTimerDialog(work, self.description, self)
        if dialog.exec():
            entry = self._command(lambda: self.client.stop(dialog.description), refresh=True)
            if entry is not None:
                logger.info(f"Saved time entry {entry.id}: {entry.active_seconds}s")

    def _command(self, call: Callable[[], Awaitable], refresh: bool = False):
        """
        Run a command and reconcile with the server afterwards.

        Snapshot results replace the baseline directly; anything else
        (stop's TimeEntry, errors) triggers a fresh status read. Commands
        that failed without a definite outcome are kept for Retry.
        """
        before = self.status
        self._pending = None
        try:
            result = self.loop.run_until_complete(call())
        except CommandOutcomeUnknown as e:
            self._pending = (call, refresh, before)
            self._show_error(e.message)
            if e.status is not None:
                self._apply_status(e.status)
            return None
        except (ConcurrentModification, PersistenceFailure) as e:
            self._pending = (call, refresh, before)
            self._show_error(e.message)
            self.refresh_status_quietly()
            return None
        except TimerError as e:
            self._show_error(e.message)
            self.refresh_status_quietly()
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Timer command failed: {e}")
            self._pending = (call, refresh, before)
            self._show_error("Could not reach the server")
            return None

        self._show_error(None)
        if isinstance(result, TimerStatus) and not refresh:
            self._apply_status(result)
        else:
            self.refresh_status()
        return result

    def _on_retry(self):
        """
        Re-send the failed command if the server shows it was not applied.

        Without a pending command, or once the state has moved on, this only
        re-fetches status.
        """
        pending, self._pending = self._pending, None
        if pending is None:
            self.refresh_status()
            return
        call, refresh, before = pending
        status = self._run(self.client.status)
        if status is None:
            # Still unreachable, keep the command for the next attempt
            self._pending = pending
            return
        if status.same_state_as(before):
            logger.info("Previous command was not applied, sending it again")
            self._command(call, refresh=refresh)
        else:
            self._show_error(None)
            self._apply_status(status)

    def refresh_status_quietly(self):
        """Re-read status without replacing an error that is already shown"""
        status = self._run(self.client.status, show_errors=False)
        if status is not None:
            self._apply_status(status)

    def _run(self, call: Callable[[], Awaitable], show_errors: bool = True):
        try:
            return self.loop.run_until_complete(call())
        except (TimerError, httpx.HTTPError) as e:
            logger.warning(f"Timer status request failed: {e}")
            if show_errors:
                self._show_error(getattr(e, "message", None) or "Could not reach the server")
            return None

    # --- lifetime --------------------------------------------------------

    def closeEvent(self, event):
        """Cancel both timers with the widget"""
        self.tick_timer.stop()
        self.poll_timer.stop()
        self.loop.run_until_complete(self.client.aclose())
        super().closeEvent(event)
