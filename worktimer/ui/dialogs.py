"""
Dialogs for pausing and stopping the timer.
"""

from typing import List, Optional
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QLabel, QPushButton, QButtonGroup, QRadioButton,
    QLineEdit, QDialogButtonBox, QTextEdit
)


class PauseReasonDialog(QDialog):
    """
    Asks why the user is pausing: a preset or a custom reason.
    """

    OTHER = "Other"

    def __init__(self, presets: List[str], parent=None):
        super().__init__(parent)
        self.setWindowTitle("Take a Break")
        self.setModal(True)
        self.reason: Optional[str] = None

        layout = QVBoxLayout()
        title = QLabel("Why are you pausing?")
        title.setStyleSheet("font-size: 14px; font-weight: bold;")
        layout.addWidget(title)

        self.group = QButtonGroup(self)
        for preset in [*presets, self.OTHER]:
            button = QRadioButton(preset)
            self.group.addButton(button)
            layout.addWidget(button)
        self.group.buttonToggled.connect(self._on_choice_changed)

        self.custom_edit = QLineEdit()
        self.custom_edit.setPlaceholderText("Enter your reason for pausing...")
        self.custom_edit.setEnabled(False)
        self.custom_edit.textChanged.connect(self._update_ok)
        layout.addWidget(self.custom_edit)

        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.button(QDialogButtonBox.Ok).setText("Pause Timer")
        self.buttons.accepted.connect(self._accept)
        self.buttons.rejected.connect(self.reject)
        layout.addWidget(self.buttons)

        self.setLayout(layout)
        self.setMinimumWidth(360)
        self._update_ok()

    def _selected(self) -> Optional[str]:
        button = self.group.checkedButton()
        return button.text() if button else None

    def _on_choice_changed(self, *_):
        self.custom_edit.setEnabled(self._selected() == self.OTHER)
        self._update_ok()

    def _update_ok(self, *_):
        self.buttons.button(QDialogButtonBox.Ok).setEnabled(bool(self._reason_text()))

    def _reason_text(self) -> str:
        selected = self._selected()
        if selected == self.OTHER:
            return self.custom_edit.text().strip()
        return selected or ""

    def _accept(self):
        self.reason = self._reason_text()
        if self.reason:
            self.accept()


class StopTimerDialog(QDialog):
    """
    Confirms stopping and lets the user adjust the session description.
    """

    def __init__(self, work_display: str, description: Optional[str] = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Stop Timer")
        self.setModal(True)

        layout = QVBoxLayout()
        layout.addWidget(QLabel(f"Stop tracking? Work time: {work_display}"))

        self.description_edit = QTextEdit()
        self.description_edit.setPlaceholderText("What did you work on? (optional)")
        if description:
            self.description_edit.setPlainText(description)
        self.description_edit.setMaximumHeight(80)
        layout.addWidget(self.description_edit)

        buttons = QDialogButtonBox()
        stop_btn = QPushButton("Stop & Save")
        buttons.addButton(stop_btn, QDialogButtonBox.AcceptRole)
        buttons.addButton(QDialogButtonBox.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

        self.setLayout(layout)
        self.setMinimumWidth(360)

    @property
    def description(self) -> Optional[str]:
        return self.description_edit.toPlainText().strip() or None
