import logging

from PySide6.QtWidgets import (QWidget, QHBoxLayout, QComboBox, QCheckBox,
                               QLineEdit, QFormLayout, QPushButton, QFileDialog)
from PySide6.QtCore import Signal, Slot, Qt
from PySide6.QtGui import QFont

from ..core import config

logger = logging.getLogger(__name__)


class ApplicationDetailPanel(QWidget):
    """Form for one PassengerApplication. Edits are written straight into the record."""
    fieldEdited = Signal(str)  # field name

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("ApplicationDetailPanel")

        self._application = None
        self._updating = False  # True while filling the form from the record

        layout = QFormLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(10)
        layout.setLabelAlignment(Qt.AlignmentFlag.AlignLeft)
        layout.setFormAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)

        # --- Host ---
        self.host_edit = QLineEdit()
        self.host_edit.setFont(QFont("Sans Serif", 10))
        self.host_edit.setPlaceholderText(f"my-app.{config.HOST_TLD}")
        self.host_edit.textEdited.connect(self._on_host_edited)
        layout.addRow("Address:", self.host_edit)

        # --- Path ---
        self.path_edit = QLineEdit()
        self.path_edit.setFont(QFont("Sans Serif", 10))
        self.path_edit.textEdited.connect(self._on_path_edited)
        self.browse_button = QPushButton("Select…")
        self.browse_button.setToolTip("Choose the application folder")
        self.browse_button.clicked.connect(self._on_browse_clicked)
        path_row = QHBoxLayout()
        path_row.setContentsMargins(0, 0, 0, 0)
        path_row.addWidget(self.path_edit, 1)
        path_row.addWidget(self.browse_button)
        layout.addRow("Folder:", path_row)

        # --- Environment ---
        self.environment_combo = QComboBox()
        self.environment_combo.addItems(["Development", "Production"])
        self.environment_combo.currentIndexChanged.connect(self._on_environment_changed)
        layout.addRow("Environment:", self.environment_combo)

        # --- mod_rewrite ---
        self.rewrite_checkbox = QCheckBox("Allow mod_rewrite")
        self.rewrite_checkbox.toggled.connect(self._on_rewrite_toggled)
        layout.addRow("", self.rewrite_checkbox)

        self.set_application(None)

    def set_application(self, application):
        self._application = application
        self._updating = True
        try:
            enabled = application is not None
            for widget in (self.host_edit, self.path_edit, self.browse_button,
                           self.environment_combo, self.rewrite_checkbox):
                widget.setEnabled(enabled)
            self.refresh()
        finally:
            self._updating = False

    def refresh(self):
        """Re-reads all fields from the record, e.g. after revert or reload."""
        app = self._application
        was_updating = self._updating
        self._updating = True
        try:
            self.host_edit.setText(app.host if app else "")
            self.path_edit.setText(app.path if app else "")
            index = config.ENVIRONMENTS.index(app.environment) if app else 0
            self.environment_combo.setCurrentIndex(index)
            self.rewrite_checkbox.setChecked(bool(app and app.allow_mod_rewrite))
        finally:
            self._updating = was_updating

    def _edit(self, key, value):
        if self._updating or self._application is None:
            return
        self._application.set_value(key, value)
        # Deriving the default host from the path changes another field
        if key == 'path' and self.host_edit.text() != self._application.host:
            self._updating = True
            self.host_edit.setText(self._application.host)
            self._updating = False
        self.fieldEdited.emit(key)

    @Slot(str)
    def _on_host_edited(self, text):
        self._edit('host', text.strip())

    @Slot(str)
    def _on_path_edited(self, text):
        self._edit('path', text.strip())

    @Slot(int)
    def _on_environment_changed(self, index):
        if 0 <= index < len(config.ENVIRONMENTS):
            self._edit('environment', config.ENVIRONMENTS[index])

    @Slot(bool)
    def _on_rewrite_toggled(self, checked):
        self._edit('allow_mod_rewrite', checked)

    @Slot()
    def _on_browse_clicked(self):
        if self._application is None:
            return
        directory = QFileDialog.getExistingDirectory(self, "Select application folder", self.path_edit.text())
        if directory:
            self.path_edit.setText(directory)
            self._edit('path', directory)
