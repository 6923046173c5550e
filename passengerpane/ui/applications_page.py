import logging
from pathlib import Path

from PySide6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QLabel,
                               QPushButton, QListWidget, QListWidgetItem,
                               QSplitter, QFileDialog, QMessageBox)
from PySide6.QtCore import Signal, Slot, Qt
from PySide6.QtGui import QFont

from ..managers.application import (PassengerApplication, existing_applications,
                                    remove_applications)
from .application_detail_panel import ApplicationDetailPanel

logger = logging.getLogger(__name__)


class ApplicationsPage(QWidget):
    # Emitted whenever the set of unsaved applications changes
    dirtyStateChanged = Signal(bool)

    def __init__(self, parent=None, load_existing=True):
        super().__init__(parent)
        self.applications = []

        main_layout = QHBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        self.splitter = QSplitter(Qt.Orientation.Horizontal)
        main_layout.addWidget(self.splitter)

        # --- Left Pane: Application List ---
        left_pane = QWidget()
        left_layout = QVBoxLayout(left_pane)
        left_layout.setContentsMargins(0, 0, 0, 0)
        self.app_list_widget = QListWidget()
        self.app_list_widget.setObjectName("ApplicationList")
        left_layout.addWidget(self.app_list_widget, 1)

        list_buttons = QHBoxLayout()
        self.add_button = QPushButton("+")
        self.add_button.setToolTip("Add an application folder")
        self.remove_button = QPushButton("−")
        self.remove_button.setToolTip("Remove the selected application")
        list_buttons.addWidget(self.add_button)
        list_buttons.addWidget(self.remove_button)
        list_buttons.addStretch()
        left_layout.addLayout(list_buttons)
        left_pane.setMinimumWidth(200)
        self.splitter.addWidget(left_pane)

        # --- Right Pane: Details and Actions ---
        right_pane = QWidget()
        right_layout = QVBoxLayout(right_pane)
        right_layout.setContentsMargins(20, 10, 20, 10)
        title = QLabel("Application")
        title.setFont(QFont("Sans Serif", 11, QFont.Weight.Bold))
        right_layout.addWidget(title)
        self.detail_panel = ApplicationDetailPanel()
        right_layout.addWidget(self.detail_panel)
        right_layout.addStretch(1)

        action_buttons = QHBoxLayout()
        self.restart_button = QPushButton("Restart")
        self.reload_button = QPushButton("Reload")
        self.revert_button = QPushButton("Revert")
        self.apply_button = QPushButton("Apply")
        self.apply_button.setObjectName("PrimaryButton")
        action_buttons.addWidget(self.restart_button)
        action_buttons.addWidget(self.reload_button)
        action_buttons.addStretch()
        action_buttons.addWidget(self.revert_button)
        action_buttons.addWidget(self.apply_button)
        right_layout.addLayout(action_buttons)
        self.splitter.addWidget(right_pane)
        self.splitter.setSizes([220, 480])

        # --- Connect Signals ---
        self.app_list_widget.currentRowChanged.connect(self.on_selection_changed)
        self.add_button.clicked.connect(self.on_add_clicked)
        self.remove_button.clicked.connect(self.on_remove_clicked)
        self.apply_button.clicked.connect(self.on_apply_clicked)
        self.revert_button.clicked.connect(self.on_revert_clicked)
        self.restart_button.clicked.connect(self.on_restart_clicked)
        self.reload_button.clicked.connect(self.on_reload_clicked)
        self.detail_panel.fieldEdited.connect(self._on_field_edited)

        if load_existing:
            self.load_applications()
        else:
            self._rebuild_list()

    # --- Model ---
    def load_applications(self):
        self.applications = existing_applications(on_dirty=self.application_marked_dirty)
        self._rebuild_list()

    def add_application(self, app_path) -> PassengerApplication:
        app = PassengerApplication.for_path(str(app_path), on_dirty=self.application_marked_dirty)
        self.applications.append(app)
        self._rebuild_list(select=app)
        return app

    def current_application(self):
        row = self.app_list_widget.currentRow()
        if 0 <= row < len(self.applications):
            return self.applications[row]
        return None

    def has_unsaved_changes(self) -> bool:
        return any(app.dirty for app in self.applications)

    def application_marked_dirty(self, app):
        """Dirty notification from a PassengerApplication."""
        logger.debug(f"APPLICATIONS_PAGE: Application marked dirty: {app.host}")
        self._update_item_text(app)
        self._update_buttons()
        self.dirtyStateChanged.emit(True)

    # --- Slots ---
    @Slot(int)
    def on_selection_changed(self, row):
        self.detail_panel.set_application(self.current_application())
        self._update_buttons()

    @Slot()
    def on_add_clicked(self):
        directory = QFileDialog.getExistingDirectory(self, "Select application folder", str(Path.home()))
        if directory:
            self.add_application(directory)

    @Slot()
    def on_remove_clicked(self):
        app = self.current_application()
        if app is None:
            return
        reply = QMessageBox.question(self, "Remove Application",
                                     f"Remove '{app.host}' from the web server configuration?",
                                     QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
                                     QMessageBox.StandardButton.No)
        if reply != QMessageBox.StandardButton.Yes:
            return
        self.remove_application(app)

    def remove_application(self, app):
        if not app.is_new:
            remove_applications([app])
        self.applications.remove(app)
        self._rebuild_list()
        self.dirtyStateChanged.emit(self.has_unsaved_changes())

    @Slot()
    def on_apply_clicked(self):
        for app in self.applications:
            if app.dirty and not app.apply():
                logger.warning(f"APPLICATIONS_PAGE: Could not apply changes to '{app.path}'")
        self._refresh_all()

    @Slot()
    def on_revert_clicked(self):
        app = self.current_application()
        if app is not None:
            app.revert()
        self._refresh_all()

    @Slot()
    def on_restart_clicked(self):
        app = self.current_application()
        if app is not None and not app.is_new:
            app.restart()

    @Slot()
    def on_reload_clicked(self):
        for app in self.applications:
            try:
                app.reload()
            except OSError as e:
                logger.error(f"APPLICATIONS_PAGE: Could not reload '{app.config_path}': {e}")
        self._refresh_all()

    @Slot(str)
    def _on_field_edited(self, key):
        app = self.current_application()
        if app is not None:
            self._update_item_text(app)
        self._update_buttons()

    # --- Helpers ---
    def _item_text(self, app):
        label = app.host or Path(app.path).name or "(untitled)"
        return f"{label} •" if app.dirty else label

    def _update_item_text(self, app):
        if app in self.applications:
            item = self.app_list_widget.item(self.applications.index(app))
            if item is not None:
                item.setText(self._item_text(app))

    def _rebuild_list(self, select=None):
        self.app_list_widget.blockSignals(True)
        self.app_list_widget.clear()
        for app in self.applications:
            self.app_list_widget.addItem(QListWidgetItem(self._item_text(app)))
        self.app_list_widget.blockSignals(False)
        if select is not None and select in self.applications:
            self.app_list_widget.setCurrentRow(self.applications.index(select))
        elif self.applications:
            self.app_list_widget.setCurrentRow(0)
        self.on_selection_changed(self.app_list_widget.currentRow())

    def _refresh_all(self):
        for app in self.applications:
            self._update_item_text(app)
        self.detail_panel.refresh()
        self._update_buttons()
        self.dirtyStateChanged.emit(self.has_unsaved_changes())

    def _update_buttons(self):
        app = self.current_application()
        self.remove_button.setEnabled(app is not None)
        self.restart_button.setEnabled(app is not None and not app.is_new)
        self.revert_button.setEnabled(bool(app and app.revertable))
        self.apply_button.setEnabled(any(a.dirty and a.valid for a in self.applications))
