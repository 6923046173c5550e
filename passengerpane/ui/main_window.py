import logging

from PySide6.QtWidgets import QMainWindow, QMessageBox
from PySide6.QtCore import Slot, QEvent

from ..core import config
from .applications_page import ApplicationsPage

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle(f"{config.APP_NAME}[*]")
        self.resize(760, 420)

        self.applications_page = ApplicationsPage(self)
        self.applications_page.dirtyStateChanged.connect(self.on_dirty_state_changed)
        self.setCentralWidget(self.applications_page)
        self.statusBar().showMessage(f"Applications directory: {config.APPS_DIR}")

    @Slot(bool)
    def on_dirty_state_changed(self, dirty):
        self.setWindowModified(dirty)

    def changeEvent(self, event):
        # Pick up vhost files edited by hand while the window was in the background
        if event.type() == QEvent.Type.ActivationChange and self.isActiveWindow():
            if not self.applications_page.has_unsaved_changes():
                self.applications_page.on_reload_clicked()
        super().changeEvent(event)

    def closeEvent(self, event):
        if not self.applications_page.has_unsaved_changes():
            event.accept()
            return
        reply = QMessageBox.question(
            self, "Unsaved Changes",
            "Some applications have changes that were not applied. Apply them now?",
            QMessageBox.StandardButton.Apply | QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel,
            QMessageBox.StandardButton.Apply)
        if reply == QMessageBox.StandardButton.Cancel:
            event.ignore()
            return
        if reply == QMessageBox.StandardButton.Apply:
            logger.info("MAIN_WINDOW: Applying pending changes before quitting.")
            self.applications_page.on_apply_clicked()
        event.accept()
