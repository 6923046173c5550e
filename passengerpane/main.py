import sys
import logging
import logging.handlers

from passengerpane.core import config


# --- Custom Log Formatter for Colors ---
class ColorLogFormatter(logging.Formatter):
    """Adds ANSI color codes to log messages based on level for console output."""

    GREY = "\x1b[38;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    RESET = "\x1b[0m"

    BASE_FORMAT = '%(asctime)s [%(levelname)-7s] %(name)s: %(message)s'
    DATE_FORMAT = '%H:%M:%S'

    FORMATS = {
        logging.DEBUG: GREY + BASE_FORMAT + RESET,
        logging.INFO: BASE_FORMAT,
        logging.WARNING: YELLOW + BASE_FORMAT + RESET,
        logging.ERROR: RED + BASE_FORMAT + RESET,
        logging.CRITICAL: BOLD_RED + BASE_FORMAT + RESET
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.BASE_FORMAT)
        formatter = logging.Formatter(log_fmt, datefmt=self.DATE_FORMAT)
        return formatter.format(record)


def configure_logging():
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(ColorLogFormatter())
    root_logger.addHandler(console_handler)

    if config.ensure_dir(config.LOG_DIR):
        log_file_path = config.LOG_DIR / 'passengerpane.log'
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file_path, maxBytes=1024 * 1024, backupCount=3, encoding='utf-8'
            )
            file_handler.setFormatter(logging.Formatter(ColorLogFormatter.BASE_FORMAT,
                                                        datefmt=ColorLogFormatter.DATE_FORMAT))
            file_handler.setLevel(logging.DEBUG)
            root_logger.addHandler(file_handler)
            logging.info(f"MAIN: File logging initialized at: {log_file_path}")
        except OSError as log_e:
            logging.error(f"MAIN: Failed to set up file logging at {log_file_path}: {log_e}", exc_info=True)
    else:
        logging.warning(f"MAIN: LOG_DIR '{config.LOG_DIR}' could not be ensured. Skipping file logging.")


def main() -> int:
    configure_logging()
    logger = logging.getLogger(__name__)
    config.ensure_base_dirs()

    try:
        from PySide6.QtWidgets import QApplication
        from passengerpane.ui.main_window import MainWindow
    except ImportError as e:
        logger.critical(f"MAIN: Failed to import PySide6 or UI components: {e}", exc_info=True)
        return 1

    app = QApplication(sys.argv)
    app.setApplicationName(config.APP_NAME)

    window = MainWindow()
    logger.info("MAIN: Showing main window...")
    window.show()
    exit_code = app.exec()
    logger.info(f"MAIN: Application exiting with code {exit_code}.")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
