import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# --- Base Directories ---
CONFIG_DIR = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config')) / 'passengerpane'
LOG_DIR = CONFIG_DIR / 'logs'

# --- Application (VirtualHost) Storage ---
# One '<host>.vhost.conf' file per application, included by the Apache config.
APPS_DIR = Path(os.environ.get('PASSENGERPANE_APPS_DIR', '/private/etc/apache2/passenger_pane_vhosts'))
VHOST_FILE_SUFFIX = ".vhost.conf"

# --- Application Defaults ---
DEVELOPMENT = "development"
PRODUCTION = "production"
ENVIRONMENTS = (DEVELOPMENT, PRODUCTION)
HOST_TLD = "local"
DEFAULT_VHOSTNAME = "*:80"

# Passenger restarts an application when this file's mtime changes
RESTART_DIR_NAME = "tmp"
RESTART_FILE_NAME = "restart.txt"

# --- System Interaction Paths ---
HTTPD_CONF = Path(os.environ.get('PASSENGERPANE_HTTPD_CONF', '/private/etc/apache2/httpd.conf'))
APACHECTL_PATH = os.environ.get('PASSENGERPANE_APACHECTL', '/usr/sbin/apachectl')
HOSTS_FILE_PATH = os.environ.get('PASSENGERPANE_HOSTS_FILE', '/etc/hosts')
HOSTS_MARKER = "# Added by Passenger Pane"

# --- Helper Scripts ---
# Run as 'python -m <module>' so they work from an installed package.
CONFIG_INSTALLER_MODULE = "passengerpane.helpers.config_installer"
CONFIG_UNINSTALLER_MODULE = "passengerpane.helpers.config_uninstaller"
# The apps dir, hosts file and httpd.conf are usually root owned.
USE_PKEXEC = os.environ.get('PASSENGERPANE_USE_PKEXEC', '0') == '1'

# --- Misc ---
APP_NAME = "Passenger Pane"


def ensure_dir(path: Path):
    """Creates a directory if it doesn't exist. Returns True on success."""
    try:
        path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Ensured directory exists: {path}")
        return True
    except OSError as e:
        logger.error(f"CONFIG_ERROR: Error creating directory {path}: {e}", exc_info=True)
        return False


def ensure_base_dirs():
    # Only the pane's own directories. APPS_DIR belongs to the installer,
    # which may need elevated rights to create it.
    all_ok = True
    for d_path in (CONFIG_DIR, LOG_DIR):
        if not ensure_dir(d_path):
            all_ok = False
    if not all_ok:
        logger.warning("CONFIG_WARNING: Some base directories could not be created during startup.")
    else:
        logger.info("Base directories ensured successfully.")
    return all_ok
