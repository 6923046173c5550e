"""
Pieces shared by the config installer and uninstaller.

Both helpers run in their own process (possibly through pkexec) and receive
the application list as a single YAML argument.
"""
import argparse
import logging
import re
import subprocess
import sys
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BAD_PAYLOAD = 1
EXIT_FILE_ERROR = 2
EXIT_RESTART_FAILED = 3

VHOSTS_INCLUDE_MARKER = "# Added by the Passenger preference pane"
VHOST_FILE_SUFFIX = ".vhost.conf"

# Allowlists for values taken from the payload (the helpers may run as root)
HOST_NAME_RE = re.compile(r'[a-zA-Z0-9](?:[a-zA-Z0-9.\-]*[a-zA-Z0-9])?')
ALLOWED_ENVIRONMENTS = ["development", "production"]


def build_parser(description):
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--apps-dir", required=True, help="Directory holding the *.vhost.conf files")
    parser.add_argument("--hosts-path", default="/etc/hosts")
    parser.add_argument("--hosts-marker", default="# Added by Passenger Pane")
    parser.add_argument("--httpd-conf", default="/private/etc/apache2/httpd.conf")
    parser.add_argument("--apachectl-path", default="/usr/sbin/apachectl")
    parser.add_argument("--skip-restart", action="store_true", help="Do not restart Apache afterwards")
    parser.add_argument("payload", help="YAML list of application records")
    return parser


def setup_logging():
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, stream=sys.stderr,
                            format='%(asctime)s [%(levelname)-7s] %(name)s: %(message)s', datefmt='%H:%M:%S')


def load_payload(text, apps_dir=None):
    """
    Parses the YAML payload into a list of records that each have a host.

    Every value that ends up in a file name, the hosts file or a vhost
    directive line is checked here, before anything is written. When
    apps_dir is given, each record's config path must lie inside it.

    Raises:
        ValueError: if the payload is not a list of valid application records.
    """
    try:
        records = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Payload is not valid YAML: {e}") from e
    if records is None:
        return []
    if not isinstance(records, list):
        raise ValueError("Payload must be a list of application records.")
    for record in records:
        if not isinstance(record, dict) or not record.get('host'):
            raise ValueError(f"Invalid application record: {record!r}")
        _validate_record(record)
        if apps_dir is not None:
            config_path_for(record, apps_dir)
    return records


def _validate_record(record):
    host = record['host']
    if not isinstance(host, str) or not HOST_NAME_RE.fullmatch(host):
        raise ValueError(f"Invalid characters in host name: {host!r}")
    environment = record.get('environment')
    if environment is not None and environment not in ALLOWED_ENVIRONMENTS:
        raise ValueError(f"Unsupported environment: {environment!r}")
    for key in ('path', 'vhostname'):
        value = record.get(key)
        if value is not None and ('\n' in str(value) or '\r' in str(value)):
            raise ValueError(f"Line break in '{key}': {value!r}")


def config_path_for(record, apps_dir):
    """
    Vhost file for a record: its 'config_path' if given, else '<apps_dir>/<host>.vhost.conf'.

    Raises:
        ValueError: if the path is not inside apps_dir.
    """
    apps_dir = Path(apps_dir)
    if record.get('config_path'):
        config_path = Path(record['config_path'])
    else:
        config_path = apps_dir / f"{record['host']}{VHOST_FILE_SUFFIX}"
    if config_path.resolve().parent != apps_dir.resolve():
        raise ValueError(f"Config path {config_path} is outside {apps_dir}")
    return config_path


def vhosts_include_block(apps_dir):
    return (
        f"\n{VHOSTS_INCLUDE_MARKER}\n"
        "# Make sure to include the Passenger configuration (the LoadModule,\n"
        "# PassengerRoot, and PassengerRuby directives) before this section.\n"
        "<IfModule passenger_module>\n"
        "  NameVirtualHost *:80\n"
        "  <VirtualHost *:80>\n"
        "    ServerName _default_\n"
        "  </VirtualHost>\n"
        f"  Include {Path(apps_dir)}/*.conf\n"
        "</IfModule>\n"
    )


def ensure_vhosts_included(httpd_conf, apps_dir):
    """
    Appends the Include block for the applications directory to httpd.conf once.

    Returns:
        bool: True if httpd.conf was changed.
    """
    httpd_conf = Path(httpd_conf)
    if not httpd_conf.is_file():
        logger.warning(f"HELPER: {httpd_conf} not found, not adding the vhosts Include.")
        return False
    content = httpd_conf.read_text(encoding='utf-8')
    if VHOSTS_INCLUDE_MARKER in content:
        return False
    with open(httpd_conf, 'a', encoding='utf-8') as f:
        f.write(vhosts_include_block(apps_dir))
    logger.info(f"HELPER: Added vhosts Include for {apps_dir} to {httpd_conf}")
    return True


def restart_web_server(apachectl_path):
    """Gracefully restarts Apache. Returns True on success."""
    if not Path(apachectl_path).is_file():
        logger.error(f"HELPER: apachectl not found at {apachectl_path}")
        return False
    command = [str(apachectl_path), "graceful"]
    logger.info(f"HELPER: Executing: {' '.join(command)}")
    try:
        result = subprocess.run(command, capture_output=True, text=True, check=False)
    except OSError as e:
        logger.error(f"HELPER: Could not run apachectl: {e}")
        return False
    if result.returncode != 0:
        logger.error(f"HELPER: apachectl graceful failed (Code: {result.returncode}): {result.stderr.strip()}")
        return False
    return True
