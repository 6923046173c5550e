#!/usr/bin/env python3
"""
Passenger Pane config installer

Writes one vhost file per application record, registers the hosts in the
hosts file and restarts Apache. Invoked by the pane as
``python -m passengerpane.helpers.config_installer [options] PAYLOAD``.
"""
import logging
import sys
from pathlib import Path

from passengerpane.core.vhost_file import render_vhost
from passengerpane.helpers import _shared
from passengerpane.helpers.hosts_file import add_host_entry

logger = logging.getLogger(__name__)


def install_application(record, args):
    config_path = _shared.config_path_for(record, args.apps_dir)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(render_vhost(record), encoding='utf-8')
    config_path.chmod(0o644)
    logger.info(f"INSTALLER: Wrote {config_path}")
    add_host_entry(args.hosts_path, record['host'], args.hosts_marker)


def main(argv=None):
    args = _shared.build_parser("Installs Passenger application vhosts.").parse_args(argv)

    try:
        records = _shared.load_payload(args.payload, args.apps_dir)
    except ValueError as e:
        logger.error(f"INSTALLER: {e}")
        return _shared.EXIT_BAD_PAYLOAD

    try:
        for record in records:
            install_application(record, args)
        _shared.ensure_vhosts_included(args.httpd_conf, args.apps_dir)
    except OSError as e:
        logger.error(f"INSTALLER: File operation failed: {e}")
        return _shared.EXIT_FILE_ERROR

    if records and not args.skip_restart:
        if not _shared.restart_web_server(args.apachectl_path):
            return _shared.EXIT_RESTART_FAILED
    logger.info(f"INSTALLER: Installed {len(records)} application(s) into {Path(args.apps_dir)}")
    return _shared.EXIT_OK


if __name__ == "__main__":
    _shared.setup_logging()
    sys.exit(main())
