#!/usr/bin/env python3
"""
Passenger Pane config uninstaller

Removes the vhost files and hosts entries of the given application records
and restarts Apache.
"""
import logging
import sys

from passengerpane.helpers import _shared
from passengerpane.helpers.hosts_file import remove_host_entry

logger = logging.getLogger(__name__)


def uninstall_application(record, args):
    config_path = _shared.config_path_for(record, args.apps_dir)
    if config_path.is_file():
        config_path.unlink()
        logger.info(f"UNINSTALLER: Removed {config_path}")
    else:
        logger.info(f"UNINSTALLER: {config_path} already absent.")
    remove_host_entry(args.hosts_path, record['host'], args.hosts_marker)


def main(argv=None):
    args = _shared.build_parser("Removes Passenger application vhosts.").parse_args(argv)

    try:
        records = _shared.load_payload(args.payload, args.apps_dir)
    except ValueError as e:
        logger.error(f"UNINSTALLER: {e}")
        return _shared.EXIT_BAD_PAYLOAD

    try:
        for record in records:
            uninstall_application(record, args)
    except OSError as e:
        logger.error(f"UNINSTALLER: File operation failed: {e}")
        return _shared.EXIT_FILE_ERROR

    if records and not args.skip_restart:
        if not _shared.restart_web_server(args.apachectl_path):
            return _shared.EXIT_RESTART_FAILED
    return _shared.EXIT_OK


if __name__ == "__main__":
    _shared.setup_logging()
    sys.exit(main())
