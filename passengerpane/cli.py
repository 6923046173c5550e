import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from passengerpane.core import config
from passengerpane.managers.application import (
    PassengerApplication,
    existing_applications,
    remove_applications,
)

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    root_logger = logging.getLogger()
    if not root_logger.hasHandlers():
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)-7s] %(name)s (CLI): %(message)s',
                                               datefmt='%H:%M:%S'))
        root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _find_application(host: str) -> Optional[PassengerApplication]:
    for app in existing_applications():
        if app.host == host:
            return app
    logger.error(f"CLI: No application with host '{host}' in {config.APPS_DIR}")
    return None


def _apply_field_options(app: PassengerApplication, args) -> None:
    if getattr(args, 'host', None):
        app.host = args.host
    if getattr(args, 'path', None):
        app.path = str(Path(args.path).resolve())
    if getattr(args, 'environment', None):
        app.environment = args.environment
    if getattr(args, 'rewrite', None) is not None:
        app.allow_mod_rewrite = args.rewrite


def cmd_list(args) -> int:
    for app in existing_applications():
        print(f"{app.host}\t{app.path}\t{app.environment}")
    return 0


def cmd_show(args) -> int:
    app = _find_application(args.name)
    if app is None:
        return 1
    print(f"host:              {app.host}")
    print(f"path:              {app.path}")
    print(f"environment:       {app.environment}")
    print(f"allow_mod_rewrite: {'on' if app.allow_mod_rewrite else 'off'}")
    print(f"vhostname:         {app.vhostname}")
    print(f"config_path:       {app.config_path}")
    if app.user_defined_data:
        print("user_defined_data:")
        print(app.user_defined_data)
    return 0


def cmd_add(args) -> int:
    app_path = Path(args.app_path).resolve()
    if not app_path.is_dir():
        logger.error(f"CLI: '{app_path}' is not a directory.")
        return 1
    app = PassengerApplication.for_path(str(app_path))
    _apply_field_options(app, args)
    if not app.apply():
        return 1
    print(app.host)
    return 0


def cmd_set(args) -> int:
    app = _find_application(args.name)
    if app is None:
        return 1
    try:
        _apply_field_options(app, args)
    except ValueError as e:
        logger.error(f"CLI: {e}")
        return 1
    if not app.dirty:
        logger.warning("CLI: Nothing to change.")
        return 0
    return 0 if app.apply() else 1


def cmd_restart(args) -> int:
    app = _find_application(args.name)
    if app is None:
        return 1
    app.restart()
    return 0


def cmd_remove(args) -> int:
    app = _find_application(args.name)
    if app is None:
        return 1
    return 0 if remove_applications([app]) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="passengerpane-cli",
                                     description="Manage Passenger application virtual hosts.")
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debug output to stderr.')
    subparsers = parser.add_subparsers(dest='command')

    list_parser = subparsers.add_parser('list', help='List installed applications.')
    list_parser.set_defaults(func=cmd_list)

    show_parser = subparsers.add_parser('show', help='Show one application.')
    show_parser.add_argument('name', metavar='HOST')
    show_parser.set_defaults(func=cmd_show)

    add_parser = subparsers.add_parser('add', help='Add and install an application directory.')
    add_parser.add_argument('app_path', metavar='DIR_PATH')
    add_parser.add_argument('--host', help='Host name (default: <dir-name>.local)')
    add_parser.add_argument('--production', dest='environment', action='store_const',
                            const=config.PRODUCTION, default=None)
    add_parser.add_argument('--rewrite', dest='rewrite', action='store_true', default=None,
                            help='Allow mod_rewrite for this application.')
    add_parser.set_defaults(func=cmd_add)

    set_parser = subparsers.add_parser('set', help='Change an installed application.')
    set_parser.add_argument('name', metavar='HOST')
    set_parser.add_argument('--host')
    set_parser.add_argument('--path')
    set_parser.add_argument('--environment', choices=config.ENVIRONMENTS)
    rewrite_group = set_parser.add_mutually_exclusive_group()
    rewrite_group.add_argument('--rewrite', dest='rewrite', action='store_true', default=None)
    rewrite_group.add_argument('--no-rewrite', dest='rewrite', action='store_false')
    set_parser.set_defaults(func=cmd_set)

    restart_parser = subparsers.add_parser('restart', help='Restart an application.')
    restart_parser.add_argument('name', metavar='HOST')
    restart_parser.set_defaults(func=cmd_restart)

    remove_parser = subparsers.add_parser('remove', help='Uninstall an application.')
    remove_parser.add_argument('name', metavar='HOST')
    remove_parser.set_defaults(func=cmd_remove)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if not getattr(args, 'func', None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
