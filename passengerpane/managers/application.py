"""
The Passenger application record edited by the pane.

A PassengerApplication wraps one '<host>.vhost.conf' file. Edits go through
the field setters, which mark the record dirty, notify the owner through the
``on_dirty`` callback and re-validate. ``apply()`` hands the record to the
installer helper; ``revert()`` goes back to the last saved values.
"""
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from ..core import config
from ..core import system_utils
from ..core.vhost_file import read_vhost_file, default_directory_block

logger = logging.getLogger(__name__)

# Fields that can be edited from the UI. Setting one marks the record dirty.
EDITABLE_FIELDS = ('host', 'path', 'environment', 'allow_mod_rewrite')
# Fields remembered for revert() and for uninstalling a renamed host.
SNAPSHOT_FIELDS = ('host', 'path', 'environment', 'allow_mod_rewrite', 'user_defined_data')


def default_host_for_path(app_path) -> str:
    """'/Users/me/Sites/My_App' -> 'my-app.local'"""
    name = Path(str(app_path)).name.lower().replace('_', '-')
    return f"{name}.{config.HOST_TLD}"


class PassengerApplication:

    def __init__(self, on_dirty: Optional[Callable[['PassengerApplication'], None]] = None):
        self._on_dirty = on_dirty

        self._host = ''
        self._path = ''
        self._environment = config.DEVELOPMENT
        self._allow_mod_rewrite = False
        self.vhostname = config.DEFAULT_VHOSTNAME
        self.user_defined_data = ''

        self._new_app = True
        self._dirty = self._valid = self._revertable = False
        self._original_values: Dict[str, Any] = {}
        self._set_original_values()

    @classmethod
    def from_file(cls, file_path, on_dirty=None) -> 'PassengerApplication':
        """Loads an installed application. OSError from reading the file propagates."""
        app = cls(on_dirty)
        app._new_app = False
        app._load_data_from_vhost_file(file_path)
        app._set_original_values()
        return app

    @classmethod
    def for_path(cls, app_path, on_dirty=None) -> 'PassengerApplication':
        """A new, not yet installed application for a directory picked by the user."""
        app = cls(on_dirty)
        app._path = str(app_path)
        app._host = default_host_for_path(app_path)
        app._valid = True
        app._set_original_values()
        app.mark_dirty()
        return app

    def __repr__(self):
        return f"<PassengerApplication host={self._host!r} path={self._path!r} new={self._new_app} dirty={self._dirty}>"

    # --- Fields ---
    @property
    def host(self) -> str:
        return self._host

    @host.setter
    def host(self, value):
        self.set_value('host', value)

    @property
    def path(self) -> str:
        return self._path

    @path.setter
    def path(self, value):
        self.set_value('path', value)

    @property
    def environment(self) -> str:
        return self._environment

    @environment.setter
    def environment(self, value):
        self.set_value('environment', value)

    @property
    def allow_mod_rewrite(self) -> bool:
        return self._allow_mod_rewrite

    @allow_mod_rewrite.setter
    def allow_mod_rewrite(self, value):
        self.set_value('allow_mod_rewrite', value)

    # --- State flags ---
    @property
    def is_new(self) -> bool:
        return self._new_app

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def valid(self) -> bool:
        return self._valid

    @property
    def revertable(self) -> bool:
        return self._revertable

    @property
    def original_values(self) -> Dict[str, Any]:
        return dict(self._original_values)

    @property
    def config_path(self) -> Path:
        return self._config_path_for(self._host)

    # --- Editing ---
    def set_value(self, key: str, value):
        """
        Single entry point for user edits.

        Raises:
            ValueError: for an unknown field or an unsupported environment.
        """
        if key not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown application field '{key}'")
        if key == 'environment' and value not in config.ENVIRONMENTS:
            raise ValueError(f"Unsupported environment '{value}', expected one of {config.ENVIRONMENTS}")
        if key == 'allow_mod_rewrite':
            value = bool(value)
        elif key in ('host', 'path'):
            value = '' if value is None else str(value)

        setattr(self, f"_{key}", value)
        self._revertable = True
        if key == 'path' and not self._host and self._path:
            self._host = default_host_for_path(self._path)
        self._valid = bool(self._host) and bool(self._path)
        # Observers must see the settled record
        self.mark_dirty()

    def mark_dirty(self):
        self._dirty = True
        logger.debug(f"APPLICATION: Marked dirty: {self._path or '(no path)'}")
        if self._on_dirty is not None:
            self._on_dirty(self)

    def revert(self):
        """Restores the last saved values and clears the dirty/valid/revertable flags."""
        logger.info(f"APPLICATION: Reverting changes to application: {self._path}")
        for key, value in self._original_values.items():
            self._assign(key, value)
        self._valid = self._dirty = self._revertable = False

    def reload(self):
        """Re-reads the vhost file, e.g. after it was edited outside the pane."""
        if self._new_app:
            return
        self._load_data_from_vhost_file()
        changed = self.values_changed_after_load()
        self._set_original_values()
        self._valid = True
        if changed:
            self.mark_dirty()

    def values_changed_after_load(self) -> bool:
        for key, value in self._original_values.items():
            # user_defined_data is empty for an app that was never saved
            if key == 'user_defined_data' and not value:
                continue
            if self._current_value(key) != value:
                return True
        return False

    # --- Applying ---
    def apply(self, save_config: bool = True) -> bool:
        if not self._valid:
            logger.warning(f"APPLICATION: Not applying changes to invalid application: {self._path}")
            return False

        logger.info(f"APPLICATION: Applying changes to application: {self._path}")
        if save_config:
            if self._new_app:
                self.start()
            else:
                self.restart()
        # TODO: report installer failures to the pane instead of assuming success.
        self._new_app = False
        self._dirty = self._valid = self._revertable = False
        self._set_original_values()
        return True

    def start(self):
        logger.info(f"APPLICATION: Starting application: {self._path}")
        self.save_config()

    def restart(self):
        logger.info(f"APPLICATION: Restarting application: {self._path}")
        original_host = self._original_values.get('host')
        if original_host and self._host != original_host:
            logger.info(f"APPLICATION: Host changed from '{original_host}' to '{self._host}', removing old vhost.")
            _run_helper(config.CONFIG_UNINSTALLER_MODULE, _dump_records([self._original_payload()]))
        if self._dirty:
            self.save_config()

        if not self._path:
            logger.warning("APPLICATION: Application has no path, not touching restart file.")
            return
        try:
            system_utils.touch_restart_file(self._path)
        except OSError as e:
            logger.error(f"APPLICATION: Could not touch restart file for {self._path}: {e}")

    def save_config(self):
        logger.info(f"APPLICATION: Saving configuration: {self.config_path}")
        _run_helper(config.CONFIG_INSTALLER_MODULE, _dump_records([self.to_dict()]))

    def to_dict(self) -> Dict[str, Any]:
        """Record as passed to the installer/uninstaller helpers."""
        if self._new_app:
            self.user_defined_data = default_directory_block(self._path)
        return {
            'config_path': str(self.config_path),
            'host': self._host,
            'path': self._path,
            'environment': self._environment,
            'allow_mod_rewrite': bool(self._allow_mod_rewrite),
            'vhostname': self.vhostname,
            'user_defined_data': self.user_defined_data,
        }

    # --- Internals ---
    def _config_path_for(self, host: str) -> Path:
        return Path(config.APPS_DIR) / f"{host}{config.VHOST_FILE_SUFFIX}"

    def _original_payload(self) -> Dict[str, Any]:
        payload = dict(self._original_values)
        payload['config_path'] = str(self._config_path_for(payload.get('host', '')))
        payload['vhostname'] = self.vhostname
        return payload

    def _current_value(self, key: str):
        return getattr(self, f"_{key}") if key in EDITABLE_FIELDS else getattr(self, key)

    def _assign(self, key: str, value):
        if key in EDITABLE_FIELDS:
            setattr(self, f"_{key}", value)
        else:
            setattr(self, key, value)

    def _set_original_values(self):
        self._original_values = {key: self._current_value(key) for key in SNAPSHOT_FIELDS}

    def _load_data_from_vhost_file(self, file_path=None):
        file_path = Path(file_path) if file_path else self.config_path
        parsed = read_vhost_file(file_path)

        missing = parsed.missing_fields()
        if missing:
            logger.warning(f"APPLICATION: {file_path} is missing directives ({', '.join(missing)}). Using defaults.")

        self._host = parsed.host or ''
        self._path = parsed.path or ''
        self._environment = parsed.environment or config.DEVELOPMENT
        self._allow_mod_rewrite = bool(parsed.allow_mod_rewrite)
        self.vhostname = parsed.vhostname or config.DEFAULT_VHOSTNAME
        self.user_defined_data = parsed.user_defined_data


# --- Collection level operations ---

def _dump_records(records: List[Dict[str, Any]]) -> str:
    return yaml.safe_dump(records, default_flow_style=False, sort_keys=False)


def _run_helper(helper_module: str, payload: str) -> bool:
    success, message = system_utils.run_config_helper(helper_module, payload)
    if not success:
        logger.error(f"APPLICATION: {message}")
    return success


def serialize_applications_data(apps: List[PassengerApplication]) -> str:
    return _dump_records([app.to_dict() for app in apps])


def existing_applications(on_dirty=None) -> List[PassengerApplication]:
    """Loads every '*.vhost.conf' in the applications directory."""
    apps_dir = Path(config.APPS_DIR)
    if not apps_dir.is_dir():
        logger.info(f"APPLICATION: Applications directory {apps_dir} does not exist yet.")
        return []

    apps = []
    for vhost_file in sorted(apps_dir.glob(f"*{config.VHOST_FILE_SUFFIX}")):
        try:
            apps.append(PassengerApplication.from_file(vhost_file, on_dirty))
        except OSError as e:
            logger.error(f"APPLICATION: Could not read {vhost_file}: {e}")
    logger.info(f"APPLICATION: Loaded {len(apps)} application(s) from {apps_dir}")
    return apps


def start_applications(apps: List[PassengerApplication]) -> bool:
    """
    Installs several applications with one helper call.

    Invalid records are skipped and left dirty. Returns False when nothing
    valid was given or the installer failed.
    """
    valid_apps = [app for app in apps if app.valid]
    for app in apps:
        if not app.valid:
            logger.warning(f"APPLICATION: Not starting invalid application: {app.path or '(no path)'}")
    if not valid_apps:
        return False

    logger.info(f"APPLICATION: Starting applications: {', '.join(app.host for app in valid_apps)}")
    success = _run_helper(config.CONFIG_INSTALLER_MODULE, serialize_applications_data(valid_apps))
    for app in valid_apps:
        app.apply(save_config=False)
    return success


def remove_applications(apps: List[PassengerApplication]) -> bool:
    logger.info(f"APPLICATION: Removing applications: {', '.join(app.host for app in apps)}")
    return _run_helper(config.CONFIG_UNINSTALLER_MODULE, serialize_applications_data(apps))
