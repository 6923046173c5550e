"""
Tests for the PassengerApplication record.

The installer/uninstaller helpers are replaced by the ``helper_calls``
fixture, which records (module, decoded payload) pairs.
"""

import pytest

from passengerpane.core import config
from passengerpane.managers.application import (
    PassengerApplication,
    default_host_for_path,
    existing_applications,
    remove_applications,
    serialize_applications_data,
    start_applications,
)

import yaml


class TestDefaultHost:

    def test_lowercases_and_replaces_underscores(self):
        assert default_host_for_path("/Users/me/Sites/My_App") == "my-app.local"

    def test_trailing_slash(self):
        assert default_host_for_path("/srv/Shop_Front/") == "shop-front.local"


class TestConstruction:

    def test_blank_record(self):
        app = PassengerApplication()
        assert app.host == "" and app.path == ""
        assert app.environment == config.DEVELOPMENT
        assert app.allow_mod_rewrite is False
        assert app.vhostname == "*:80"
        assert app.is_new
        assert not (app.dirty or app.valid or app.revertable)

    def test_for_path(self, app_dir):
        notified = []
        app = PassengerApplication.for_path(str(app_dir), on_dirty=notified.append)
        assert app.path == str(app_dir)
        assert app.host == "my-app.local"
        assert app.is_new and app.dirty and app.valid
        assert not app.revertable
        assert notified == [app]

    def test_from_file(self, installed_vhost):
        app = PassengerApplication.from_file(installed_vhost)
        assert app.host == "blog.local"
        assert app.path == "/Users/me/Sites/blog"
        assert app.environment == config.PRODUCTION
        assert app.allow_mod_rewrite is True
        assert "Allow from all" in app.user_defined_data
        assert not app.is_new
        assert not (app.dirty or app.valid or app.revertable)

    def test_from_file_with_missing_directives_uses_defaults(self, apps_dir):
        vhost_file = apps_dir / "bare.local.vhost.conf"
        vhost_file.write_text("<VirtualHost *:80>\n  ServerName bare.local\n</VirtualHost>\n")
        app = PassengerApplication.from_file(vhost_file)
        assert app.host == "bare.local"
        assert app.path == ""
        assert app.environment == config.DEVELOPMENT
        assert app.allow_mod_rewrite is False

    def test_config_path(self, apps_dir):
        app = PassengerApplication.for_path("/srv/blog")
        assert app.config_path == apps_dir / "blog.local.vhost.conf"


class TestEditing:

    def test_setter_marks_dirty_and_revertable(self, installed_vhost):
        notified = []
        app = PassengerApplication.from_file(installed_vhost, on_dirty=notified.append)
        app.environment = config.DEVELOPMENT
        assert app.dirty and app.revertable and app.valid
        assert notified == [app]

    @pytest.mark.parametrize("host, path, expected", [
        ("a.local", "/srv/a", True),
        ("", "/srv/a", False),
        ("a.local", "", False),
    ])
    def test_valid_iff_host_and_path(self, host, path, expected):
        app = PassengerApplication()
        app.set_value("path", path)
        app.set_value("host", host)
        assert app.valid is expected

    def test_setting_path_derives_host_when_empty(self):
        app = PassengerApplication()
        app.path = "/srv/Big_Project"
        assert app.host == "big-project.local"
        assert app.valid

    def test_setting_path_keeps_existing_host(self):
        app = PassengerApplication()
        app.host = "custom.local"
        app.path = "/srv/Big_Project"
        assert app.host == "custom.local"

    def test_on_dirty_sees_final_host_and_validity(self):
        seen = []
        app = PassengerApplication(on_dirty=lambda a: seen.append((a.host, a.valid)))
        app.path = "/srv/My_App"
        assert seen == [("my-app.local", True)]

        app.host = ""
        assert seen[-1] == ("", False)

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            PassengerApplication().set_value("vhostname", "*:8080")

    def test_unsupported_environment(self):
        with pytest.raises(ValueError):
            PassengerApplication().environment = "staging"

    def test_rewrite_is_coerced_to_bool(self):
        app = PassengerApplication()
        app.allow_mod_rewrite = 1
        assert app.allow_mod_rewrite is True


class TestRevert:

    def test_revert_restores_values_and_clears_flags(self, installed_vhost):
        app = PassengerApplication.from_file(installed_vhost)
        before = app.original_values
        app.host = "other.local"
        app.path = "/srv/other"
        app.environment = config.DEVELOPMENT
        app.allow_mod_rewrite = False

        app.revert()

        assert app.host == before["host"]
        assert app.path == before["path"]
        assert app.environment == before["environment"]
        assert app.allow_mod_rewrite == before["allow_mod_rewrite"]
        assert not (app.dirty or app.valid or app.revertable)


class TestApply:

    def test_invalid_record_is_not_applied(self, apps_dir, helper_calls):
        app = PassengerApplication()
        app.host = "nopath.local"
        assert not app.valid
        assert app.apply() is False
        assert helper_calls == []
        assert app.dirty and app.is_new

    def test_existing_record_made_invalid_is_not_applied(self, apps_dir, app_dir, helper_calls):
        vhost_file = apps_dir / "my-app.local.vhost.conf"
        vhost_file.write_text(f'<VirtualHost *:80>\n  ServerName my-app.local\n'
                              f'  DocumentRoot "{app_dir}/public"\n</VirtualHost>\n')
        app = PassengerApplication.from_file(vhost_file)
        app.host = ""

        assert app.apply() is False

        assert helper_calls == []
        assert not (app_dir / "tmp" / "restart.txt").exists()
        assert app.dirty and app.revertable
        assert not app.is_new

    def test_new_record_runs_installer(self, apps_dir, app_dir, helper_calls):
        app = PassengerApplication.for_path(str(app_dir))
        assert app.apply() is True

        assert len(helper_calls) == 1
        module, records = helper_calls[0]
        assert module == config.CONFIG_INSTALLER_MODULE
        assert records[0]["host"] == "my-app.local"
        assert records[0]["path"] == str(app_dir)
        assert records[0]["config_path"] == str(apps_dir / "my-app.local.vhost.conf")
        assert records[0]["environment"] == "development"
        assert records[0]["allow_mod_rewrite"] is False
        assert f'<directory "{app_dir / "public"}">' in records[0]["user_defined_data"]
        assert not (app.is_new or app.dirty or app.valid or app.revertable)

    def test_new_record_does_not_touch_restart_file(self, apps_dir, app_dir, helper_calls):
        PassengerApplication.for_path(str(app_dir)).apply()
        assert not (app_dir / "tmp" / "restart.txt").exists()

    def test_host_change_uninstalls_old_host_first(self, apps_dir, app_dir, helper_calls):
        vhost_file = apps_dir / "old.local.vhost.conf"
        vhost_file.write_text(
            f'<VirtualHost *:80>\n  ServerName old.local\n  DocumentRoot "{app_dir}/public"\n'
            f'  RailsEnv development\n  RailsAllowModRewrite off\n</VirtualHost>\n')
        app = PassengerApplication.from_file(vhost_file)
        app.host = "new.local"

        assert app.apply() is True

        assert [module for module, _ in helper_calls] == [
            config.CONFIG_UNINSTALLER_MODULE,
            config.CONFIG_INSTALLER_MODULE,
        ]
        uninstall_records = helper_calls[0][1]
        install_records = helper_calls[1][1]
        assert uninstall_records[0]["host"] == "old.local"
        assert uninstall_records[0]["config_path"] == str(vhost_file)
        assert install_records[0]["host"] == "new.local"
        assert (app_dir / "tmp" / "restart.txt").is_file()

    def test_existing_record_without_host_change_only_installs(self, apps_dir, app_dir, helper_calls):
        vhost_file = apps_dir / "my-app.local.vhost.conf"
        vhost_file.write_text(
            f'<VirtualHost *:80>\n  ServerName my-app.local\n  DocumentRoot "{app_dir}/public"\n'
            f'  RailsEnv development\n  RailsAllowModRewrite off\n</VirtualHost>\n')
        app = PassengerApplication.from_file(vhost_file)
        app.environment = config.PRODUCTION
        app.apply()

        assert [module for module, _ in helper_calls] == [config.CONFIG_INSTALLER_MODULE]
        assert helper_calls[0][1][0]["environment"] == "production"
        assert helper_calls[0][1][0]["user_defined_data"] == ""

    def test_apply_without_saving(self, apps_dir, app_dir, helper_calls):
        app = PassengerApplication.for_path(str(app_dir))
        assert app.apply(save_config=False) is True
        assert helper_calls == []
        assert not app.is_new

    def test_revert_after_apply_keeps_applied_values(self, installed_vhost, helper_calls, monkeypatch):
        monkeypatch.setattr("passengerpane.core.system_utils.touch_restart_file", lambda path: None)
        app = PassengerApplication.from_file(installed_vhost)
        app.environment = config.DEVELOPMENT
        app.apply()
        app.revert()
        assert app.environment == config.DEVELOPMENT

    def test_restart_touches_restart_file(self, apps_dir, app_dir, helper_calls):
        vhost_file = apps_dir / "my-app.local.vhost.conf"
        vhost_file.write_text(f'<VirtualHost *:80>\n  ServerName my-app.local\n'
                              f'  DocumentRoot "{app_dir}/public"\n</VirtualHost>\n')
        app = PassengerApplication.from_file(vhost_file)
        app.restart()
        assert helper_calls == []
        assert (app_dir / "tmp" / "restart.txt").is_file()


class TestReload:

    def test_reload_picks_up_external_changes(self, installed_vhost):
        app = PassengerApplication.from_file(installed_vhost)
        installed_vhost.write_text(installed_vhost.read_text().replace("RailsEnv production",
                                                                        "RailsEnv development"))
        notified = []
        app._on_dirty = notified.append

        app.reload()

        assert app.environment == config.DEVELOPMENT
        assert app.dirty and app.valid
        assert notified == [app]
        assert app.original_values["environment"] == config.DEVELOPMENT

    def test_reload_without_changes_is_clean(self, installed_vhost):
        app = PassengerApplication.from_file(installed_vhost)
        app.reload()
        assert not app.dirty
        assert app.valid

    def test_reload_ignores_new_records(self, apps_dir, app_dir):
        app = PassengerApplication.for_path(str(app_dir))
        app.reload()
        assert app.host == "my-app.local"


class TestCollection:

    def test_existing_applications_sorted(self, apps_dir):
        for host in ("zeta.local", "alpha.local"):
            (apps_dir / f"{host}.vhost.conf").write_text(
                f'<VirtualHost *:80>\n  ServerName {host}\n  DocumentRoot "/srv/{host}/public"\n</VirtualHost>\n')
        (apps_dir / "notes.txt").write_text("ignored")
        assert [app.host for app in existing_applications()] == ["alpha.local", "zeta.local"]

    def test_existing_applications_without_directory(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "APPS_DIR", tmp_path / "missing")
        assert existing_applications() == []

    def test_start_applications_uses_one_installer_call(self, apps_dir, tmp_path, helper_calls):
        apps = [PassengerApplication.for_path(str(tmp_path / name)) for name in ("one", "two")]
        assert start_applications(apps) is True
        assert len(helper_calls) == 1
        assert [record["host"] for record in helper_calls[0][1]] == ["one.local", "two.local"]
        assert all(not app.is_new and not app.dirty for app in apps)

    def test_start_applications_skips_invalid_records(self, apps_dir, tmp_path, helper_calls):
        good = PassengerApplication.for_path(str(tmp_path / "good"))
        bad = PassengerApplication.for_path(str(tmp_path / "bad"))
        bad.host = ""

        assert start_applications([good, bad]) is True

        assert [record["host"] for record in helper_calls[0][1]] == ["good.local"]
        assert not good.dirty
        assert bad.dirty and bad.is_new

    def test_start_applications_with_nothing_valid(self, apps_dir, helper_calls):
        assert start_applications([PassengerApplication()]) is False
        assert helper_calls == []

    def test_remove_applications(self, installed_vhost, helper_calls):
        app = PassengerApplication.from_file(installed_vhost)
        assert remove_applications([app]) is True
        assert helper_calls == [(config.CONFIG_UNINSTALLER_MODULE, [app.to_dict()])]

    def test_serialize_applications_data(self, installed_vhost):
        app = PassengerApplication.from_file(installed_vhost)
        records = yaml.safe_load(serialize_applications_data([app]))
        assert records == [app.to_dict()]
        assert list(records[0]) == ["config_path", "host", "path", "environment",
                                    "allow_mod_rewrite", "vhostname", "user_defined_data"]
