import sys
from pathlib import Path

import pytest
import yaml

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from passengerpane.core import config
from passengerpane.core import system_utils


SAMPLE_VHOST = """<VirtualHost *:80>
  ServerName blog.local
  DocumentRoot "/Users/me/Sites/blog/public"
  RailsEnv production
  RailsAllowModRewrite on
  <directory "/Users/me/Sites/blog/public">
    Order allow,deny
    Allow from all
  </directory>
</VirtualHost>
"""


@pytest.fixture
def apps_dir(tmp_path, monkeypatch):
    """Points the pane at an empty applications directory."""
    directory = tmp_path / "passenger_pane_vhosts"
    directory.mkdir()
    monkeypatch.setattr(config, "APPS_DIR", directory)
    return directory


@pytest.fixture
def helper_calls(monkeypatch):
    """Records installer/uninstaller invocations instead of spawning processes."""
    calls = []

    def fake_run_config_helper(helper_module, payload):
        calls.append((helper_module, yaml.safe_load(payload)))
        return True, "ok"

    monkeypatch.setattr(system_utils, "run_config_helper", fake_run_config_helper)
    return calls


@pytest.fixture
def app_dir(tmp_path):
    """A Rails application folder on disk."""
    directory = tmp_path / "Sites" / "My_App"
    (directory / "public").mkdir(parents=True)
    return directory


@pytest.fixture
def installed_vhost(apps_dir):
    vhost_file = apps_dir / "blog.local.vhost.conf"
    vhost_file.write_text(SAMPLE_VHOST, encoding="utf-8")
    return vhost_file
