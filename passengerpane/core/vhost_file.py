"""
Reading and writing Passenger virtual host files.

A vhost file managed by the pane looks like this::

    <VirtualHost *:80>
      ServerName my-app.local
      DocumentRoot "/Users/me/Sites/my_app/public"
      RailsEnv development
      RailsAllowModRewrite off
      <directory "/Users/me/Sites/my_app/public">
        Order allow,deny
        Allow from all
      </directory>
    </VirtualHost>

Everything that is not one of the recognised directives is kept verbatim as
the "user defined data" block, so hand edits survive a load/save cycle.
"""
import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_VHOST_OPEN_RE = re.compile(r'^\s*<VirtualHost\s+(.+?)\s*>\s*$')
_VHOST_CLOSE_RE = re.compile(r'^\s*</VirtualHost>\s*$')
_SERVER_NAME_RE = re.compile(r'^\s*ServerName\s+(\S.*?)\s*$')
_DOCUMENT_ROOT_RE = re.compile(r'^\s*DocumentRoot\s+"(.+)/public"\s*$')
_RAILS_ENV_RE = re.compile(r'^\s*RailsEnv\s+(development|production)\s*$')
_MOD_REWRITE_RE = re.compile(r'^\s*RailsAllowModRewrite\s+(on|off)\s*$')

# (field, pattern, converter)
_DIRECTIVES = [
    ('vhostname', _VHOST_OPEN_RE, str),
    ('host', _SERVER_NAME_RE, str),
    ('path', _DOCUMENT_ROOT_RE, str),
    ('environment', _RAILS_ENV_RE, str),
    ('allow_mod_rewrite', _MOD_REWRITE_RE, lambda value: value == 'on'),
]


@dataclass
class ParsedVhost:
    """Fields found in a vhost file. None means the directive was absent or malformed."""
    vhostname: Optional[str] = None
    host: Optional[str] = None
    path: Optional[str] = None
    environment: Optional[str] = None
    allow_mod_rewrite: Optional[bool] = None
    user_defined_data: str = ""

    def missing_fields(self) -> List[str]:
        return [name for name in ('vhostname', 'host', 'path', 'environment', 'allow_mod_rewrite')
                if getattr(self, name) is None]


def parse_vhost(text: str) -> ParsedVhost:
    """
    Scans vhost file text line by line.

    Directives may appear in any order; only the first occurrence of each is
    consumed; later duplicates stay in the user defined block. Never raises.
    """
    parsed = ParsedVhost()
    leftover: List[str] = []
    seen_close = False

    for line in (text or "").splitlines():
        if not seen_close and _VHOST_CLOSE_RE.match(line):
            seen_close = True
            continue
        for field_name, pattern, convert in _DIRECTIVES:
            if getattr(parsed, field_name) is not None:
                continue
            match = pattern.match(line)
            if match:
                setattr(parsed, field_name, convert(match.group(1)))
                break
        else:
            leftover.append(line)

    # Drop leading blank lines but keep the indentation of the first real one
    while leftover and not leftover[0].strip():
        leftover.pop(0)
    parsed.user_defined_data = "\n".join(leftover).rstrip()

    missing = parsed.missing_fields()
    if missing:
        logger.debug(f"VHOST_FILE: Directives not found while parsing: {', '.join(missing)}")
    return parsed


def read_vhost_file(file_path) -> ParsedVhost:
    """Reads and parses a vhost file. OSError propagates to the caller."""
    file_path = Path(file_path)
    logger.debug(f"VHOST_FILE: Reading {file_path}")
    return parse_vhost(file_path.read_text(encoding='utf-8'))


def default_directory_block(app_path: str) -> str:
    """Access block written into the vhost of a freshly added application."""
    public_dir = str(Path(app_path or "") / 'public')
    return (f'  <directory "{public_dir}">\n'
            f'    Order allow,deny\n'
            f'    Allow from all\n'
            f'  </directory>')


def render_vhost(data: Dict[str, Any]) -> str:
    """
    Builds vhost file text from an application record as produced by
    PassengerApplication.to_dict().
    """
    rewrite = 'on' if data.get('allow_mod_rewrite') else 'off'
    lines = [
        f"<VirtualHost {data.get('vhostname') or '*:80'}>",
        f"  ServerName {data.get('host', '')}",
        f"  DocumentRoot \"{data.get('path', '')}/public\"",
        f"  RailsEnv {data.get('environment') or 'development'}",
        f"  RailsAllowModRewrite {rewrite}",
    ]
    user_defined_data = (data.get('user_defined_data') or "").rstrip()
    if user_defined_data.strip():
        lines.append(user_defined_data)
    lines.append("</VirtualHost>")
    return "\n".join(lines) + "\n"
