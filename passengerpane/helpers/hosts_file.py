"""Marker-tagged entries in the hosts file, one line per application host."""
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def _entry_line(host, ip, marker):
    return f"{ip}\t{host}\t{marker}"


def _is_managed_entry(line, host, marker):
    # Only lines we wrote ourselves are ever touched
    if marker not in line:
        return False
    fields = line.split(marker, 1)[0].split()
    return len(fields) >= 2 and host in fields[1:]


def _write_atomically(hosts_path: Path, lines):
    content = "\n".join(lines) + "\n"
    with tempfile.NamedTemporaryFile('w', dir=hosts_path.parent, delete=False, encoding='utf-8',
                                     prefix=f"{hosts_path.name}.tmp.") as temp_f:
        temp_path = Path(temp_f.name)
        temp_f.write(content)
        temp_f.flush()
        os.fsync(temp_f.fileno())
    try:
        if hosts_path.exists():
            temp_path.chmod(hosts_path.stat().st_mode & 0o777)
        os.replace(temp_path, hosts_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()


def add_host_entry(hosts_path, host, marker, ip="127.0.0.1"):
    """
    Adds '<ip> <host> <marker>' unless a managed entry for host exists.

    Returns:
        bool: True if the file was changed.
    """
    hosts_path = Path(hosts_path)
    lines = hosts_path.read_text(encoding='utf-8').splitlines() if hosts_path.exists() else []
    if any(_is_managed_entry(line, host, marker) for line in lines):
        logger.info(f"HOSTS_FILE: Entry for '{host}' already present in {hosts_path}")
        return False
    lines.append(_entry_line(host, ip, marker))
    _write_atomically(hosts_path, lines)
    logger.info(f"HOSTS_FILE: Added entry {ip} {host} to {hosts_path}")
    return True


def remove_host_entry(hosts_path, host, marker):
    """Removes managed entries for host. Returns True if the file was changed."""
    hosts_path = Path(hosts_path)
    if not hosts_path.exists():
        logger.info(f"HOSTS_FILE: {hosts_path} does not exist, nothing to remove.")
        return False
    lines = hosts_path.read_text(encoding='utf-8').splitlines()
    kept = [line for line in lines if not _is_managed_entry(line, host, marker)]
    if len(kept) == len(lines):
        logger.info(f"HOSTS_FILE: No entry for '{host}' in {hosts_path}")
        return False
    _write_atomically(hosts_path, kept)
    logger.info(f"HOSTS_FILE: Removed entry for '{host}' from {hosts_path}")
    return True
