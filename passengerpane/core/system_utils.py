import subprocess
import shutil
import shlex
import sys
from pathlib import Path
import logging
from typing import List, Tuple

from . import config

logger = logging.getLogger(__name__)


def run_command(command_list: List[str]) -> Tuple[int, str, str]:
    """Runs a system command and captures output/return code."""
    joined_command = shlex.join(command_list)
    logger.debug(f"SYSTEM_UTILS: Running command: {joined_command}")
    try:
        result = subprocess.run(
            command_list,
            capture_output=True,
            text=True,
            check=False,
            encoding='utf-8',
            errors='replace'
        )
        if result.returncode != 0:
            log_message = (
                f"SYSTEM_UTILS: Command failed (Code: {result.returncode}): {joined_command}\n"
                f"  Stdout: {result.stdout.strip()}\n"
                f"  Stderr: {result.stderr.strip()}"
            )
            logger.warning(log_message)
        return result.returncode, result.stdout.strip(), result.stderr.strip()
    except FileNotFoundError:
        msg = f"SYSTEM_UTILS: Command not found: {command_list[0]}"
        logger.error(msg)
        return -1, "", msg
    except Exception as e:
        msg = f"SYSTEM_UTILS: Error running command '{joined_command}': {e}"
        logger.error(msg, exc_info=True)
        return -2, "", msg


def build_helper_command(helper_module: str, payload: str) -> List[str]:
    """
    Command line for one of the config helpers. Paths are passed explicitly
    so the helper does not depend on the caller's environment (pkexec drops it).
    """
    command: List[str] = [
        sys.executable, "-m", helper_module,
        "--apps-dir", str(config.APPS_DIR),
        "--hosts-path", str(config.HOSTS_FILE_PATH),
        "--hosts-marker", config.HOSTS_MARKER,
        "--httpd-conf", str(config.HTTPD_CONF),
        "--apachectl-path", str(config.APACHECTL_PATH),
        "--", payload,
    ]
    if config.USE_PKEXEC:
        pkexec_path = shutil.which("pkexec")
        if pkexec_path:
            command.insert(0, pkexec_path)
        else:
            logger.warning("SYSTEM_UTILS: USE_PKEXEC is set but 'pkexec' was not found in PATH. Running unprivileged.")
    return command


def run_config_helper(helper_module: str, payload: str) -> Tuple[bool, str]:
    """
    Runs the installer or uninstaller helper with a serialized application list.

    Returns:
        A tuple: (success: bool, message: str)
    """
    logger.info(f"SYSTEM_UTILS: Running config helper '{helper_module}'")
    logger.debug(f"SYSTEM_UTILS: Helper payload:\n{payload}")
    return_code, stdout, stderr = run_command(build_helper_command(helper_module, payload))

    if return_code == 0:
        return True, f"Helper '{helper_module}' completed successfully."
    # Standard pkexec exit codes: 126 (not authorized), 127 (cancelled by user)
    elif config.USE_PKEXEC and return_code == 126:
        msg = f"Authorization denied for helper '{helper_module}'."
        logger.warning(msg)
        return False, msg
    elif config.USE_PKEXEC and return_code == 127:
        msg = f"Authentication cancelled by user for helper '{helper_module}'."
        logger.warning(msg)
        return False, msg
    else:
        msg = f"Helper '{helper_module}' exited with code {return_code}: {stderr or stdout or 'no output'}"
        logger.error(f"SYSTEM_UTILS: {msg}")
        return False, msg


def touch_restart_file(app_path) -> Path:
    """Touches <app>/tmp/restart.txt so Passenger restarts the application on its next request."""
    tmp_dir = Path(app_path) / config.RESTART_DIR_NAME
    restart_file = tmp_dir / config.RESTART_FILE_NAME
    if not config.ensure_dir(tmp_dir):
        raise OSError(f"Could not create restart directory {tmp_dir}")
    restart_file.touch()
    logger.info(f"SYSTEM_UTILS: Touched restart file {restart_file}")
    return restart_file
