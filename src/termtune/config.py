"""Where termtune keeps its files, and how settings are resolved.

* **Directories**: XDG on Linux/BSD (``$XDG_CONFIG_HOME/termtune`` for
  ``config.json``, ``$XDG_DATA_HOME/termtune`` for ``session.json`` and
  crash logs), ``~/.termtune`` elsewhere.
* **Settings**: :class:`~termtune.models.AppConfig` stored as JSON and
  overlaid by environment variables and CLI flags in :func:`resolve_config`.
* **Client credentials**: never stored in the config itself. The config
  names a *source* (``env:VAR``, ``file:/path`` or ``prompt``) and
  :func:`resolve_credential` reads it when the token endpoint is needed.

Every write goes through :func:`atomic_write`, so a crash mid-write leaves
the previous file intact.
"""

from __future__ import annotations

import contextlib
import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Optional

from termtune.exceptions import ConfigError
from termtune.models import AppConfig

_APP_NAME = "termtune"
_CONFIG_FILENAME = "config.json"
_SESSION_FILENAME = "session.json"

_XDG_DIRS = {
    "config": ("XDG_CONFIG_HOME", (".config",), ()),
    "data": ("XDG_DATA_HOME", (".local", "share"), ("data",)),
}


def _is_xdg_platform() -> bool:
    """True on Linux and the BSDs, which follow the XDG base directory layout."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, xdg_default, fallback = _XDG_DIRS[kind]
    if _is_xdg_platform():
        base = os.environ.get(env_var) or str(Path.home().joinpath(*xdg_default))
        path = Path(base) / _APP_NAME
    else:
        path = Path.home().joinpath(f".{_APP_NAME}", *fallback)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``; created on first use."""
    return _app_dir("config")


def get_data_dir() -> Path:
    """Directory holding the session file and crash logs; created on first use."""
    return _app_dir("data")


def default_session_path() -> Path:
    return get_data_dir() / _SESSION_FILENAME


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* in one rename.

    The temporary file lives next to *path* so :func:`os.replace` stays on
    one filesystem. *mode* is applied before anything is written.

    Args:
        path: Destination file; parent directories are created.
        data: Text content.
        mode: Optional permission bits, e.g. ``0o600`` for the session.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if mode is not None:
            os.chmod(tmp_name, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_config() -> AppConfig:
    """Read ``config.json``, or return defaults when there is none.

    Raises:
        ConfigError: If the file is not valid JSON or does not validate.
    """
    path = config_path()
    if not path.is_file():
        return AppConfig()
    try:
        return AppConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: AppConfig) -> None:
    atomic_write(config_path(), json.dumps(config.model_dump(mode="json"), indent=2) + "\n")


def resolve_config(
    cli_format: Optional[str] = None,
    cli_session_file: Optional[str] = None,
) -> AppConfig:
    """Build the effective config.

    Precedence, highest first: CLI flags, ``TERMTUNE_SESSION_FILE`` /
    ``TERMTUNE_API_BASE_URL``, ``config.json``, defaults.
    """
    config = load_config()

    base_url = os.environ.get("TERMTUNE_API_BASE_URL")
    if base_url:
        config.api_base_url = base_url

    session_file = cli_session_file or os.environ.get("TERMTUNE_SESSION_FILE")
    if session_file:
        config.session_file = session_file

    if cli_format is not None:
        config.output.format = cli_format
    return config


def session_path(config: AppConfig) -> Path:
    """Session file for *config*; ``~`` is expanded."""
    if config.session_file:
        return Path(config.session_file).expanduser()
    return default_session_path()


def resolve_credential(source: str) -> str:
    """Read a client credential from its source descriptor.

    Args:
        source: ``env:VAR_NAME``, ``file:/path/to/file`` (content is
            stripped) or ``prompt`` (asks on the terminal).

    Raises:
        ConfigError: If the variable is unset, the file is missing or
            unreadable, stdin is not a TTY for ``prompt``, or the
            descriptor is not recognised.
    """
    kind, _, ref = source.partition(":")

    if kind == "env" and ref:
        value = os.environ.get(ref)
        if value is None:
            raise ConfigError(f"Environment variable '{ref}' is not set (source: {source})")
        return value

    if kind == "file" and ref:
        path = Path(ref).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for credentials: stdin is not a TTY (source: prompt)")
        return getpass.getpass("Enter credential: ")

    raise ConfigError(f"Unknown credential source format: {source}")
