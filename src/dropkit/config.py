"""Persistent configuration: directories, profiles and precedence.

A *profile* records which app (consumer key and secret sources) talks to
which server, with which root.  Profiles live as JSON files under the
config directory; the linked user's token lives separately under the data
directory (see :class:`~dropkit.auth.credential_store.CredentialFile`).

Directory layout follows the XDG Base Directory spec on Linux and the BSDs
(``$XDG_CONFIG_HOME/dropkit`` and ``$XDG_DATA_HOME/dropkit``).  Other
platforms keep everything under ``~/.dropkit``, with data in
``~/.dropkit/data``.

Writes go through :func:`_atomic_write`, which renames a fully written
temporary file over the target.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from dropkit.exceptions import ConfigError
from dropkit.models import GlobalConfig, Profile, SessionConfig

_APP_NAME = "dropkit"
_CONFIG_FILENAME = "config.json"


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: str, fallback: str) -> Path:
    """Return (and create) one of the application's base directories.

    *xdg_default* is relative to the home directory and used when
    *xdg_var* is unset or empty.  *fallback* is relative to ``~/.dropkit``
    on platforms without XDG; ``""`` means ``~/.dropkit`` itself.
    """
    if _is_xdg_platform():
        root = os.environ.get(xdg_var) or str(Path.home() / xdg_default)
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback:
            path = path / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json`` and ``profiles/``."""
    return _app_dir("XDG_CONFIG_HOME", ".config", "")


def get_data_dir() -> Path:
    """Directory holding stored credentials and crash logs."""
    return _app_dir("XDG_DATA_HOME", os.path.join(".local", "share"), "data")


def get_profiles_dir() -> Path:
    path = get_config_dir() / "profiles"
    path.mkdir(exist_ok=True)
    return path


def get_credentials_dir() -> Path:
    path = get_data_dir() / "credentials"
    path.mkdir(exist_ok=True)
    return path


# --- File helpers ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* in one rename.

    The temporary file sits next to *path* so the rename stays on one
    filesystem.  *mode*, when given, is applied before anything is written,
    so secrets never hit the disk with wider permissions.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if mode is not None:
            os.fchmod(fd, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


def _write_model(path: Path, model: Any) -> None:
    _atomic_write(path, json.dumps(model.model_dump(mode="json"), indent=2) + "\n")


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load ``config.json``; a missing file yields the defaults."""
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(_read_json(path, "global config"))
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    _write_model(_global_config_path(), config)


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


def _existing_profile_path(name: str) -> Path:
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    return path


def list_profiles() -> list[str]:
    return sorted(entry.stem for entry in get_profiles_dir().glob("*.json") if entry.is_file())


def load_profile(name: str) -> Profile:
    """Read profile *name* from disk.

    Raises:
        ConfigError: If the file is missing, unreadable, or does not
            describe a valid profile.
    """
    path = _existing_profile_path(name)
    data = _read_json(path, f"profile '{name}'")
    try:
        return Profile.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    _write_model(_profile_path(profile.name), profile)


def delete_profile(name: str) -> None:
    _existing_profile_path(name).unlink()


# --- Active profile ---


def resolve_profile(cli_profile: Optional[str] = None) -> Optional[Profile]:
    """Pick the profile a command should run against.

    The first of these that names a profile wins: the ``--profile`` flag,
    ``DROPKIT_PROFILE``, ``default_profile`` from the global config.  With
    none of them set, a lone profile on disk is used if
    ``auto_select_single_profile`` allows it; otherwise ``None`` is
    returned.  ``DROPKIT_API_SERVER`` then overrides the chosen profile's
    API server for this run only.

    Raises:
        ConfigError: If the selected profile is missing or invalid.
    """
    settings = load_global_config()
    name = cli_profile or os.environ.get("DROPKIT_PROFILE") or settings.default_profile

    if name is None and settings.auto_select_single_profile:
        candidates = list_profiles()
        if len(candidates) == 1:
            name = candidates[0]
    if name is None:
        return None

    profile = load_profile(name)
    server = os.environ.get("DROPKIT_API_SERVER")
    if server:
        profile.api_server_base = server
    return profile


# --- Consumer credentials ---


def resolve_credential(source: str, label: str = "credential") -> str:
    """Return the secret described by *source*.

    ``env:NAME`` reads an environment variable, ``file:PATH`` reads a file
    (surrounding whitespace stripped) and ``prompt`` asks on the terminal.

    Raises:
        ConfigError: If the variable is unset, the file is unreadable, no
            TTY is available for ``prompt``, or the format is unknown.
    """
    kind, _, target = source.partition(":")

    if kind == "env" and target:
        value = os.environ.get(target)
        if value is None:
            raise ConfigError(f"Environment variable '{target}' is not set (source: {source})")
        return value

    if kind == "file" and target:
        path = Path(target).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for credentials: stdin is not a TTY (source: prompt)")
        return getpass.getpass(f"Enter {label}: ")

    raise ConfigError(f"Unknown credential source format: {source}")


def build_session_config(
    profile: Profile,
    snapshot: Optional[dict[str, str]] = None,
) -> SessionConfig:
    """Turn *profile* (and a stored *snapshot*, if any) into a SessionConfig.

    The snapshot's user token is reused only when it was issued to the same
    consumer key the profile resolves to.
    """
    consumer_key = resolve_credential(profile.consumer_key_source, "app key")
    consumer_secret = resolve_credential(profile.consumer_secret_source, "app secret")

    user: dict[str, Optional[str]] = {}
    if snapshot and snapshot.get("consumer_key") == consumer_key:
        user = {
            "user_token": snapshot.get("token"),
            "user_token_secret": snapshot.get("token_secret"),
            "user_id": snapshot.get("uid"),
        }

    return SessionConfig(
        use_sandbox_root=profile.use_sandbox_root,
        consumer_key=consumer_key,
        consumer_secret=consumer_secret,
        api_server_base=profile.api_server_base,
        auth_server_base=profile.auth_server_base,
        file_server_base=profile.file_server_base,
        locale=profile.locale,
        request=profile.request,
        **user,
    )
