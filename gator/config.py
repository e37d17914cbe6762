"""Reading and writing the user's ~/.gatorconfig.json settings file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

CONFIG_FILE_NAME = ".gatorconfig.json"

PathLike = Union[str, Path]


class ConfigError(Exception):
    """Raised when the config file cannot be located, read, decoded or written."""


@dataclass
class Config:
    """Database URL and the name of the user currently logged in."""

    url: Optional[str] = None
    name: Optional[str] = None
    path: Optional[Path] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        url = json.dumps(self.url or "", ensure_ascii=False)
        name = json.dumps(self.name or "", ensure_ascii=False)
        return f"Config{{URL: {url}, Name: {name}}}"

    def set_user(self, user_name: str) -> None:
        """Record user_name as the current user and save the file."""
        self.name = user_name
        try:
            write(self, self.path)
        except ConfigError as exc:
            raise ConfigError(f"error writing updated config file: {exc}") from exc


def config_path() -> Path:
    """Location of the config file in the user's home directory."""
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as exc:
        raise ConfigError(f"error getting home dir: {exc}") from exc
    return home / CONFIG_FILE_NAME


def _resolve(path: Optional[PathLike]) -> Path:
    return config_path() if path is None else Path(path)


def _optional_string(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigError(
            f"error decoding config file: {key} must be a string, not {type(value).__name__}"
        )
    return value


def read(path: Optional[PathLike] = None) -> Config:
    """Load the config file; a missing file gives an empty config."""
    target = _resolve(path)
    try:
        text = target.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Config(path=target)
    except OSError as exc:
        raise ConfigError(f"error reading config file: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"error decoding config file: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("error decoding config file: expected a JSON object")

    return Config(
        url=_optional_string(data, "db_url"),
        name=_optional_string(data, "current_user_name"),
        path=target,
    )


def write(config: Config, path: Optional[PathLike] = None) -> None:
    """Save the config as indented JSON."""
    target = _resolve(path)
    payload = json.dumps(
        {"db_url": config.url, "current_user_name": config.name}, indent=2
    )
    try:
        target.write_text(payload, encoding="utf-8")
        target.chmod(0o644)
    except OSError as exc:
        raise ConfigError(f"error writing updated json: {exc}") from exc