"""Reading and writing the per-user configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

CONFIG_FILE_NAME = ".gatorconfig.json"

PathLike = Union[str, Path]


@dataclass
class Config:
    """Database location and the name of the logged-in user."""

    db_url: str = ""
    current_user_name: str = ""
    path: Optional[Path] = field(default=None, compare=False, repr=False)

    def set_user(self, user_name: str) -> None:
        """Record *user_name* as the current user and save the file."""
        self.current_user_name = user_name
        self.write()

    def write(self) -> None:
        """Save the configuration as compact JSON."""
        target = self.path if self.path is not None else config_file_path()
        payload = {"db_url": self.db_url, "current_user_name": self.current_user_name}
        Path(target).write_text(json.dumps(payload, separators=(",", ":")), encoding="utf-8")


def config_file_path() -> Path:
    """Return the location of the configuration file in the home directory."""
    return Path.home() / CONFIG_FILE_NAME


def _string_field(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"config field {key!r} must be a string, got {type(value).__name__}")
    return value


def read_config(path: Optional[PathLike] = None) -> Config:
    """Load the configuration from *path*, or from the home directory by default.

    Raises OSError when the file cannot be opened and ValueError when its
    contents are not a JSON object with string fields.
    """
    source = Path(path) if path is not None else config_file_path()
    with source.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError("config file must hold a JSON object")
    return Config(
        db_url=_string_field(data, "db_url"),
        current_user_name=_string_field(data, "current_user_name"),
        path=source,
    )