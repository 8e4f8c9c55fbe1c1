"""User configuration: team name, access token reference, category allow-list.

The file lives at ~/.config/esa-llm-scoped-guard/config.yaml by default:

    esa:
      team_name: my-team
      access_token: env:ESA_ACCESS_TOKEN
    allowed_categories:
      - LLM/Tasks

It decides where the tool may write, so it must be private to the user and
anything unexpected in it fails closed.
"""

from __future__ import annotations

import os
import re
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import GuardError
from .guard.category import normalize_category

DEFAULT_CONFIG_PATH = Path("~/.config/esa-llm-scoped-guard/config.yaml")
ENV_REF_PREFIX = "env:"
DEFAULT_ACCESS_TOKEN_REF = ENV_REF_PREFIX + "ESA_ACCESS_TOKEN"
MAX_CONFIG_SIZE = 10 * 1024 * 1024

_TEAM_NAME_PATTERN = re.compile(r"\A[A-Za-z0-9_-]+\Z")


class ConfigError(ValueError):
    """Configuration file is missing, unsafe, or invalid."""


@dataclass
class Config:
    team_name: str = ""
    access_token_ref: str = DEFAULT_ACCESS_TOKEN_REF
    allowed_categories: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Config":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("config file must contain a mapping")

        esa = data.get("esa") or {}
        if not isinstance(esa, dict):
            raise ConfigError("esa must be a mapping")

        categories = data.get("allowed_categories") or []
        if not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
            raise ConfigError("allowed_categories must be a list of strings")

        token_ref = esa.get("access_token") or DEFAULT_ACCESS_TOKEN_REF
        return cls(
            team_name=str(esa.get("team_name") or ""),
            access_token_ref=str(token_ref),
            allowed_categories=list(categories),
        )


def validate_config_file(path: Path) -> None:
    """Refuse config files that someone other than the user could have written."""
    try:
        info = os.stat(path)
    except OSError as e:
        raise ConfigError(f"failed to stat config file: {e}") from e

    if not stat.S_ISREG(info.st_mode):
        raise ConfigError(f"config file is not a regular file: {path}")
    if info.st_mode & 0o022:
        raise ConfigError(f"config file is group or world writable: {path}")
    if info.st_uid != os.getuid():
        raise ConfigError("config file is not owned by current user")

    try:
        dir_info = os.stat(path.parent)
    except OSError as e:
        raise ConfigError(f"failed to stat config directory: {e}") from e
    if dir_info.st_mode & 0o022:
        raise ConfigError("config directory is group or world writable")


def validate_config(config: Config) -> None:
    """Check fields and normalize `allowed_categories` in place."""
    if config.team_name == "":
        raise ConfigError("team_name cannot be empty")
    if not _TEAM_NAME_PATTERN.match(config.team_name):
        raise ConfigError(
            f"team_name contains invalid characters (only A-Z, a-z, 0-9, _, - allowed): {config.team_name}"
        )

    if not config.allowed_categories:
        raise ConfigError("allowed_categories cannot be empty (fail closed)")

    normalized = []
    for category in config.allowed_categories:
        try:
            normalized.append(normalize_category(category))
        except GuardError as e:
            raise ConfigError(f"invalid allowed category {category}: {e}") from e
    config.allowed_categories = normalized


def load_config(path: Path) -> Config:
    with open(path, "rb") as f:
        data = f.read(MAX_CONFIG_SIZE + 1)
    if len(data) > MAX_CONFIG_SIZE:
        raise ConfigError("config file size exceeds 10MB")

    try:
        raw = yaml.safe_load(data.decode("utf-8"))
    except (UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to parse config file: {e}") from e
    return Config.from_dict(raw)


def load_and_validate_config(path: Path | None = None) -> Config:
    path = (path or DEFAULT_CONFIG_PATH).expanduser()
    try:
        real_path = path.resolve(strict=True)
    except OSError as e:
        raise ConfigError(f"failed to resolve config path: {e}") from e

    validate_config_file(real_path)
    config = load_config(real_path)
    validate_config(config)
    return config


def resolve_access_token(config: Config, environ: Mapping[str, str] | None = None) -> str:
    """Look up the token named by `config.access_token_ref`.

    The config only ever holds a reference such as "env:ESA_ACCESS_TOKEN", so
    the token itself never appears in the file.
    """
    ref = config.access_token_ref
    if not ref.startswith(ENV_REF_PREFIX):
        raise ConfigError(f"unsupported secret reference: {ref}")

    name = ref[len(ENV_REF_PREFIX) :]
    if name == "":
        raise ConfigError(f"secret reference names no environment variable: {ref}")

    token = (os.environ if environ is None else environ).get(name, "")
    if not token:
        raise ConfigError(f"{name} environment variable is not set")
    return token
