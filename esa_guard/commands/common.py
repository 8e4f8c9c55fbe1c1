"""Shared wiring for the CLI commands."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..config import ConfigError, load_and_validate_config, resolve_access_token
from ..errors import GuardError
from ..esa.client import EsaApiError, EsaClient, EsaHttpConfig
from ..guard.orchestrator import Guard
from ..guard.schema import PostSchema

# Failures reported as a single diagnostic line; anything else is a bug and propagates.
REPORTED_ERRORS = (GuardError, EsaApiError, ConfigError, OSError)


def error_console() -> Console:
    return Console(stderr=True, soft_wrap=True, highlight=False)


def print_error(console: Console, err: BaseException) -> None:
    console.print(f"Error: {err}", markup=False, emoji=False, highlight=False, soft_wrap=True)


def print_warning(console: Console, message: str) -> None:
    console.print(f"Warning: {message}", markup=False, emoji=False, highlight=False, soft_wrap=True)


def local_guard(schema: PostSchema) -> Guard:
    """Guard for operations that never touch the network."""
    return Guard(schema)


def remote_guard(schema: PostSchema, config_path: Path | None) -> Guard:
    """Guard wired to the configured team, token and allow-list."""
    config = load_and_validate_config(config_path)
    token = resolve_access_token(config)
    client = EsaClient(EsaHttpConfig(team_name=config.team_name, access_token=token))
    return Guard(schema, allowed_categories=config.allowed_categories, client=client)
