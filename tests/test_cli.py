from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from esa_guard import __version__
from esa_guard.cli import cli
from esa_guard.commands import common
from esa_guard.esa.types import Post
from esa_guard.guard import orchestrator
from esa_guard.guard.embed import embed_post_input
from esa_guard.models import PostInput

from conftest import CATEGORY, StubEsaClient, make_input_dict, make_update_dict

CONFIG_YAML = """\
esa:
  team_name: my-team
allowed_categories:
  - LLM/Tasks
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    directory = tmp_path / "config"
    directory.mkdir(mode=0o700)
    directory.chmod(0o700)
    path = directory / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    path.chmod(0o600)
    return path


@pytest.fixture
def remote(monkeypatch: pytest.MonkeyPatch, stub_client: StubEsaClient) -> StubEsaClient:
    """Route every remote command to the stub client with a fixed repository name."""
    monkeypatch.setenv("ESA_ACCESS_TOKEN", "test-token")
    monkeypatch.setattr(common, "EsaClient", lambda cfg: stub_client)
    monkeypatch.setattr(orchestrator, "get_repository_name", lambda: "my-repo")
    return stub_client


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_validate_is_silent_on_success(runner: CliRunner, write_input) -> None:
    result = runner.invoke(cli, ["validate", "--json", str(write_input(make_input_dict()))])
    assert result.exit_code == 0
    assert result.output == ""


def test_validate_reports_single_error_line(runner: CliRunner, write_input) -> None:
    data = make_input_dict()
    data["body"]["tasks"][1]["title"] = "Task 5: 修正"
    result = runner.invoke(cli, ["validate", "--json", str(write_input(data))])

    assert result.exit_code == 1
    lines = result.output.strip().splitlines()
    assert len(lines) == 1
    assert lines[0].startswith("Error: validation failed: task[1].title: expected Task 2 but got Task 5")


def test_validate_missing_file(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["validate", "--json", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert result.output.startswith("Error: ")


def test_error_text_is_not_interpreted_as_markup(runner: CliRunner, write_input) -> None:
    data = make_input_dict()
    data["body"]["tasks"][0]["title"] = "[bold]調査[/bold]"
    result = runner.invoke(cli, ["validate", "--json", str(write_input(data))])
    assert result.exit_code == 1
    assert "[bold]" in result.output


def test_preview_prints_markdown(runner: CliRunner, write_input) -> None:
    result = runner.invoke(cli, ["preview", "--json", str(write_input(make_input_dict()))])
    assert result.exit_code == 0
    assert result.output.startswith("## サマリー\n")
    assert "```mermaid" in result.output


def test_execute_create(runner: CliRunner, config_path: Path, remote: StubEsaClient, write_input) -> None:
    path = write_input(make_input_dict())
    result = runner.invoke(cli, ["--config", str(config_path), "execute", "--json", str(path)])

    assert result.exit_code == 0, result.output
    assert "Created post: https://team.esa.io/posts/100 (Number: 100)" in result.output
    assert "JSON file updated: create_new removed, post_number set to 100" in result.output
    assert json.loads(path.read_text(encoding="utf-8"))["post_number"] == 100

    (payload,) = remote.calls_named("create")
    assert payload.tags == ["my-repo"]


def test_execute_update(runner: CliRunner, config_path: Path, remote: StubEsaClient, write_input) -> None:
    remote.posts[42] = Post(number=42, category=CATEGORY, tags=["x"], body_md="old", url="https://team.esa.io/posts/42")
    path = write_input(make_update_dict(42))

    result = runner.invoke(cli, ["--config", str(config_path), "execute", "--json", str(path)])

    assert result.exit_code == 0, result.output
    assert "Updated post: https://team.esa.io/posts/42 (Number: 42)" in result.output


def test_execute_requires_token(
    runner: CliRunner, config_path: Path, write_input, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("ESA_ACCESS_TOKEN", raising=False)
    result = runner.invoke(
        cli, ["--config", str(config_path), "execute", "--json", str(write_input(make_input_dict()))]
    )
    assert result.exit_code == 1
    assert "Error: ESA_ACCESS_TOKEN environment variable is not set" in result.output


def test_execute_rejects_unsafe_config(runner: CliRunner, config_path: Path, remote: StubEsaClient, write_input) -> None:
    config_path.chmod(0o666)
    result = runner.invoke(
        cli, ["--config", str(config_path), "execute", "--json", str(write_input(make_input_dict()))]
    )
    assert result.exit_code == 1
    assert "group or world writable" in result.output
    assert remote.calls == []


def test_diff_plain_output(runner: CliRunner, config_path: Path, remote: StubEsaClient, write_input) -> None:
    remote.posts[42] = Post(number=42, category=CATEGORY, body_md="old\n")
    result = runner.invoke(
        cli, ["--config", str(config_path), "diff", "--json", str(write_input(make_update_dict(42)))]
    )
    assert result.exit_code == 0, result.output
    assert result.output.startswith("--- old\n+++ new\n")


def test_fetch(runner: CliRunner, config_path: Path, remote: StubEsaClient) -> None:
    input = PostInput.from_dict(make_update_dict(42))
    remote.posts[42] = Post(number=42, category=CATEGORY, body_md=embed_post_input(input))

    result = runner.invoke(cli, ["--config", str(config_path), "fetch", "--post-number", "42"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == input.to_dict()


def test_fetch_rejects_non_positive_number(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["fetch", "--post-number", "0"])
    assert result.exit_code == 2


def test_lone_surrogate_reports_single_error_line(runner: CliRunner, write_input) -> None:
    text = json.dumps(make_input_dict(name="PLACEHOLDER"), ensure_ascii=False).replace("PLACEHOLDER", "\\ud800")
    result = runner.invoke(cli, ["validate", "--json", str(write_input(text))])

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert result.output.startswith("Error: failed to read JSON file: ")
