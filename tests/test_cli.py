"""Tests for the shellify CLI."""

import pytest
from click.testing import CliRunner

from conftest import stub_http, write_registry
from shellify.cli import AppContext, main
from shellify.registry.url_validator import URLValidator
from shellify.utils.log import null_logger

URL = "https://github.com/user/tools"


@pytest.fixture
def run(config, fake_git):
    def _run(*args, status_code=200):
        app = AppContext(
            config=config,
            logger=null_logger(),
            git_backend=fake_git,
            url_validator=URLValidator(client=stub_http(status_code)),
        )
        return CliRunner().invoke(main, list(args), obj=app)

    return _run


@pytest.fixture
def served(fake_git, sources):
    fake_git.serve(URL, write_registry(sources / "tools", modules={"git-aliases": "aliases", "k8s": "functions"}))


def test_version(run):
    result = run("--version")
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_add_and_list(run, served):
    result = run("registry", "add", URL)
    assert result.exit_code == 0, result.output
    assert "'tools' has been added" in result.output

    result = run("registry", "list")
    assert result.exit_code == 0
    assert "tools" in result.output


def test_list_empty(run):
    result = run("registry", "list")
    assert result.exit_code == 0
    assert "No registries configured" in result.output


def test_add_failure_exits_nonzero(run, served):
    result = run("registry", "add", URL, status_code=404)
    assert result.exit_code == 1
    assert "not accessible" in result.output


def test_add_duplicate(run, served):
    run("registry", "add", URL)
    result = run("registry", "add", URL, "again")
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_remove(run, served):
    run("registry", "add", URL)
    result = run("registry", "remove", "tools")
    assert result.exit_code == 0
    assert "removed successfully" in result.output

    result = run("registry", "remove", "tools")
    assert result.exit_code == 1
    assert "registry not found" in result.output


def test_sync_requires_exactly_one_target(run):
    assert run("registry", "sync").exit_code == 2
    assert run("registry", "sync", "tools", "--all").exit_code == 2


def test_sync_one_and_all(run, served):
    run("registry", "add", URL)

    result = run("registry", "sync", "tools")
    assert result.exit_code == 0
    assert "tools synced" in result.output

    result = run("registry", "sync", "--all")
    assert result.exit_code == 0


def test_sync_all_reports_failures(run, served, fake_git):
    run("registry", "add", URL)
    fake_git.fail_pull = True

    result = run("registry", "sync", "--all")

    assert result.exit_code == 1
    assert "git pull failed" in result.output


def test_info(run, served):
    run("registry", "add", URL)
    result = run("registry", "info", "tools")
    assert result.exit_code == 0
    assert "aaaaaaaaaaaa" in result.output


def test_validate_directory(run, tmp_path):
    root = write_registry(tmp_path / "local")
    result = run("registry", "validate", str(root))
    assert result.exit_code == 0
    assert "Structure validation passed" in result.output


def test_validate_invalid_directory(run, tmp_path):
    root = write_registry(tmp_path / "local", version="1.0")
    result = run("registry", "validate", str(root))
    assert result.exit_code == 1
    assert "1.0" in result.output


def test_validate_url(run):
    result = run("registry", "validate", URL)
    assert result.exit_code == 0
    assert "Repository is reachable" in result.output

    result = run("registry", "validate", "ftp://example.com/repo")
    assert result.exit_code == 1


def test_module_commands(run, served):
    run("registry", "add", URL)

    result = run("module", "list")
    assert result.exit_code == 0
    assert "git-aliases" in result.output

    result = run("module", "list", "--shell", "fish")
    assert "No modules found" in result.output

    result = run("module", "search", "k8s")
    assert result.exit_code == 0
    assert "k8s" in result.output

    result = run("module", "show", "git-aliases")
    assert result.exit_code == 0
    assert "modules/git-aliases" in result.output

    result = run("module", "show", "missing")
    assert result.exit_code == 1
    assert "module not found" in result.output
