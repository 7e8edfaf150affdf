"""Shared fixtures: registry trees on disk, a fake git backend, stub HTTP."""

import json
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest

from shellify.config import ShellifyConfig
from shellify.errors import SourceControlError
from shellify.registry.client import RegistryClient
from shellify.registry.url_validator import URLValidator
from shellify.utils.git_ops import CommitInfo, GitBackend


def write_registry(root, name="demo-registry", version="1.0.0", modules=None, index=None):
    """Write a registry tree under ``root`` and return its path.

    ``modules`` maps module key -> module.json type (default: one ``git-aliases``
    module of type ``aliases``). ``index`` replaces index.json entirely.
    """
    root = Path(root)
    root.mkdir(parents=True, exist_ok=True)
    if modules is None:
        modules = {"git-aliases": "aliases"}

    entries = {}
    for key, module_type in modules.items():
        module_dir = root / "modules" / key
        module_dir.mkdir(parents=True, exist_ok=True)
        (module_dir / "module.json").write_text(
            json.dumps({"name": key, "description": f"The {key} module", "type": module_type})
        )
        entries[key] = {
            "name": key,
            "description": f"The {key} module",
            "version": "0.1.0",
            "path": f"modules/{key}",
            "shell": "bash",
        }

    if index is None:
        index = {
            "name": name,
            "description": "Demo registry",
            "version": version,
            "modules": entries,
        }
    (root / "index.json").write_text(json.dumps(index))
    return root


class FakeGitBackend(GitBackend):
    """Serves registry trees from local directories keyed by URL.

    ``clone`` copies the source tree and creates a ``.git`` directory; ``pull``
    re-copies the current source tree over the working copy.
    """

    def __init__(self):
        self.sources: dict[str, Path] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_clone = False
        self.fail_pull = False

    def serve(self, url, tree):
        self.sources[url] = Path(tree)

    def clone(self, url, dest):
        self.calls.append(("clone", url))
        if self.fail_clone or url not in self.sources:
            raise SourceControlError(
                f"git clone failed: {url}", path=str(dest), output="fatal: repository not found"
            )
        shutil.copytree(self.sources[url], dest)
        (dest / ".git").mkdir()
        (dest / ".git" / "origin").write_text(url)

    def pull(self, dest):
        self.calls.append(("pull", str(dest)))
        if self.fail_pull:
            raise SourceControlError("git pull failed", path=str(dest), output="fatal: unable to access")
        url = (dest / ".git" / "origin").read_text()
        for child in dest.iterdir():
            if child.name == ".git":
                continue
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        shutil.copytree(self.sources[url], dest, dirs_exist_ok=True)

    def remote_url(self, dest):
        return (dest / ".git" / "origin").read_text()

    def last_commit(self, dest):
        return CommitInfo(
            hexsha="a" * 40,
            message="Add modules",
            committed_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        )

    @property
    def clone_count(self):
        return sum(1 for op, _ in self.calls if op == "clone")


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        value = self.current
        self.current += timedelta(minutes=1)
        return value


def stub_http(status_code=200, seen=None):
    """httpx client whose every request answers ``status_code``."""

    def handler(request):
        if seen is not None:
            seen.append(str(request.url))
        return httpx.Response(status_code)

    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def home(tmp_path):
    return tmp_path / "home"


@pytest.fixture
def config(home):
    return ShellifyConfig.for_home(home)


@pytest.fixture
def fake_git():
    return FakeGitBackend()


@pytest.fixture
def sources(tmp_path):
    """Directory for remote registry trees served by the fake backend."""
    path = tmp_path / "remote"
    path.mkdir()
    return path


@pytest.fixture
def make_client(config, fake_git):
    def _make(status_code=200, clock=None):
        return RegistryClient(
            config,
            git_backend=fake_git,
            url_validator=URLValidator(client=stub_http(status_code)),
            clock=clock or StepClock(),
        )

    return _make
