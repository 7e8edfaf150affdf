"""Tests for module listing and search across registries."""

import json

import pytest

from conftest import write_registry
from shellify.errors import RegistryNotFoundError, UnknownModuleError
from shellify.modules.discovery import ModuleService

TOOLS = "https://github.com/user/tools"
DOTS = "https://github.com/user/dots"


@pytest.fixture
def service(make_client, fake_git, sources):
    fake_git.serve(TOOLS, write_registry(sources / "tools", modules={"git-aliases": "aliases", "k8s-helpers": "functions"}))
    dots = write_registry(sources / "dots", name="dot-registry", modules={"prompt": "config"})
    index = json.loads((dots / "index.json").read_text())
    index["modules"]["prompt"]["shell"] = "zsh"
    index["modules"]["prompt"]["description"] = "Fancy prompt"
    (dots / "index.json").write_text(json.dumps(index))
    fake_git.serve(DOTS, dots)

    client = make_client()
    client.add_registry(TOOLS, "tools")
    client.add_registry(DOTS, "dots")
    return ModuleService(client)


def test_list_all_modules_sorted(service):
    names = [m.name for m in service.list_all_modules()]
    assert names == ["git-aliases", "k8s-helpers", "prompt"]


def test_modules_carry_registry(service):
    prompt = service.get_module_details("prompt")
    assert prompt.registry_name == "dots"
    assert prompt.registry_url == DOTS
    assert prompt.module.path == "modules/prompt"


def test_list_by_registry(service):
    assert [m.name for m in service.list_modules_by_registry("tools")] == ["git-aliases", "k8s-helpers"]
    with pytest.raises(RegistryNotFoundError):
        service.list_modules_by_registry("unknown")


def test_search_matches_name_and_description(service):
    assert [m.name for m in service.search_modules("K8S")] == ["k8s-helpers"]
    assert [m.name for m in service.search_modules("fancy")] == ["prompt"]
    assert service.search_modules("nothing-like-this") == []


def test_filter_by_shell(service):
    assert [m.name for m in service.filter_modules_by_shell("zsh")] == ["prompt"]
    assert [m.name for m in service.filter_modules_by_shell("bash")] == ["git-aliases", "k8s-helpers"]


def test_unknown_module(service):
    with pytest.raises(UnknownModuleError):
        service.get_module_details("nope")


def test_unreadable_registry_is_skipped(service):
    service.client.git.remove_repository("dots")
    assert [m.name for m in service.list_all_modules()] == ["git-aliases", "k8s-helpers"]
