"""Tests for registry name generation."""

import pytest

from shellify.errors import InvalidRegistryNameError
from shellify.registry.naming import generate_registry_name, sanitize_name, validate_registry_name


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://github.com/user/shell-stuff", "shell-stuff"),
        ("https://github.com/user/shell-stuff.git", "shell-stuff"),
        ("https://github.com/user/Shell-Stuff/", "shell-stuff"),
        ("https://gitlab.com/group/sub/tools.git", "tools"),
        ("git@github.com:user/dotfiles.git", "dotfiles"),
        ("git@github.com:dotfiles", "dotfiles"),
        ("https://git.example.com", "git.example.com"),
        ("", "registry"),
    ],
)
def test_generate_registry_name(url, expected):
    assert generate_registry_name(url) == expected


def test_sanitize_name():
    assert sanitize_name("My Registry") == "my-registry"
    assert sanitize_name("user@host:repo") == "user-host-repo"
    assert sanitize_name("--a//b--") == "a-b"
    assert sanitize_name("///") == "registry"


@pytest.mark.parametrize("name", ["demo", "shell-stuff", "git.example.com", "team_tools"])
def test_valid_registry_names(name):
    validate_registry_name(name)


@pytest.mark.parametrize("name", ["", ".", "..", "a/b", "a\\b", "Demo", "my registry", "-demo"])
def test_unsafe_registry_names(name):
    with pytest.raises(InvalidRegistryNameError):
        validate_registry_name(name)


def test_generated_names_are_valid():
    for url in ("https://github.com/user/Shell-Stuff.git", "https://example.com/x/..", "git@host:a/b"):
        validate_registry_name(generate_registry_name(url))
