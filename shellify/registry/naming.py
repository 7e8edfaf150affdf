"""Derive registry names from repository URLs."""

from __future__ import annotations

import posixpath
import re
from urllib.parse import urlparse

from shellify.errors import InvalidRegistryNameError

FALLBACK_NAME = "registry"


def generate_registry_name(url: str) -> str:
    """Generate a registry name from a repository URL.

    ``https://github.com/user/shell-stuff.git`` -> ``shell-stuff``
    ``git@github.com:user/dotfiles.git`` -> ``dotfiles``
    """
    name = ""
    if url.startswith("git@"):
        path_part = url.rsplit(":", 1)[-1]
        name = posixpath.basename(path_part.rstrip("/"))
    else:
        parsed = urlparse(url)
        if parsed.path:
            name = posixpath.basename(parsed.path.rstrip("/"))
        if name in ("", "/", ".") and parsed.netloc:
            name = parsed.hostname or parsed.netloc

    if name in ("", "/", ".", ".."):
        return FALLBACK_NAME

    return sanitize_name(name.removesuffix(".git"))


def sanitize_name(name: str) -> str:
    """Make ``name`` safe for use as a registry identifier and cache directory."""
    name = re.sub(r"[/@: ]", "-", name)
    name = re.sub(r"-{2,}", "-", name)
    name = name.strip("-").lower()
    return name or FALLBACK_NAME


def validate_registry_name(name: str) -> None:
    """Reject names that are not safe as a single cache directory entry.

    Raises:
        InvalidRegistryNameError: If ``name`` is empty, ``.``/``..``, or not
            already in sanitized form.
    """
    if name in ("", ".", ".."):
        raise InvalidRegistryNameError(name, "registry name must not be empty, '.' or '..'")
    if "/" in name or "\\" in name or name != sanitize_name(name):
        raise InvalidRegistryNameError(
            name,
            f"registry name '{name}' must be lowercase with no spaces, slashes, '@' or ':' "
            f"(try '{sanitize_name(name)}')",
        )
