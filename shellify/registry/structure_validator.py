"""Structure validator: certify a cloned registry against the registry schema.

Three ordered checks, stopping at the first failure:

1. ``index.json``: present, valid JSON, required metadata, semver version,
   well-formed registry name.
2. Modules: at least one; each entry well-formed, pointing at a directory
   inside the registry that holds a valid ``module.json``.
3. Directory shape: a top-level ``modules`` directory is optional, but if
   the path exists it must be a directory.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from shellify.errors import StructureValidationError
from shellify.registry.models import RegistryIndex, dict_to_index
from shellify.utils.log import null_logger

INDEX_FILE = "index.json"
MODULE_FILE = "module.json"
MODULES_DIR = "modules"

SEMVER_PATTERN = re.compile(
    r"^([0-9]+)\.([0-9]+)\.([0-9]+)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)
NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")

REGISTRY_NAME_LENGTH = (3, 50)
MODULE_NAME_LENGTH = (2, 30)

SUPPORTED_SHELLS = ("bash", "zsh", "fish", "powershell", "sh")
MODULE_TYPES = ("aliases", "functions", "exports", "scripts", "config")
REQUIRED_MODULE_MANIFEST_FIELDS = ("name", "description", "type")


class StructureValidator:
    """Validates the registry tree rooted at ``repo_path``."""

    def __init__(self, repo_path: str | Path, logger: Optional[logging.Logger] = None):
        self.repo_path = Path(repo_path)
        self._log = logger or null_logger()

    def validate_structure(self) -> RegistryIndex:
        """Run all checks and return the parsed index.

        Raises:
            StructureValidationError: On the first failed check.
        """
        self._log.debug("Starting registry structure validation for: %s", self.repo_path)

        raw_index = self._validate_index()
        self._validate_modules(raw_index.get("modules"))
        self._validate_directory_structure()

        self._log.debug("Registry structure validation completed successfully")
        return dict_to_index(raw_index)

    # -- index.json ----------------------------------------------------

    def _validate_index(self) -> dict[str, Any]:
        data = load_manifest(self.repo_path / INDEX_FILE, missing_reason="manifest_not_found")
        subject = str(self.repo_path / INDEX_FILE)

        for field_name in ("name", "description", "version"):
            _require_text(data, field_name, subject, "index.json")

        name, version = data["name"], data["version"]
        check_semantic_version(version, subject)
        _check_name(name, "registry", REGISTRY_NAME_LENGTH, name)

        self._log.debug("index.json validation passed: %s v%s", name, version)
        return data

    # -- modules -------------------------------------------------------

    def _validate_modules(self, modules: Any) -> None:
        if modules is not None and not isinstance(modules, dict):
            raise StructureValidationError(
                "invalid_field_type",
                "modules must be an object mapping module keys to modules",
                str(self.repo_path / INDEX_FILE),
            )
        if not modules:
            raise StructureValidationError(
                "no_modules",
                "registry must contain at least one module",
                str(self.repo_path / INDEX_FILE),
            )

        self._log.debug("Validating %d modules", len(modules))
        for key, module in modules.items():
            try:
                self._validate_module(key, module)
            except StructureValidationError as e:
                raise StructureValidationError(
                    e.reason,
                    f"module '{key}' validation failed: {e.message}",
                    key,
                    details={"module": key, "path": e.subject},
                    cause=e,
                ) from e

    def _validate_module(self, key: str, module: Any) -> None:
        if not isinstance(module, dict):
            raise StructureValidationError("invalid_field_type", "module must be an object", key)

        name = module.get("name")
        if not isinstance(name, str) or not name.strip():
            raise StructureValidationError("missing_field", "name field is required", key)
        if name != key:
            raise StructureValidationError(
                "name_mismatch", f"module name '{name}' does not match key '{key}'", key
            )
        _require_text(module, "description", key, "module")
        _require_text(module, "path", key, "module")

        _check_name(name, "module", MODULE_NAME_LENGTH, key)

        version = module.get("version")
        if version:
            check_semantic_version(str(version), key)

        shell = module.get("shell")
        if shell and str(shell).lower() not in SUPPORTED_SHELLS:
            raise StructureValidationError(
                "unsupported_shell",
                f"unsupported shell '{shell}', supported shells: {', '.join(SUPPORTED_SHELLS)}",
                key,
            )

        self._validate_module_path(module["path"])
        self._log.debug("Module '%s' validation passed", name)

    def _validate_module_path(self, module_path: str) -> None:
        root = self.repo_path.resolve()
        full_path = (self.repo_path / module_path).resolve()

        if full_path != root and root not in full_path.parents:
            raise StructureValidationError(
                "module_path_outside_registry",
                f"module path escapes the registry: {module_path}",
                module_path,
            )
        if not full_path.is_dir():
            raise StructureValidationError(
                "module_path_missing", f"module directory does not exist: {module_path}", module_path
            )

        manifest_path = full_path / MODULE_FILE
        manifest = load_manifest(manifest_path, missing_reason="module_manifest_not_found")

        for field_name in REQUIRED_MODULE_MANIFEST_FIELDS:
            if field_name not in manifest:
                raise StructureValidationError(
                    "missing_field",
                    f"module.json in {module_path} is missing required field '{field_name}'",
                    str(manifest_path),
                )
            if not isinstance(manifest[field_name], str):
                raise StructureValidationError(
                    "invalid_field_type",
                    f"module.json field '{field_name}' must be a string",
                    str(manifest_path),
                )

        module_type = manifest["type"]
        if module_type.lower() not in MODULE_TYPES:
            raise StructureValidationError(
                "invalid_module_type",
                f"unsupported module type '{module_type}', supported types: {', '.join(MODULE_TYPES)}",
                str(manifest_path),
            )

    # -- directory shape -----------------------------------------------

    def _validate_directory_structure(self) -> None:
        modules_dir = self.repo_path / MODULES_DIR
        if not modules_dir.exists():
            self._log.debug("modules directory not found, modules live in the registry root")
            return
        if not modules_dir.is_dir():
            raise StructureValidationError(
                "modules_not_directory",
                "modules path exists but is not a directory",
                str(modules_dir),
            )


def load_manifest(path: Path, missing_reason: str) -> dict[str, Any]:
    """Read a JSON manifest that must hold an object."""
    if not path.is_file():
        raise StructureValidationError(missing_reason, f"{path.name} not found", str(path))
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise StructureValidationError(
            "invalid_encoding", f"{path.name} is not valid UTF-8: {e}", str(path), cause=e
        ) from e
    except OSError as e:
        raise StructureValidationError(
            "manifest_unreadable", f"failed to read {path.name}: {e}", str(path), cause=e
        ) from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise StructureValidationError(
            "invalid_json", f"invalid JSON format in {path.name}: {e}", str(path), cause=e
        ) from e
    if not isinstance(data, dict):
        raise StructureValidationError(
            "invalid_field_type", f"{path.name} must contain a JSON object", str(path)
        )
    return data


def load_index_manifest(repo_path: str | Path) -> RegistryIndex:
    """Parse ``index.json`` without validating its contents."""
    data = load_manifest(Path(repo_path) / INDEX_FILE, missing_reason="manifest_not_found")
    modules = data.get("modules")
    if modules is not None and not isinstance(modules, dict):
        raise StructureValidationError(
            "invalid_field_type",
            "modules must be an object mapping module keys to modules",
            str(Path(repo_path) / INDEX_FILE),
        )
    if modules and not all(isinstance(m, dict) for m in modules.values()):
        raise StructureValidationError(
            "invalid_field_type", "every module must be an object", str(Path(repo_path) / INDEX_FILE)
        )
    return dict_to_index(data)


def is_semantic_version(version: str) -> bool:
    return bool(SEMVER_PATTERN.match(version))


def check_semantic_version(version: str, subject: str) -> None:
    if not is_semantic_version(version):
        raise StructureValidationError(
            "invalid_version",
            f"invalid version format: '{version}' does not follow semantic versioning (e.g., 1.0.0)",
            subject,
        )


def _require_text(data: dict[str, Any], field_name: str, subject: str, owner: str) -> None:
    value = data.get(field_name)
    if not isinstance(value, str) or not value.strip():
        raise StructureValidationError(
            "missing_field",
            f"{owner} {field_name} field is required and cannot be empty",
            subject,
        )


def _check_name(name: str, kind: str, length: tuple[int, int], subject: str) -> None:
    shortest, longest = length
    if not NAME_PATTERN.match(name):
        raise StructureValidationError(
            "invalid_name",
            f"{kind} name '{name}' must contain only lowercase letters, numbers, and hyphens",
            subject,
        )
    if len(name) < shortest:
        raise StructureValidationError(
            "invalid_name", f"{kind} name '{name}' must be at least {shortest} characters long", subject
        )
    if len(name) > longest:
        raise StructureValidationError(
            "invalid_name", f"{kind} name '{name}' must be {longest} characters or less", subject
        )
