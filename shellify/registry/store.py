"""File-based storage for the registered registry list.

The list lives in a single JSON file and is always rewritten in full. Writes
go to a temporary file in the same directory that is then moved over the
original, so readers never observe a half-written list.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from shellify.errors import PersistenceError
from shellify.registry.models import Registry, dict_to_registry, registry_to_dict


class RegistryStore:
    """Reads and writes ``registries.json``."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> list[Registry]:
        """Load the registry list. A missing file is an empty list."""
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as e:
            raise PersistenceError(
                f"Registries file is not valid UTF-8: {e}", path=str(self.path), cause=e
            ) from e
        except OSError as e:
            raise PersistenceError(
                f"Failed to read registries file: {e}", path=str(self.path), cause=e
            ) from e
        except json.JSONDecodeError as e:
            raise PersistenceError(
                f"Failed to parse registries file: {e}", path=str(self.path), cause=e
            ) from e

        if not isinstance(data, list):
            raise PersistenceError(
                "Registries file must contain a JSON array", path=str(self.path)
            )
        try:
            return [dict_to_registry(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(
                f"Malformed registry record: {e}", path=str(self.path), cause=e
            ) from e

    def save(self, registries: list[Registry]) -> None:
        """Replace the stored list with ``registries``."""
        payload = json.dumps([registry_to_dict(r) for r in registries], indent=2) + "\n"
        tmp_name = ""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=".registries-",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(
                f"Failed to write registries file: {e}", path=str(self.path), cause=e
            ) from e
