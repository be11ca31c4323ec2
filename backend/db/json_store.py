"""Single-document JSON file client used by backend repositories only."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class JsonStoreSettings:
    path: Path
    indent: int = 2


class JsonDocumentStore:
    """Reads and overwrites one JSON document. Errors propagate to the caller."""

    def __init__(self, settings: JsonStoreSettings) -> None:
        self.settings = settings

    @property
    def path(self) -> Path:
        return self.settings.path

    def exists(self) -> bool:
        return self.settings.path.is_file()

    def ensure_document(self, default: Any) -> bool:
        """Write `default` when no document exists yet. Return True if one was created."""

        if self.exists():
            return False
        self.write_document(default)
        return True

    def read_document(self) -> Any:
        with self.settings.path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def write_document(self, document: Any) -> None:
        """Replace the whole document through a sibling temporary file."""

        target = self.settings.path
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(document, indent=self.settings.indent, ensure_ascii=False)

        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
