"""Filesystem-backed session storage."""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ohako_client.services.session_store import SessionStorage


@dataclass
class FileSessionStorage(SessionStorage):
    """Stores each named record as a file under a state directory."""

    directory: Path

    def read(self, name: str) -> str | None:
        """Return the record contents, if the file exists."""
        path = self._path(name)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, name: str, value: str) -> None:
        """Replace the record atomically."""
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, self._path(name))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, name: str) -> None:
        """Remove the record file if present."""
        self._path(name).unlink(missing_ok=True)

    def _path(self, name: str) -> Path:
        return self.directory / name
