# artifacts.py
"""
Build outputs are written next to their destination under a temporary
name and only renamed into place once every output has been produced.
"""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, TextIO, Tuple


def _umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


class StagedOutputs:
    """Use as a context manager: commit on success, discard on error."""

    def __init__(self):
        self._staged: List[Tuple[Path, Path]] = []

    @contextmanager
    def open(self, path: Path, encoding: str = "utf-8") -> Iterator[TextIO]:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        self._staged.append((Path(tmp), path))
        # newline="" keeps line endings exactly as written
        with open(fd, "w", encoding=encoding, newline="") as f:
            yield f

    def write_text(self, path: Path, text: str, encoding: str = "utf-8") -> None:
        with self.open(path, encoding) as f:
            f.write(text)

    @property
    def pending(self) -> List[Path]:
        return [dest for _, dest in self._staged]

    def commit(self) -> List[Path]:
        mode = 0o666 & ~_umask()
        done = []
        try:
            while self._staged:
                tmp, dest = self._staged[0]
                os.chmod(tmp, mode)
                os.replace(tmp, dest)
                self._staged.pop(0)
                done.append(dest)
        except OSError:
            # outputs already in place stay; the rest must not linger
            self.discard()
            raise
        return done

    def discard(self) -> None:
        for tmp, _ in self._staged:
            tmp.unlink(missing_ok=True)
        self._staged.clear()

    def __enter__(self) -> "StagedOutputs":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.commit()
        else:
            self.discard()
        return False
