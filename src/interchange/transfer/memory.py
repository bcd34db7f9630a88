"""
In-memory transfer backend for testing.

Keeps a small remote filesystem in process and records every operation, so
tests can assert ordering (e.g. data file before marker) and inject
failures without an FTP server.

Example:
    backend = MemoryBackend(dirs=["/partner/in"])
    backend.put_file("/partner/out/IMP_1.txt", b"...")
    backend.fail_next("rename", times=3)
"""

from __future__ import annotations

import posixpath
from collections import defaultdict
from pathlib import Path


class MemoryBackend:
    """
    In-process remote filesystem.

    Directories must exist before files are written into them, as on a real
    FTP server.
    """

    def __init__(self, dirs: list[str] | None = None, name: str = "memory"):
        self.name = name
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}
        self.operations: list[tuple[str, str]] = []
        self.connected = False
        self._failures: dict[str, list[BaseException]] = defaultdict(list)
        for d in dirs or []:
            self.add_dir(d)

    # ---------- test helpers ----------
    def add_dir(self, remote_dir: str) -> None:
        path = _norm(remote_dir)
        while path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def put_file(self, remote_path: str, data: bytes) -> None:
        path = _norm(remote_path)
        self.add_dir(posixpath.dirname(path))
        self.files[path] = data

    def fail_next(self, operation: str, times: int = 1, error: BaseException | None = None) -> None:
        """Make the next ``times`` calls of ``operation`` raise ``error`` (default: OSError)."""
        for _ in range(times):
            self._failures[operation].append(error or OSError(f"injected {operation} failure"))

    def calls(self, operation: str) -> list[str]:
        return [target for op, target in self.operations if op == operation]

    def _record(self, operation: str, target: str) -> None:
        self.operations.append((operation, target))
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    # ---------- backend API ----------
    def connect(self) -> None:
        self._record("connect", self.name)
        self.connected = True

    def close(self) -> None:
        self.connected = False

    def reset(self) -> None:
        self.connected = False

    def list_names(self, remote_dir: str) -> list[str]:
        path = _norm(remote_dir)
        self._record("list", path)
        if path not in self.dirs:
            raise FileNotFoundError(f"No such directory: {path}")
        return sorted(posixpath.basename(f) for f in self.files if posixpath.dirname(f) == path)

    def upload(self, local_path: str, remote_path: str) -> None:
        path = _norm(remote_path)
        self._record("upload", path)
        self._require_dir(posixpath.dirname(path))
        self.files[path] = Path(local_path).read_bytes()

    def download(self, remote_path: str, local_path: str) -> None:
        path = _norm(remote_path)
        self._record("download", path)
        if path not in self.files:
            raise FileNotFoundError(f"No such file: {path}")
        Path(local_path).write_bytes(self.files[path])

    def rename(self, remote_src: str, remote_dst: str) -> None:
        src, dst = _norm(remote_src), _norm(remote_dst)
        self._record("rename", f"{src} -> {dst}")
        if src not in self.files:
            raise FileNotFoundError(f"No such file: {src}")
        self._require_dir(posixpath.dirname(dst))
        self.files[dst] = self.files.pop(src)

    def make_dir(self, remote_dir: str) -> None:
        path = _norm(remote_dir)
        self._record("mkdir", path)
        self._require_dir(posixpath.dirname(path))
        self.dirs.add(path)

    def _require_dir(self, path: str) -> None:
        if path not in self.dirs:
            raise FileNotFoundError(f"No such directory: {path}")


def _norm(path: str) -> str:
    return posixpath.normpath("/" + path.lstrip("/"))
