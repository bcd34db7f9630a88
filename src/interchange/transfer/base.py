"""
Transfer backend protocol.

A backend performs single, unretried operations against one remote endpoint
using absolute remote paths. Retry and error translation live in
``RemoteTransferClient``.
"""

from __future__ import annotations

from typing import Protocol


class TransferBackend(Protocol):
    """Minimal remote filesystem operations used by the pipelines."""

    name: str

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def reset(self) -> None:
        """Drop the current session so the next call reconnects."""
        ...

    def list_names(self, remote_dir: str) -> list[str]:
        """Plain file names (no directories) inside ``remote_dir``."""
        ...

    def upload(self, local_path: str, remote_path: str) -> None: ...

    def download(self, remote_path: str, local_path: str) -> None: ...

    def rename(self, remote_src: str, remote_dst: str) -> None: ...

    def make_dir(self, remote_dir: str) -> None:
        """Create ``remote_dir``; succeed silently if it already exists."""
        ...
