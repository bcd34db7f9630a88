"""
Remote Transfer Client: retried remote operations with typed failures.
"""

from __future__ import annotations

import os
import posixpath
from pathlib import Path
from typing import Any, Callable, TypeVar

from interchange.exceptions import InterchangeConnectionError, TransferError
from interchange.retry import DEFAULT_RETRY_POLICY, RetryManager, RetryPolicy
from interchange.transfer.base import TransferBackend
from interchange.utils.logging import get_logger

logger = get_logger("interchange.transfer.client")

T = TypeVar("T")


class RemoteTransferClient:
    """
    Wraps a TransferBackend with the configured retry policy.

    Remote paths passed in are relative to ``base_path``. Every operation is
    attempted up to ``policy.max_attempts`` times with a fixed wait; a failed
    attempt drops the session so the next one reconnects. Exhaustion raises
    TransferError carrying the last underlying exception.
    """

    def __init__(
        self,
        backend: TransferBackend,
        policy: RetryPolicy | None = None,
        *,
        base_path: str = "",
        retry_manager: RetryManager | None = None,
    ):
        self.backend = backend
        self.policy = policy or DEFAULT_RETRY_POLICY
        self.base_path = base_path.rstrip("/")
        self._retry = retry_manager or RetryManager()

    def resolve(self, *parts: str) -> str:
        """Absolute remote path for ``parts`` below the base path."""
        cleaned = [p.strip("/") for p in parts if p and p.strip("/")]
        relative = posixpath.join(*cleaned) if cleaned else ""
        if not self.base_path:
            return "/" + relative if relative else "/"
        return f"{self.base_path}/{relative}" if relative else self.base_path

    # ---------- session ----------
    def connect(self) -> None:
        """
        Open the remote session.

        Raises:
            InterchangeConnectionError: If the endpoint stays unreachable
        """
        try:
            self._retry.execute_sync(
                self._attempt(self.backend.connect), policy=self.policy, operation=f"connect {self.backend.name}"
            )
        except Exception as e:
            raise InterchangeConnectionError(
                f"Cannot connect to {self.backend.name}: {e}", details={"endpoint": self.backend.name}
            ) from e

    def close(self) -> None:
        try:
            self.backend.close()
        except Exception as e:
            logger.warning(f"Error closing remote session {self.backend.name}: {e}")

    def __enter__(self) -> RemoteTransferClient:
        self.connect()
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: Any) -> None:
        self.close()

    # ---------- operations ----------
    def upload(self, local_path: str | Path, remote_path: str) -> None:
        target = self.resolve(remote_path)
        self._run("upload", target, self.backend.upload, str(local_path), target)
        logger.info(f"Uploaded {Path(local_path).name} to {target}")

    def download(self, remote_path: str, local_path: str | Path) -> None:
        """Download into ``local_path`` via a ``.part`` file, replaced atomically."""
        source = self.resolve(remote_path)
        local = Path(local_path)
        local.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = local.with_name(local.name + ".part")
        try:
            self._run("download", source, self.backend.download, source, str(tmp_path))
        except TransferError:
            tmp_path.unlink(missing_ok=True)
            raise
        os.replace(tmp_path, local)
        logger.debug(f"Downloaded {source} to {local}")

    def list(self, remote_dir: str) -> list[str]:
        target = self.resolve(remote_dir)
        return self._run("list", target, self.backend.list_names, target)

    def move(self, remote_src: str, remote_dst: str) -> None:
        src, dst = self.resolve(remote_src), self.resolve(remote_dst)
        self._run("move", f"{src} -> {dst}", self.backend.rename, src, dst)

    def ensure_dir(self, remote_dir: str) -> None:
        target = self.resolve(remote_dir)
        self._run("mkdir", target, self.backend.make_dir, target)

    # ---------- internal helpers ----------
    def _attempt(self, func: Callable[..., T]) -> Callable[..., T]:
        """Wrap one attempt: count it and drop the session when it fails."""

        def attempt(*args: Any) -> T:
            attempt.calls += 1
            try:
                return func(*args)
            except Exception:
                self.backend.reset()
                raise

        attempt.calls = 0
        attempt.__name__ = getattr(func, "__name__", "attempt")
        return attempt

    def _run(self, operation: str, target: str, func: Callable[..., T], *args: Any) -> T:
        attempt = self._attempt(func)
        try:
            return self._retry.execute_sync(attempt, *args, policy=self.policy, operation=f"{operation} {target}")
        except Exception as e:
            raise TransferError(operation, target, cause=e, attempts=attempt.calls) from e
