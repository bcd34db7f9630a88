"""
FTP backend on top of the standard library ``ftplib``.
"""

from __future__ import annotations

import ftplib
import posixpath
from collections.abc import Callable
from typing import Any

from interchange.config.settings import RemoteSettings
from interchange.utils.logging import get_logger

logger = get_logger("interchange.transfer.ftp")


class FTPBackend:
    """
    FTP session wrapper with lazy connect.

    Logs in anonymously when no username is configured. All transfers are
    binary so files arrive byte-for-byte.
    """

    def __init__(self, settings: RemoteSettings, ftp_factory: Callable[[], ftplib.FTP] | None = None):
        self.settings = settings
        self.name = f"ftp://{settings.host}:{settings.port}"
        self._ftp_factory = ftp_factory or ftplib.FTP
        self._ftp: ftplib.FTP | None = None

    def connect(self) -> None:
        self._session()

    def _session(self) -> ftplib.FTP:
        """Connect (lazy) and return a logged-in ``ftplib.FTP``."""
        if self._ftp is not None:
            return self._ftp

        cfg = self.settings
        ftp = self._ftp_factory()
        ftp.connect(cfg.host, cfg.port, timeout=cfg.timeout_s)
        try:
            if cfg.anonymous:
                ftp.login()
            else:
                ftp.login(user=cfg.username, passwd=cfg.password or "")
            ftp.set_pasv(cfg.passive)
        except Exception:
            ftp.close()
            raise

        logger.debug(f"Connected to {self.name} as {cfg.username or 'anonymous'}")
        self._ftp = ftp
        return ftp

    def close(self) -> None:
        """Send QUIT and drop the session."""
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except (ftplib.Error, OSError, EOFError) as e:
            logger.debug(f"QUIT failed for {self.name}, closing socket: {e}")
            self._ftp.close()
        finally:
            self._ftp = None

    def reset(self) -> None:
        if self._ftp is None:
            return
        try:
            self._ftp.close()
        except OSError as e:
            logger.debug(f"Error closing FTP session for {self.name}: {e}")
        finally:
            self._ftp = None

    def list_names(self, remote_dir: str) -> list[str]:
        ftp = self._session()
        try:
            entries = ftp.nlst(remote_dir)
        except ftplib.error_perm as e:
            # Some servers answer NLST on an empty directory with 550
            if str(e).startswith("550") and self._is_dir(ftp, remote_dir):
                return []
            raise
        names = [posixpath.basename(entry.rstrip("/")) for entry in entries]
        # NLST may include subdirectories; keep only what CWD refuses
        return [n for n in names if n not in (".", "..") and not self._is_dir(ftp, posixpath.join(remote_dir, n))]

    def upload(self, local_path: str, remote_path: str) -> None:
        ftp = self._session()
        with open(local_path, "rb") as f:
            ftp.storbinary(f"STOR {remote_path}", f)

    def download(self, remote_path: str, local_path: str) -> None:
        ftp = self._session()
        with open(local_path, "wb") as f:
            ftp.retrbinary(f"RETR {remote_path}", f.write)

    def rename(self, remote_src: str, remote_dst: str) -> None:
        self._session().rename(remote_src, remote_dst)

    def make_dir(self, remote_dir: str) -> None:
        ftp = self._session()
        try:
            ftp.mkd(remote_dir)
        except ftplib.error_perm:
            if self._is_dir(ftp, remote_dir):
                return
            raise

    @staticmethod
    def _is_dir(ftp: Any, remote_dir: str) -> bool:
        current = ftp.pwd()
        try:
            ftp.cwd(remote_dir)
        except ftplib.error_perm:
            return False
        ftp.cwd(current)
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
