"""
SFTP backend on top of paramiko, for partners that expose SFTP instead of FTP.
"""

from __future__ import annotations

import stat

import paramiko

from interchange.config.settings import RemoteSettings
from interchange.utils.logging import get_logger

logger = get_logger("interchange.transfer.sftp")


class SFTPBackend:
    """
    Minimal SFTP session wrapper: lazy connect, password or private key auth.
    """

    def __init__(self, settings: RemoteSettings):
        self.settings = settings
        self.name = f"sftp://{settings.host}:{settings.port}"
        self._transport: paramiko.Transport | None = None
        self._client: paramiko.SFTPClient | None = None

    def connect(self) -> None:
        self._session()

    def _session(self) -> paramiko.SFTPClient:
        """Connect (lazy) and return a live `paramiko.SFTPClient`."""
        if self._client is not None:
            return self._client

        cfg = self.settings
        transport = paramiko.Transport((cfg.host, cfg.port))
        transport.banner_timeout = cfg.timeout_s
        transport.auth_timeout = cfg.timeout_s

        pkey = None
        if cfg.private_key_path:
            # Try common key types; paramiko raises if incompatible
            try:
                pkey = paramiko.RSAKey.from_private_key_file(cfg.private_key_path, password=cfg.private_key_passphrase)
            except paramiko.SSHException:
                pkey = paramiko.Ed25519Key.from_private_key_file(
                    cfg.private_key_path, password=cfg.private_key_passphrase
                )

        try:
            transport.connect(username=cfg.username or "anonymous", password=cfg.password, pkey=pkey)
            client = paramiko.SFTPClient.from_transport(transport)
        except Exception:
            transport.close()
            raise
        if client is None:
            transport.close()
            raise paramiko.SSHException(f"Could not open SFTP channel on {self.name}")

        logger.debug(f"Connected to {self.name} as {cfg.username or 'anonymous'}")
        self._transport = transport
        self._client = client
        return client

    def close(self) -> None:
        """Close SFTP client + underlying transport."""
        try:
            if self._client is not None:
                self._client.close()
        finally:
            self._client = None
        try:
            if self._transport is not None:
                self._transport.close()
        finally:
            self._transport = None

    def reset(self) -> None:
        try:
            self.close()
        except (OSError, paramiko.SSHException) as e:
            logger.debug(f"Error closing SFTP session for {self.name}: {e}")

    def list_names(self, remote_dir: str) -> list[str]:
        return [
            attr.filename
            for attr in self._session().listdir_attr(remote_dir)
            if not stat.S_ISDIR(attr.st_mode or 0)
        ]

    def upload(self, local_path: str, remote_path: str) -> None:
        self._session().put(local_path, remote_path)

    def download(self, remote_path: str, local_path: str) -> None:
        self._session().get(remote_path, local_path)

    def rename(self, remote_src: str, remote_dst: str) -> None:
        # posix_rename overwrites an existing target like FTP RNTO does
        self._session().posix_rename(remote_src, remote_dst)

    def make_dir(self, remote_dir: str) -> None:
        client = self._session()
        try:
            client.mkdir(remote_dir)
        except OSError:
            if not self._is_dir(client, remote_dir):
                raise

    @staticmethod
    def _is_dir(client: paramiko.SFTPClient, remote_dir: str) -> bool:
        try:
            return stat.S_ISDIR(client.stat(remote_dir).st_mode or 0)
        except OSError:
            return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
