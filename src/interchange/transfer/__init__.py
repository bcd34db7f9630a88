"""
Remote transfer: FTP/SFTP backends and the retrying client used by the pipelines.
"""

from interchange.config.settings import RemoteSettings
from interchange.exceptions import ConfigurationError
from interchange.transfer.base import TransferBackend
from interchange.transfer.client import RemoteTransferClient
from interchange.transfer.ftp import FTPBackend
from interchange.transfer.memory import MemoryBackend


def build_backend(settings: RemoteSettings) -> TransferBackend:
    """Create the backend matching ``settings.protocol``."""
    if settings.protocol == "ftp":
        return FTPBackend(settings)
    if settings.protocol == "sftp":
        from interchange.transfer.sftp import SFTPBackend

        return SFTPBackend(settings)
    raise ConfigurationError(f"Unsupported remote protocol: {settings.protocol}")


__all__ = [
    "TransferBackend",
    "RemoteTransferClient",
    "FTPBackend",
    "MemoryBackend",
    "build_backend",
]
