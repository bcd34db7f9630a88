"""
Typed settings built from a loaded Config.

Components receive these immutable structs through their constructors;
nothing reads configuration from module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from interchange.config.loader import Config
from interchange.exceptions import ConfigurationError
from interchange.retry.policy import RetryPolicy

PROTOCOL_PORTS = {"ftp": 21, "sftp": 22}


@dataclass(frozen=True)
class RemoteSettings:
    host: str
    protocol: str = "ftp"
    port: int = 21
    username: str | None = None
    password: str | None = None
    private_key_path: str | None = None
    private_key_passphrase: str | None = None
    # Prefix applied to every remote directory below
    base_path: str = ""
    outbound_dir: str = ""
    inbound_dir: str = ""
    # Subdirectory of inbound_dir receiving imported files
    completed_dir: str = "completed"
    passive: bool = True
    timeout_s: float = 30.0

    @property
    def anonymous(self) -> bool:
        return not self.username


@dataclass(frozen=True)
class OutboundSettings:
    prefix: str
    no_period_operand: str
    staging_dir: Path
    archive_dir: Path
    extension: str = "txt"
    marker_extension: str = "ok"
    sequence: str = "0001"


@dataclass(frozen=True)
class InboundSettings:
    prefix: str
    staging_dir: Path
    archive_dir: Path
    # fnmatch pattern, defaults to "<prefix>*"
    pattern: str = ""
    marker_extension: str = "ok"
    max_files_per_run: int = 200

    @property
    def file_pattern(self) -> str:
        return self.pattern or f"{self.prefix}*"


@dataclass(frozen=True)
class DatabaseSettings:
    path: str = ":memory:"


@dataclass(frozen=True)
class ExchangeSettings:
    """Complete engine configuration for one run."""

    remote: RemoteSettings
    outbound: OutboundSettings
    inbound: InboundSettings
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    project_dir: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_config(cls, config: Config, project_dir: Path | None = None) -> ExchangeSettings:
        """
        Build settings from a loaded configuration.

        Relative local directories and the database path are resolved
        against ``project_dir`` (default: the config file's directory).

        Raises:
            ConfigurationError: If a required key is missing or a value is invalid
        """
        if project_dir is None:
            project_dir = config.path.parent if config.path is not None else Path.cwd()
        project_dir = Path(project_dir)

        remote = _remote_settings(config.section("remote"))
        outbound_cfg = config.section("outbound")
        inbound_cfg = config.section("inbound")

        outbound = OutboundSettings(
            prefix=_required(outbound_cfg, "prefix", "outbound"),
            no_period_operand=_required(outbound_cfg, "no_period_operand", "outbound"),
            staging_dir=_local_dir(project_dir, outbound_cfg.get("staging_dir", "work/outbound")),
            archive_dir=_local_dir(project_dir, outbound_cfg.get("archive_dir", "archive/outbound")),
            extension=str(outbound_cfg.get("extension", "txt")).lstrip("."),
            marker_extension=str(outbound_cfg.get("marker_extension", "ok")).lstrip("."),
            sequence=str(outbound_cfg.get("sequence", "0001")),
        )

        inbound = InboundSettings(
            prefix=_required(inbound_cfg, "prefix", "inbound"),
            staging_dir=_local_dir(project_dir, inbound_cfg.get("staging_dir", "work/inbound")),
            archive_dir=_local_dir(project_dir, inbound_cfg.get("archive_dir", "archive/inbound")),
            pattern=str(inbound_cfg.get("pattern") or ""),
            marker_extension=str(inbound_cfg.get("marker_extension", "ok")).lstrip("."),
            max_files_per_run=_int(inbound_cfg.get("max_files_per_run", 200), "inbound.max_files_per_run"),
        )
        if inbound.max_files_per_run < 1:
            raise ConfigurationError("inbound.max_files_per_run must be >= 1")

        db_path = str(config.get("database.path", ":memory:"))
        if db_path != ":memory:" and not Path(db_path).is_absolute():
            db_path = str(project_dir / db_path)

        retry_cfg = config.section("retry")
        try:
            retry = RetryPolicy(
                max_attempts=_int(retry_cfg.get("max_attempts", 3), "retry.max_attempts"),
                wait_seconds=_float(retry_cfg.get("wait_seconds", 5.0), "retry.wait_seconds"),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid retry configuration: {e}") from e

        return cls(
            remote=remote,
            outbound=outbound,
            inbound=inbound,
            database=DatabaseSettings(path=db_path),
            retry=retry,
            project_dir=project_dir,
        )


def _remote_settings(cfg: dict[str, Any]) -> RemoteSettings:
    protocol = str(cfg.get("protocol", "ftp")).lower()
    if protocol not in PROTOCOL_PORTS:
        raise ConfigurationError(
            f"Unknown remote protocol '{protocol}'. Must be one of: {', '.join(sorted(PROTOCOL_PORTS))}"
        )
    return RemoteSettings(
        host=_required(cfg, "host", "remote"),
        protocol=protocol,
        port=_int(cfg.get("port", PROTOCOL_PORTS[protocol]), "remote.port"),
        username=_optional(cfg.get("username")),
        password=_optional(cfg.get("password")),
        private_key_path=_optional(cfg.get("private_key_path")),
        private_key_passphrase=_optional(cfg.get("private_key_passphrase")),
        base_path=str(cfg.get("base_path") or "").rstrip("/"),
        outbound_dir=str(cfg.get("outbound_dir") or "").strip("/"),
        inbound_dir=str(cfg.get("inbound_dir") or "").strip("/"),
        completed_dir=str(cfg.get("completed_dir") or "completed").strip("/"),
        passive=bool(cfg.get("passive", True)),
        timeout_s=_float(cfg.get("timeout_s", 30.0), "remote.timeout_s"),
    )


def _required(cfg: dict[str, Any], key: str, section: str) -> str:
    value = _optional(cfg.get(key))
    if value is None:
        raise ConfigurationError(f"Missing required configuration '{section}.{key}'")
    return value


def _optional(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    return value


def _int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Configuration '{key}' must be an integer, got {value!r}") from e


def _float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Configuration '{key}' must be a number, got {value!r}") from e


def _local_dir(project_dir: Path, value: Any) -> Path:
    path = Path(str(value))
    return path if path.is_absolute() else project_dir / path
