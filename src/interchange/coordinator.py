"""
Run Coordinator: one run of the exchange engine.

Order of a run:
1. Directory bootstrap (staging and archive directories)
2. Open the database (held for the whole run) and the remote session
3. Recover leftovers of an interrupted earlier run from the staging areas
4. Outbound export, then inbound import (per the selected mode)

A failure in one direction is recorded on the report and does not stop the
other direction from running.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from interchange.config.settings import ExchangeSettings
from interchange.context import RunContext
from interchange.exceptions import InterchangeError
from interchange.pipelines import InboundImporter, OutboundExporter
from interchange.records import Exported, ExportResult, ImportSummary, NothingToDo
from interchange.store import DatabaseConnection, ExchangeStore
from interchange.transfer import RemoteTransferClient, TransferBackend, build_backend
from interchange.utils.logging import get_logger

logger = get_logger("interchange.coordinator")


class RunMode(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"
    ALL = "all"


@dataclass
class RecoveryReport:
    """Staging leftovers found at run start and what was done with them."""

    archived: list[str] = field(default_factory=list)
    discarded: list[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.archived and not self.discarded


@dataclass
class RunReport:
    context: RunContext
    mode: RunMode
    recovery: RecoveryReport = field(default_factory=RecoveryReport)
    outbound: ExportResult | None = None
    inbound: ImportSummary | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and (self.inbound is None or self.inbound.ok)

    def as_dict(self) -> dict[str, Any]:
        outbound: dict[str, Any] | None = None
        if isinstance(self.outbound, NothingToDo):
            outbound = {"status": "nothing_to_do"}
        elif isinstance(self.outbound, Exported):
            batch = self.outbound.batch
            outbound = {
                "status": batch.status.value,
                "file": batch.file_name,
                "records": batch.record_count,
                "bytes": batch.byte_size,
            }
        inbound: dict[str, Any] | None = None
        if self.inbound is not None:
            inbound = {
                "imported": [o.name for o in self.inbound.imported],
                "skipped": [o.name for o in self.inbound.skipped],
                "failed": {o.name: o.error for o in self.inbound.failed},
                "relocation_warnings": [o.warning for o in self.inbound.imported if o.warning],
            }
        return {
            "run_id": self.context.run_id,
            "started_at": self.context.started_at.isoformat(),
            "mode": self.mode.value,
            "ok": self.ok,
            "recovered": {"archived": self.recovery.archived, "discarded": self.recovery.discarded},
            "outbound": outbound,
            "inbound": inbound,
            "errors": self.errors,
        }


class RunCoordinator:
    """
    Owns the run identity, step ordering and crash recovery.

    The backend and database connection can be injected (tests, embedding);
    by default they are built from the settings.
    """

    def __init__(
        self,
        settings: ExchangeSettings,
        *,
        backend: TransferBackend | None = None,
        database: DatabaseConnection | None = None,
        client: RemoteTransferClient | None = None,
    ):
        self.settings = settings
        self.database = database or DatabaseConnection(settings.database)
        self.client = client or RemoteTransferClient(
            backend or build_backend(settings.remote),
            settings.retry,
            base_path=settings.remote.base_path,
        )
        self._store: ExchangeStore | None = None

    @property
    def store(self) -> ExchangeStore:
        if self._store is None:
            self._store = ExchangeStore(self.database.connection)
            self._store.initialize_schema()
        return self._store

    def bootstrap_directories(self) -> None:
        for directory in (
            self.settings.outbound.staging_dir,
            self.settings.outbound.archive_dir,
            self.settings.inbound.staging_dir,
            self.settings.inbound.archive_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def run(self, mode: RunMode = RunMode.ALL, context: RunContext | None = None) -> RunReport:
        """
        Execute one run. Never raises for engine errors; they land on the report.

        Args:
            mode: Which directions to run
            context: Run identity (default: a fresh one stamped now)
        """
        context = context or RunContext.new()
        report = RunReport(context=context, mode=mode)
        logger.info(f"Starting {mode.value} run {context.run_id} ({context.stamp})")

        try:
            self.bootstrap_directories()
            store = self.store
        except (InterchangeError, OSError) as e:
            logger.error(f"Run {context.run_id} aborted before start: {e}")
            report.errors.append(str(e))
            return report

        try:
            self.client.connect()
        except InterchangeError as e:
            logger.error(f"Run {context.run_id} aborted: {e}")
            report.errors.append(str(e))
            return report

        try:
            try:
                report.recovery = self.recover(store, mode)
            except (InterchangeError, OSError) as e:
                logger.error(f"Recovery of staging leftovers failed: {e}")
                report.errors.append(f"recovery: {e}")
                return report

            if mode in (RunMode.OUTBOUND, RunMode.ALL):
                self._run_outbound(store, context, report)
            if mode in (RunMode.INBOUND, RunMode.ALL):
                self._run_inbound(store, context, report)
        finally:
            self.client.close()

        status = "completed" if report.ok else "completed with errors"
        logger.info(f"Run {context.run_id} {status}")
        return report

    def close(self) -> None:
        self.database.close()
        self._store = None

    def __enter__(self) -> RunCoordinator:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()

    # ---------- steps ----------
    def _run_outbound(self, store: ExchangeStore, context: RunContext, report: RunReport) -> None:
        exporter = OutboundExporter(store, self.client, self.settings.outbound, self.settings.remote.outbound_dir)
        try:
            report.outbound = exporter.run(context)
        except InterchangeError as e:
            logger.error(f"Outbound export failed in run {context.run_id}: {e}")
            report.errors.append(f"outbound: {e}")

    def _run_inbound(self, store: ExchangeStore, context: RunContext, report: RunReport) -> None:
        importer = InboundImporter(
            store,
            self.client,
            self.settings.inbound,
            self.settings.remote.inbound_dir,
            self.settings.remote.completed_dir,
        )
        report.inbound = ImportSummary()
        try:
            importer.run(context, report.inbound)
        except InterchangeError as e:
            logger.error(f"Inbound import aborted in run {context.run_id}: {e}")
            report.errors.append(f"inbound: {e}")

    # ---------- recovery ----------
    def recover(self, store: ExchangeStore, mode: RunMode = RunMode.ALL) -> RecoveryReport:
        """
        Resolve files an interrupted run left in the staging directories.

        The database decides: a staged file whose batch or ledger entry was
        committed is archived; anything else is discarded so the next step
        regenerates or re-downloads it.
        """
        report = RecoveryReport()
        if mode in (RunMode.OUTBOUND, RunMode.ALL):
            self._recover_outbound(store, report)
        if mode in (RunMode.INBOUND, RunMode.ALL):
            self._recover_inbound(store, report)
        if not report.empty:
            logger.info(f"Recovered staging leftovers: archived={report.archived} discarded={report.discarded}")
        return report

    def _recover_outbound(self, store: ExchangeStore, report: RecoveryReport) -> None:
        outbound = self.settings.outbound
        data_suffix = f".{outbound.extension}"
        marker_suffix = f".{outbound.marker_extension}"

        for path in sorted(outbound.staging_dir.iterdir()):
            if not path.is_file() or path.suffix != data_suffix:
                continue
            marker = path.with_suffix(marker_suffix)
            if store.is_batch_recorded(path.name):
                for leftover in (path, marker):
                    if leftover.exists():
                        _move(leftover, outbound.archive_dir)
                report.archived.append(path.name)
            else:
                logger.warning(f"Discarding unacknowledged batch {path.name}; its rows remain pending")
                path.unlink()
                marker.unlink(missing_ok=True)
                report.discarded.append(path.name)

        # Markers whose data file is gone
        for marker in sorted(outbound.staging_dir.glob(f"*{marker_suffix}")):
            if not marker.with_suffix(data_suffix).exists():
                marker.unlink()
                report.discarded.append(marker.name)

    def _recover_inbound(self, store: ExchangeStore, report: RecoveryReport) -> None:
        inbound = self.settings.inbound
        for path in sorted(inbound.staging_dir.iterdir()):
            if not path.is_file():
                continue
            if path.suffix != ".part" and store.is_file_processed(path.name):
                _move(path, inbound.archive_dir)
                report.archived.append(path.name)
            else:
                path.unlink()
                report.discarded.append(path.name)


def _move(path: Path, directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / path.name
    if target.exists():
        target.unlink()
    shutil.move(str(path), str(target))
