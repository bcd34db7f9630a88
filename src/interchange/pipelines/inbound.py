"""
Inbound import: list remote files, skip the ones in the ledger, download,
parse, persist transactionally, archive locally, relocate remotely.

Files are handled one at a time. Parse and persist failures reject only the
file at hand; listing and download failures abort the run. Relocating the
remote file happens after the commit and never undoes it.
"""

from __future__ import annotations

import fnmatch
import posixpath
import shutil
from datetime import datetime
from pathlib import Path

from interchange.codec import parse_inbound
from interchange.config.settings import InboundSettings
from interchange.context import RunContext
from interchange.exceptions import PersistenceError, TransferError, ValidationError
from interchange.records import (
    CandidateState,
    Failed,
    FileOutcome,
    ImportCandidate,
    Imported,
    ImportedRecord,
    ImportSummary,
    Skipped,
)
from interchange.store import ExchangeStore
from interchange.transfer import RemoteTransferClient
from interchange.utils.logging import get_logger

logger = get_logger("interchange.inbound")


class InboundImporter:
    """Runs one inbound import."""

    def __init__(
        self,
        store: ExchangeStore,
        client: RemoteTransferClient,
        settings: InboundSettings,
        remote_dir: str = "",
        completed_dir: str = "completed",
    ):
        self.store = store
        self.client = client
        self.settings = settings
        self.remote_dir = remote_dir
        self.completed_dir = posixpath.join(remote_dir, completed_dir)
        self._completed_dir_ready = False

    def is_candidate(self, name: str) -> bool:
        """Matches the partner's data-file pattern and is not a marker."""
        if name.lower().endswith(f".{self.settings.marker_extension.lower()}"):
            return False
        return fnmatch.fnmatchcase(name, self.settings.file_pattern)

    def discover(self) -> list[ImportCandidate]:
        """
        List matching remote files in name order.

        Only files missing from the ledger count toward ``max_files_per_run``.
        Already imported files that are still on the server are always
        returned so they can be relocated; they never use up the cap.

        Raises:
            TransferError: If the listing fails
        """
        now = datetime.now()
        names = sorted(n for n in self.client.list(self.remote_dir) if self.is_candidate(n))
        limit = self.settings.max_files_per_run
        selected, new, deferred = [], 0, 0
        for name in names:
            if not self.store.is_file_processed(name):
                if new >= limit:
                    deferred += 1
                    continue
                new += 1
            selected.append(name)
        if deferred:
            logger.info(f"Found {new + deferred} new inbound files, processing the first {limit} this run")
        return [ImportCandidate(name=name, discovered_at=now) for name in selected]

    def run(self, context: RunContext, summary: ImportSummary | None = None) -> ImportSummary:
        """
        Import every new candidate file.

        ``summary`` is filled in as files complete, so a caller still sees
        per-file outcomes when a run-level error aborts the loop.

        Raises:
            TransferError: If listing or a download exhausts its retries
        """
        summary = summary if summary is not None else ImportSummary()
        candidates = self.discover()
        if not candidates:
            logger.info("No inbound files found")
            return summary

        for candidate in candidates:
            summary.outcomes.append(self.process(candidate, context))
        return summary

    def check(self, candidate: ImportCandidate) -> Skipped | None:
        """Ledger check; returns Skipped for a file imported by an earlier run."""
        if self.store.is_file_processed(candidate.name):
            candidate.state = CandidateState.SKIPPED
            return Skipped(candidate.name)
        return None

    def process(self, candidate: ImportCandidate, context: RunContext) -> FileOutcome:
        name = candidate.name
        skipped = self.check(candidate)
        if skipped is not None:
            logger.debug(f"Skipping {name}: already imported")
            # Still present remotely means an earlier relocation failed
            self.relocate(name)
            return skipped

        local_path = self.settings.staging_dir / name
        remote_path = posixpath.join(self.remote_dir, name)

        try:
            self.client.download(remote_path, local_path)
        except TransferError as e:
            candidate.state = CandidateState.FAILED
            logger.error(f"Download of {name} failed, aborting inbound run: {e}")
            raise
        candidate.state = CandidateState.DOWNLOADED

        try:
            records = self.parse(local_path, name)
            count = self.store.persist_import(name, records, context.started_at)
        except (ValidationError, PersistenceError) as e:
            candidate.state = CandidateState.FAILED
            logger.error(f"Rejected inbound file {name}, nothing imported: {e}")
            local_path.unlink(missing_ok=True)
            return Failed(name, str(e))
        candidate.state = CandidateState.PERSISTED
        logger.info(f"Imported {count} records from {name}")

        if self.archive(local_path, context):
            candidate.state = CandidateState.ARCHIVED

        warning = self.relocate(name)
        candidate.state = CandidateState.RELOCATE_FAILED if warning else CandidateState.RELOCATED
        return Imported(name, count, relocated=warning is None, warning=warning)

    def parse(self, local_path: Path, name: str) -> list[ImportedRecord]:
        """Parse the whole file before anything touches the database."""
        try:
            text = local_path.read_bytes().decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ValidationError(f"File is not valid UTF-8: {e}", file_name=name) from e
        return parse_inbound(text, name)

    def archive(self, local_path: Path, context: RunContext) -> bool:
        """Copy the committed file into the archive directory and drop the staged copy."""
        archive_dir = self.settings.archive_dir
        target = archive_dir / local_path.name
        if target.exists():
            target = archive_dir / f"{local_path.stem}_{context.stamp}{local_path.suffix}"
        try:
            archive_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(local_path, target)
            local_path.unlink()
        except OSError as e:
            logger.warning(f"Could not archive {local_path.name}: {e}")
            return False
        logger.debug(f"Archived {local_path.name} to {target}")
        return True

    def relocate(self, name: str) -> str | None:
        """
        Move the remote file into the completed directory.

        Returns:
            None on success, otherwise the warning text. Never raises TransferError.
        """
        try:
            if not self._completed_dir_ready:
                self.client.ensure_dir(self.completed_dir)
                self._completed_dir_ready = True
            self.client.move(posixpath.join(self.remote_dir, name), posixpath.join(self.completed_dir, name))
        except TransferError as e:
            warning = f"Imported {name} but could not move it to {self.completed_dir}: {e}"
            logger.warning(warning)
            return warning
        return None
