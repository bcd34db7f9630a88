"""
Outbound export: pending rows -> batch file + marker -> remote -> rows marked SENT.

Every step before the final database update leaves the rows PENDING, so a
failed run is simply retried by the next one under a new batch name. The
update after a successful upload is the one window where a crash causes a
re-send; that duplicate arrives under a distinguishable file name.
"""

from __future__ import annotations

import posixpath
import shutil
from pathlib import Path

from interchange.codec import encode_pending
from interchange.config.settings import OutboundSettings
from interchange.context import RunContext
from interchange.exceptions import ExportError, PersistenceError
from interchange.records import (
    ExportBatch,
    Exported,
    ExportResult,
    NothingToDo,
    PendingRecord,
    UploadStatus,
)
from interchange.store import ExchangeStore
from interchange.transfer import RemoteTransferClient
from interchange.utils.logging import get_logger

logger = get_logger("interchange.outbound")


class OutboundExporter:
    """Runs one outbound export."""

    def __init__(
        self,
        store: ExchangeStore,
        client: RemoteTransferClient,
        settings: OutboundSettings,
        remote_dir: str = "",
    ):
        self.store = store
        self.client = client
        self.settings = settings
        self.remote_dir = remote_dir

    def batch_file_name(self, context: RunContext) -> str:
        """``<prefix>_<YYYYMMDD_HHMMSS>_<sequence>.<ext>``"""
        s = self.settings
        return f"{s.prefix}_{context.stamp}_{s.sequence}.{s.extension}"

    def marker_file_name(self, batch_file_name: str) -> str:
        return f"{Path(batch_file_name).stem}.{self.settings.marker_extension}"

    def run(self, context: RunContext) -> ExportResult:
        """
        Export every pending row as one batch.

        Returns:
            NothingToDo when no row is pending, otherwise Exported(batch)

        Raises:
            ValidationError: If a row cannot be encoded (nothing is written)
            ExportError: If the batch file cannot be written or verified
            TransferError: If an upload exhausts its retries
            PersistenceError: If the rows cannot be marked as sent after upload
        """
        records = self.store.fetch_pending(self.settings.no_period_operand)
        if not records:
            logger.info("No pending records to export")
            return NothingToDo()

        batch = self.write_batch(records, context)
        self.publish(batch)
        self.acknowledge(batch, context)
        self.archive(batch)
        return Exported(batch)

    def write_batch(self, records: list[PendingRecord], context: RunContext) -> ExportBatch:
        """Write the data file and its empty marker into the staging directory."""
        lines = [encode_pending(record, self.settings.no_period_operand) for record in records]

        file_name = self.batch_file_name(context)
        staging = self.settings.staging_dir
        staging.mkdir(parents=True, exist_ok=True)
        data_path = staging / file_name
        marker_path = staging / self.marker_file_name(file_name)

        try:
            with open(data_path, "x", encoding="utf-8", newline="\n") as f:
                for line in lines:
                    f.write(line + "\n")
        except OSError as e:
            raise ExportError(f"Could not write batch file {data_path}: {e}", details={"file": file_name}) from e

        if not data_path.is_file() or data_path.stat().st_size == 0:
            raise ExportError(f"Batch file {data_path} is missing or empty after write", details={"file": file_name})

        try:
            marker_path.open("x").close()
        except OSError as e:
            raise ExportError(f"Could not create marker file {marker_path}: {e}", details={"file": file_name}) from e

        batch = ExportBatch(
            file_name=file_name,
            local_path=data_path,
            marker_path=marker_path,
            record_ids=[r.record_id for r in records if r.record_id is not None],
            record_count=len(records),
            byte_size=data_path.stat().st_size,
        )
        logger.info(f"Wrote batch {file_name}: {batch.record_count} records, {batch.byte_size} bytes")
        return batch

    def publish(self, batch: ExportBatch) -> None:
        """Upload the data file, then the marker. The marker signals completeness."""
        if not batch.local_path.is_file() or batch.local_path.stat().st_size == 0:
            raise ExportError(f"Refusing to upload empty batch {batch.file_name}", details={"file": batch.file_name})
        self.client.upload(batch.local_path, posixpath.join(self.remote_dir, batch.file_name))
        self.client.upload(batch.marker_path, posixpath.join(self.remote_dir, batch.marker_name))
        batch.status = UploadStatus.UPLOADED

    def acknowledge(self, batch: ExportBatch, context: RunContext) -> None:
        """Mark the batch's rows SENT, stamped with the batch name and run time."""
        try:
            self.store.mark_sent(batch.record_ids, batch.file_name, context.started_at)
        except PersistenceError:
            logger.error(
                f"Batch {batch.file_name} was delivered but its {batch.record_count} rows are still PENDING; "
                f"the next run will send them again under a new file name"
            )
            raise
        batch.status = UploadStatus.ACKNOWLEDGED
        batch.sent_at = context.started_at
        logger.info(f"Marked {batch.record_count} records as sent in {batch.file_name}")

    def archive(self, batch: ExportBatch) -> None:
        """Move the delivered files out of staging. Failures only warn."""
        archive_dir = self.settings.archive_dir
        try:
            archive_dir.mkdir(parents=True, exist_ok=True)
            for path in (batch.local_path, batch.marker_path):
                shutil.move(str(path), str(archive_dir / path.name))
        except OSError as e:
            logger.warning(f"Could not archive batch {batch.file_name}: {e}")
            return
        batch.local_path = archive_dir / batch.local_path.name
        batch.marker_path = archive_dir / batch.marker_path.name
