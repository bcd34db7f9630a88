"""
Record and result types shared by the pipelines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Union


class RecordStatus(str, Enum):
    """Status column values of the outbound table."""

    PENDING = "PENDING"
    SENT = "SENT"


class UploadStatus(str, Enum):
    """Lifecycle of one outbound batch."""

    PENDING = "pending"
    UPLOADED = "uploaded"
    ACKNOWLEDGED = "acknowledged"


class CandidateState(str, Enum):
    """Lifecycle of one inbound file within a run."""

    DISCOVERED = "discovered"
    SKIPPED = "skipped"
    DOWNLOADED = "downloaded"
    PERSISTED = "persisted"
    ARCHIVED = "archived"
    RELOCATED = "relocated"
    RELOCATE_FAILED = "relocate_failed"
    FAILED = "failed"


@dataclass(frozen=True)
class PendingRecord:
    """A row selected for outbound export."""

    installation: str
    operand: str
    start_date: date
    end_date: date
    allocation_unit: str
    period: str | None = None
    record_id: int | None = None


@dataclass
class ExportBatch:
    """One outbound run's data file, its marker, and the rows it carries."""

    file_name: str
    local_path: Path
    marker_path: Path
    record_ids: list[int] = field(default_factory=list)
    record_count: int = 0
    byte_size: int = 0
    status: UploadStatus = UploadStatus.PENDING
    sent_at: datetime | None = None

    @property
    def marker_name(self) -> str:
        return self.marker_path.name


@dataclass(frozen=True)
class ImportedRecord:
    """One parsed inbound line. ``reading_date`` is ISO ``YYYY-MM-DD``."""

    bill_period: str
    account_id: str
    installation: str
    rate_group: str
    agreement_id: str
    reading_date: str
    unit_value: float
    source_file: str = ""


@dataclass
class ImportCandidate:
    """A remote file name matching the inbound pattern."""

    name: str
    discovered_at: datetime
    state: CandidateState = CandidateState.DISCOVERED


# --- Outbound results --------------------------------------------------------


@dataclass(frozen=True)
class NothingToDo:
    """The outbound run found no pending rows; nothing was written or sent."""

    reason: str = "no pending records"


@dataclass(frozen=True)
class Exported:
    """The outbound run delivered a batch and marked its rows as sent."""

    batch: ExportBatch


ExportResult = Union[NothingToDo, Exported]


# --- Inbound results ---------------------------------------------------------


@dataclass(frozen=True)
class Skipped:
    """File already present in the ledger."""

    name: str


@dataclass(frozen=True)
class Imported:
    """File persisted; ``relocated`` is False when the remote move failed."""

    name: str
    record_count: int
    relocated: bool = True
    warning: str | None = None


@dataclass(frozen=True)
class Failed:
    """File rejected or not persisted; eligible for a later run."""

    name: str
    error: str


FileOutcome = Union[Skipped, Imported, Failed]


@dataclass
class ImportSummary:
    """Per-file outcomes of one inbound run."""

    outcomes: list[FileOutcome] = field(default_factory=list)

    @property
    def imported(self) -> list[Imported]:
        return [o for o in self.outcomes if isinstance(o, Imported)]

    @property
    def skipped(self) -> list[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    @property
    def failed(self) -> list[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def ok(self) -> bool:
        return not self.failed
