"""
Per-run identity shared by both pipelines.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

STAMP_FORMAT = "%Y%m%d_%H%M%S"


@dataclass(frozen=True)
class RunContext:
    """Run id and the single timestamp every artifact of the run is stamped with."""

    run_id: str
    started_at: datetime

    @property
    def stamp(self) -> str:
        return self.started_at.strftime(STAMP_FORMAT)

    @classmethod
    def new(cls, now: datetime | None = None) -> RunContext:
        return cls(run_id=uuid.uuid4().hex[:12], started_at=(now or datetime.now()).replace(microsecond=0))
