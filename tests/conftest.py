"""
Shared fixtures: in-memory DuckDB store, in-memory remote, settings on tmp_path.
"""

from datetime import date, datetime
from pathlib import Path

import ibis
import pytest

from interchange.config.settings import (
    DatabaseSettings,
    ExchangeSettings,
    InboundSettings,
    OutboundSettings,
    RemoteSettings,
)
from interchange.context import RunContext
from interchange.records import PendingRecord
from interchange.retry import RetryManager, RetryPolicy
from interchange.store import ExchangeStore
from interchange.transfer import MemoryBackend, RemoteTransferClient

NO_PERIOD = "QUANT"
BASE = "/partner"
TO_PARTNER = "to_partner"
FROM_PARTNER = "from_partner"


@pytest.fixture
def store():
    con = ibis.duckdb.connect()
    exchange_store = ExchangeStore(con)
    exchange_store.initialize_schema()
    yield exchange_store
    con.disconnect()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend(dirs=[f"{BASE}/{TO_PARTNER}", f"{BASE}/{FROM_PARTNER}"])


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def client(backend, sleeps) -> RemoteTransferClient:
    return RemoteTransferClient(
        backend,
        RetryPolicy(max_attempts=3, wait_seconds=0.5),
        base_path=BASE,
        retry_manager=RetryManager(sleep=sleeps.append),
    )


@pytest.fixture
def settings(tmp_path: Path) -> ExchangeSettings:
    return ExchangeSettings(
        remote=RemoteSettings(
            host="partner.example.com",
            base_path=BASE,
            outbound_dir=TO_PARTNER,
            inbound_dir=FROM_PARTNER,
            completed_dir="completed",
        ),
        outbound=OutboundSettings(
            prefix="EXP",
            no_period_operand=NO_PERIOD,
            staging_dir=tmp_path / "work" / "outbound",
            archive_dir=tmp_path / "archive" / "outbound",
        ),
        inbound=InboundSettings(
            prefix="IMP",
            staging_dir=tmp_path / "work" / "inbound",
            archive_dir=tmp_path / "archive" / "inbound",
        ),
        database=DatabaseSettings(path=":memory:"),
        retry=RetryPolicy(max_attempts=2, wait_seconds=0),
        project_dir=tmp_path,
    )


@pytest.fixture
def context() -> RunContext:
    return RunContext(run_id="run0001", started_at=datetime(2024, 3, 1, 12, 30, 45))


def pending(installation, operand, start, period="P1", allocation_unit="AU1") -> PendingRecord:
    start_date = date.fromisoformat(start)
    return PendingRecord(
        installation=installation,
        operand=operand,
        start_date=start_date,
        end_date=start_date.replace(day=28),
        allocation_unit=allocation_unit,
        period=None if operand == NO_PERIOD else period,
    )


def inbound_line(
    bill_period="2024-01",
    account="ACC1",
    installation="INST1",
    rate_group="TRSG1",
    agreement="BA1",
    reading="15.01.2024",
    value="12.5",
) -> str:
    return "\t".join([bill_period, account, installation, rate_group, agreement, reading, value])
