"""
Tests for the interchange CLI.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from interchange import __version__
from interchange.cli.main import app
from interchange.config.settings import DatabaseSettings
from interchange.store import DatabaseConnection, ExchangeStore
from interchange.transfer import MemoryBackend

from conftest import NO_PERIOD, inbound_line, pending

runner = CliRunner()

CONFIG = f"""
remote:
  host: ftp.partner.example
  base_path: /partner
  outbound_dir: to_partner
  inbound_dir: from_partner
outbound:
  prefix: EXP
  no_period_operand: {NO_PERIOD}
inbound:
  prefix: IMP
retry:
  max_attempts: 2
  wait_seconds: 0
database:
  path: data/exchange.duckdb
logging:
  file_enabled: false
  console_enabled: false
"""


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "config.yaml").write_text(CONFIG)
    return tmp_path


@pytest.fixture
def remote(monkeypatch) -> MemoryBackend:
    backend = MemoryBackend(dirs=["/partner/to_partner", "/partner/from_partner"])
    monkeypatch.setattr("interchange.coordinator.build_backend", lambda settings: backend)
    return backend


def seed_database(project: Path) -> None:
    with DatabaseConnection(DatabaseSettings(path=str(project / "data" / "exchange.duckdb"))) as database:
        store = ExchangeStore(database.connection)
        store.initialize_schema()
        store.add_pending(pending("100", NO_PERIOD, "2024-01-01"))
        store.add_pending(pending("100", "ENERGY", "2024-01-01"))


class TestMain:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"interchange version {__version__}" in result.output

    def test_no_command_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "status" in result.output


class TestRunCommand:
    def test_run_json(self, project, remote):
        seed_database(project)
        remote.put_file("/partner/from_partner/IMP_1.txt", (inbound_line() + "\n").encode("utf-8"))

        result = runner.invoke(app, ["run", "all", "-d", str(project), "--json"])
        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert report["ok"] is True
        assert report["outbound"]["records"] == 2
        assert report["inbound"]["imported"] == ["IMP_1.txt"]
        assert report["outbound"]["file"] in {Path(p).name for p in remote.files}

    def test_run_outbound_table(self, project, remote):
        seed_database(project)
        result = runner.invoke(app, ["run", "outbound", "-d", str(project)])
        assert result.exit_code == 0, result.output
        assert "outbound" in result.output
        assert remote.calls("list") == []

    def test_run_failure_exits_nonzero(self, project, remote):
        remote.fail_next("connect", times=2)
        result = runner.invoke(app, ["run", "-d", str(project), "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["errors"]

    def test_failed_file_exits_nonzero(self, project, remote):
        remote.put_file("/partner/from_partner/IMP_1.txt", b"too\tshort\n")
        result = runner.invoke(app, ["run", "inbound", "-d", str(project), "--json"])
        assert result.exit_code == 1
        assert "IMP_1.txt" in json.loads(result.output)["inbound"]["failed"]

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["run", "-d", str(tmp_path)])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_explicit_config_file(self, project, remote, tmp_path):
        other = tmp_path / "partner.yaml"
        other.write_text(CONFIG.replace("prefix: EXP", "prefix: OUT"))
        seed_database(project)
        result = runner.invoke(app, ["run", "outbound", "-d", str(project), "-c", str(other), "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["outbound"]["file"].startswith("OUT_")

    def test_invalid_mode(self, project):
        result = runner.invoke(app, ["run", "sideways", "-d", str(project)])
        assert result.exit_code != 0


class TestStatusCommands:
    def test_init_db(self, project):
        result = runner.invoke(app, ["init-db", "-d", str(project)])
        assert result.exit_code == 0, result.output
        assert (project / "data" / "exchange.duckdb").exists()

    def test_status(self, project):
        seed_database(project)
        result = runner.invoke(app, ["status", "-d", str(project)])
        assert result.exit_code == 0, result.output
        assert "outbound pending" in result.output
        assert "2" in result.output
