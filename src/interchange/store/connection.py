"""
DuckDB connection via ibis.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import ibis

from interchange.config.settings import DatabaseSettings
from interchange.exceptions import InterchangeConnectionError
from interchange.utils.logging import get_logger

logger = get_logger("interchange.store.connection")


class DatabaseConnection:
    """
    DuckDB connection wrapper using ibis.

    The backend is opened once (lazily) and held for the duration of a run.
    """

    def __init__(self, settings: DatabaseSettings):
        self.settings = settings
        self._connection: ibis.BaseBackend | None = None

    @property
    def connection(self) -> ibis.BaseBackend:
        """
        Get DuckDB connection via ibis (lazy initialization).

        Raises:
            InterchangeConnectionError: If the database cannot be opened
        """
        if self._connection is not None:
            return self._connection

        path = self.settings.path
        if path == ":memory:":
            self._connection = ibis.duckdb.connect()
            return self._connection

        Path(path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._connection = ibis.duckdb.connect(path)
        except Exception as e:
            error_str = str(e)
            if "lock" in error_str.lower() or "conflicting" in error_str.lower():
                pid_match = re.search(r"PID\s+(\d+)", error_str)
                pid_info = f" (PID: {pid_match.group(1)})" if pid_match else ""
                raise InterchangeConnectionError(
                    f"Cannot connect to DuckDB database '{path}': File is locked by another process{pid_info}.",
                    details={"path": path},
                ) from e
            raise InterchangeConnectionError(
                f"Cannot connect to DuckDB database '{path}': {error_str}", details={"path": path}
            ) from e
        logger.debug(f"Opened database {path}")
        return self._connection

    def close(self) -> None:
        """Close connection and cleanup resources."""
        if self._connection is None:
            return
        try:
            self._connection.disconnect()
        except Exception as e:
            logger.debug(f"Error during disconnect() for {self.settings.path}: {e}")
        finally:
            self._connection = None

    def __enter__(self) -> DatabaseConnection:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(path='{self.settings.path}')"
