"""
Pytest configuration and shared fixtures for Redshift ETL tests
"""

import pytest
import tempfile
import json
import re
from pathlib import Path
from unittest.mock import MagicMock
from typing import Any, Dict, Iterable, List, Sequence
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from redshift_etl.core.exceptions import ExecutionError
from redshift_etl.core.interfaces import SqlExecutor, StagingStore
from redshift_etl.models.table_desc import TableDescriptor


class FakeExecutor(SqlExecutor):
    """
    In-memory SQL executor.

    Tracks which tables exist from CREATE/DROP statements and records every
    statement. Statements containing any fail_on substring raise ExecutionError.
    """

    def __init__(self, existing=(), row_count: int = 0, rowcount: int = -1):
        self.existing = set(existing)
        self.statements: List[str] = []
        self.batches: List[tuple] = []
        self.fail_on: List[str] = []
        self.row_count = row_count
        self.rowcount = rowcount
        self.exists_checks: List[str] = []

    def _maybe_fail(self, sql: str):
        for fragment in self.fail_on:
            if fragment in sql:
                raise ExecutionError(f"simulated failure on {fragment}")

    def table_exists(self, table_name: str) -> bool:
        self.exists_checks.append(table_name)
        return table_name in self.existing

    def execute(self, sql: str) -> int:
        self._maybe_fail(sql)
        self.statements.append(sql)
        created = re.match(r'CREATE TABLE (\S+)', sql)
        if created:
            self.existing.add(created.group(1))
        dropped = re.match(r'DROP TABLE IF EXISTS (\S+);', sql)
        if dropped:
            self.existing.discard(dropped.group(1))
        return self.rowcount

    def execute_many(self, sql: str, rows: Sequence[Sequence[Any]]) -> int:
        self._maybe_fail(sql)
        self.batches.append((sql, list(rows)))
        return len(rows)

    def query(self, sql: str) -> List[tuple]:
        self._maybe_fail(sql)
        self.statements.append(sql)
        return [(self.row_count,)]

    def statements_starting(self, prefix: str) -> List[str]:
        return [s for s in self.statements if s.startswith(prefix)]


class MemoryStagingStore(StagingStore):
    """Keeps staged records in a dict keyed by location"""

    def __init__(self, fail_after: int = None, fail_times: int = None):
        self.staged: Dict[str, List[tuple]] = {}
        self.deleted: List[str] = []
        self.writes = 0
        self.fail_after = fail_after
        self.fail_times = fail_times

    def write(self, base_path: str, records: Iterable[Sequence[Any]]) -> str:
        self.writes += 1
        location = f"mem://{base_path.lstrip('/')}/"
        written = []
        self.staged[location] = written
        for index, record in enumerate(records):
            failing = self.fail_times is None or self.writes <= self.fail_times
            if self.fail_after is not None and index >= self.fail_after and failing:
                raise IOError("disk full")
            written.append(tuple(record))
        return location

    def delete(self, location: str) -> None:
        self.deleted.append(location)
        key = location if location.startswith('mem://') else f"mem://{location.lstrip('/')}/"
        self.staged.pop(key, None)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def staging_store():
    return MemoryStagingStore()


@pytest.fixture
def users_desc() -> TableDescriptor:
    """Fully described users table"""
    return TableDescriptor(
        name='users',
        column_names=['id', 'name'],
        column_defs=['BIGINT', 'VARCHAR(64)'],
        distribution_key='id',
        sort_keys=['id'],
    )


@pytest.fixture
def user_records() -> List[tuple]:
    return [(1, 'ada'), (2, 'grace'), (3, 'edsger')]


@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Create a sample configuration dictionary"""
    return {
        "redshift": {
            "host": "test-cluster.example.com",
            "port": 5439,
            "database": "dev",
            "user": "loader",
            "password": "test_password"
        },
        "staging": {
            "path": "/tmp/redshift_stage",
            "region": "us-east-1"
        },
        "tables": [
            {
                "name": "users",
                "fields": [["id", "BIGINT"], ["name", "VARCHAR(64)"]],
                "properties": {
                    "distributionkey": "id",
                    "usedirectinsert": "false",
                    "copyoptions.GZIP": None,
                    "copyoptions.MAXERROR": "5"
                }
            },
            {
                "name": "events",
                "properties": {}
            }
        ]
    }


@pytest.fixture
def config_file(temp_dir, sample_config) -> Path:
    """Create a temporary config file"""
    config_path = temp_dir / "test_config.json"
    with open(config_path, "w") as f:
        json.dump(sample_config, f)
    return config_path


@pytest.fixture
def sample_csv_file(temp_dir) -> Path:
    """Create a sample delimited input file with a header line"""
    csv_path = temp_dir / "users.csv"
    with open(csv_path, "w") as f:
        f.write("id,name\n")
        f.write("1,ada\n")
        f.write("2,grace\n")
        f.write("3,\n")
    return csv_path


@pytest.fixture
def mock_logger():
    """Mock logger for testing"""
    logger = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.debug = MagicMock()
    return logger


@pytest.fixture
def mock_progress_tracker():
    """Mock progress tracker for testing"""
    tracker = MagicMock()
    tracker.start_load = MagicMock()
    tracker.update_phase = MagicMock()
    tracker.update_progress = MagicMock()
    tracker.complete_load = MagicMock()
    tracker.close = MagicMock()
    return tracker
