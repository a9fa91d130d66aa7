"""
Capability interfaces the loader depends on.
Concrete implementations live in redshift_etl.utils; tests use in-memory ones.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Sequence


class SqlExecutor(ABC):
    """Executes SQL against the warehouse"""

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """
        Check the catalog for a table.

        Args:
            table_name: Table name, optionally schema-qualified

        Returns:
            True if the table exists
        """
        pass

    @abstractmethod
    def execute(self, sql: str) -> int:
        """
        Execute a single statement.

        Returns:
            Rows affected as reported by the driver (-1 if unknown)
        """
        pass

    @abstractmethod
    def execute_many(self, sql: str, rows: Sequence[Sequence[Any]]) -> int:
        """Execute a parameterized statement once per row"""
        pass

    @abstractmethod
    def query(self, sql: str) -> List[tuple]:
        """Execute a query and fetch all rows"""
        pass


class StagingStore(ABC):
    """Durable write-once storage the warehouse can read from"""

    @abstractmethod
    def write(self, base_path: str, records: Iterable[Sequence[Any]]) -> str:
        """
        Write a record stream under base_path.

        Returns:
            Location to hand to the COPY command
        """
        pass

    @abstractmethod
    def delete(self, location: str) -> None:
        """Remove everything written at location"""
        pass


class RecordSource(ABC):
    """Something that can produce a stream of records"""

    @abstractmethod
    def produce_record_stream(self) -> Iterable[Sequence[Any]]:
        pass


class RecordSink(ABC):
    """Something that can consume a stream of records"""

    @abstractmethod
    def consume_record_stream(self, records: Iterable[Sequence[Any]]):
        pass
