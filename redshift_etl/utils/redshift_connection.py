#!/usr/bin/env python3
"""
Redshift Connection Manager
Connection pooling, connect retry and proper lifecycle management
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import redshift_connector
from redshift_connector import Connection

from redshift_etl.core.exceptions import ConfigurationError, ExecutionError
from redshift_etl.core.interfaces import SqlExecutor

DEFAULT_PORT = 5439


@dataclass
class ConnectionConfig:
    """Configuration for Redshift connections"""
    host: str
    database: str
    user: Optional[str] = None
    password: Optional[str] = None
    port: int = DEFAULT_PORT
    schema: str = 'public'
    ssl: bool = True
    timeout: Optional[int] = None
    tcp_keepalive: bool = True
    application_name: str = 'redshift_etl_pipeline'

    def to_dict(self) -> Dict[str, Any]:
        """Convert to keyword arguments for redshift_connector.connect"""
        config = {
            'host': self.host,
            'database': self.database,
            'port': self.port,
            'ssl': self.ssl,
            'tcp_keepalive': self.tcp_keepalive,
            'application_name': self.application_name,
        }
        if self.user:
            config['user'] = self.user
        if self.password:
            config['password'] = self.password
        if self.timeout:
            config['timeout'] = self.timeout
        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ConnectionConfig':
        """Create ConnectionConfig from the 'redshift' section of a config file"""
        return cls(
            host=config_dict['host'],
            database=config_dict['database'],
            user=config_dict.get('user'),
            password=config_dict.get('password'),
            port=int(config_dict.get('port', DEFAULT_PORT)),
            schema=config_dict.get('schema', 'public'),
            ssl=config_dict.get('ssl', True),
            timeout=config_dict.get('timeout'),
        )

    @classmethod
    def from_url(cls, identifier: str, user: Optional[str] = None,
                 password: Optional[str] = None) -> 'ConnectionConfig':
        """
        Parse a redshift://host[:port]/database identifier.

        Raises:
            ConfigurationError: If host or database is missing
        """
        if identifier.startswith('jdbc:'):
            identifier = identifier[len('jdbc:'):]
        parsed = urlparse(identifier)
        if parsed.scheme != 'redshift' or not parsed.hostname:
            raise ConfigurationError("Invalid Redshift identifier, expected redshift://host[:port]/database")

        database = parsed.path.lstrip('/')
        if not database:
            raise ConfigurationError(f"No database in Redshift identifier for host {parsed.hostname}")

        return cls(
            host=parsed.hostname,
            database=database,
            user=user or parsed.username,
            password=password or parsed.password,
            port=parsed.port or DEFAULT_PORT,
        )


class RedshiftConnectionManager(SqlExecutor):
    """
    Thread-safe Redshift connection manager with pooling and lifecycle management.

    Features:
    - Connection pooling with configurable size
    - Thread-safe connection acquisition
    - Connect retry with exponential backoff
    - Connection validation on checkout
    - Autocommit sessions, one statement per call
    """

    def __init__(self, config: ConnectionConfig, pool_size: int = 5,
                 max_connect_retries: int = 3):
        """
        Initialize connection manager.

        Args:
            config: Connection configuration
            pool_size: Maximum number of connections in pool
            max_connect_retries: Connect attempts before giving up
        """
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.pool_size = pool_size
        self.max_connect_retries = max_connect_retries
        self._connections = []
        self._in_use = set()
        self._lock = threading.Lock()
        self._closed = False

    def _create_connection(self) -> Connection:
        """Create a new Redshift connection"""
        retry_delay = 1

        for attempt in range(self.max_connect_retries):
            try:
                self.logger.debug(
                    f"Creating new Redshift connection (attempt {attempt + 1}/{self.max_connect_retries})"
                )
                conn = redshift_connector.connect(**self.config.to_dict())
                conn.autocommit = True

                self.logger.info(f"Connected to Redshift at {self.config.host}/{self.config.database}")
                return conn

            except (redshift_connector.OperationalError, redshift_connector.InterfaceError) as e:
                self.logger.warning(f"Connection attempt {attempt + 1} failed: {e}")
                if attempt < self.max_connect_retries - 1:
                    time.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
                else:
                    raise ExecutionError(f"Could not connect to Redshift: {e}") from e

    def _validate_connection(self, conn: Connection) -> bool:
        """Check if a connection is still valid"""
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()
            return True
        except redshift_connector.Error:
            return False

    def _close_quietly(self, conn: Connection):
        try:
            conn.close()
        except redshift_connector.Error as e:
            self.logger.debug(f"Error closing connection: {e}")

    @contextmanager
    def get_connection(self):
        """
        Get a connection from the pool.

        Yields:
            Connection: A valid connection
        """
        if self._closed:
            raise RuntimeError("Connection manager is closed")

        conn = None
        try:
            with self._lock:
                while self._connections:
                    candidate = self._connections.pop()
                    if self._validate_connection(candidate):
                        conn = candidate
                        break
                    self.logger.debug("Closing invalid connection")
                    self._close_quietly(candidate)

                if not conn:
                    if len(self._in_use) >= self.pool_size:
                        raise RuntimeError(f"Connection pool exhausted (size: {self.pool_size})")
                    conn = self._create_connection()
                self._in_use.add(conn)

            yield conn

        finally:
            if conn:
                with self._lock:
                    self._in_use.discard(conn)
                    if not self._closed:
                        self._connections.append(conn)
                    else:
                        self._close_quietly(conn)

    @contextmanager
    def get_cursor(self):
        """
        Get a cursor from a pooled connection.

        Yields:
            Cursor object
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            try:
                yield cursor
            finally:
                cursor.close()

    def execute(self, sql: str) -> int:
        """
        Execute a single statement.

        Returns:
            Row count reported by the driver

        Raises:
            ExecutionError: If the statement fails
        """
        try:
            with self.get_cursor() as cursor:
                cursor.execute(sql)
                return cursor.rowcount
        except redshift_connector.Error as e:
            raise ExecutionError(f"Statement failed: {e}") from e

    def execute_many(self, sql: str, rows: Sequence[Sequence[Any]]) -> int:
        """Execute a parameterized statement for each row"""
        if not rows:
            return 0
        try:
            with self.get_cursor() as cursor:
                cursor.executemany(sql, rows)
                return len(rows)
        except redshift_connector.Error as e:
            raise ExecutionError(f"Batch statement failed: {e}") from e

    def query(self, sql: str) -> List[tuple]:
        """Execute a query and return all rows"""
        try:
            with self.get_cursor() as cursor:
                cursor.execute(sql)
                return [tuple(row) for row in cursor.fetchall()]
        except redshift_connector.Error as e:
            raise ExecutionError(f"Query failed: {e}") from e

    def table_exists(self, table_name: str) -> bool:
        """
        Look the table up in the catalog through the driver's metadata call.

        Unqualified names are resolved against the configured schema.
        Unquoted identifiers are folded to lower case, as Redshift does.
        """
        if '.' in table_name:
            schema, table = table_name.split('.', 1)
        else:
            schema, table = self.config.schema, table_name

        schema = schema.strip('"') if schema.startswith('"') else schema.lower()
        table = table.strip('"') if table.startswith('"') else table.lower()

        try:
            with self.get_cursor() as cursor:
                tables = cursor.get_tables(schema_pattern=schema, table_name_pattern=table)
        except redshift_connector.Error as e:
            raise ExecutionError(f"Could not read catalog for {table_name}: {e}") from e

        # the metadata call matches LIKE patterns; '_' and '%' are wildcards there
        exists = any(row[1] == schema and row[2] == table for row in tables or ())
        self.logger.debug(f"Table {schema}.{table} exists: {exists}")
        return exists

    def close(self):
        """Close all connections and cleanup resources"""
        self.logger.info("Closing connection manager")
        with self._lock:
            for conn in self._connections + list(self._in_use):
                self._close_quietly(conn)
            self._connections.clear()
            self._in_use.clear()
            self._closed = True

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()

    @property
    def pool_usage(self) -> Dict[str, int]:
        """Idle and in-use connection counts"""
        with self._lock:
            return {'idle': len(self._connections), 'in_use': len(self._in_use)}
