"""
Tests for ConnectionConfig and RedshiftConnectionManager
"""

import pytest
from unittest.mock import MagicMock, patch

import redshift_connector

from redshift_etl.core.exceptions import ConfigurationError, ExecutionError
from redshift_etl.utils.redshift_connection import ConnectionConfig, RedshiftConnectionManager


@pytest.fixture
def mock_redshift_connection():
    """Mock redshift_connector connection for testing"""
    with patch("redshift_etl.utils.redshift_connection.redshift_connector.connect") as mock_connect:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()

        mock_cursor.fetchall.return_value = [(42,)]
        mock_cursor.rowcount = 3
        mock_cursor.get_tables.return_value = []

        mock_conn.cursor.return_value = mock_cursor
        mock_connect.return_value = mock_conn

        yield mock_connect, mock_conn, mock_cursor


@pytest.fixture
def manager():
    return RedshiftConnectionManager(ConnectionConfig(host='h', database='dev', user='u', password='p'))


class TestConnectionConfig:
    def test_from_url(self):
        config = ConnectionConfig.from_url('redshift://cluster.example.com:5440/dev', 'u', 'p')
        assert (config.host, config.port, config.database) == ('cluster.example.com', 5440, 'dev')
        assert (config.user, config.password) == ('u', 'p')

    def test_from_jdbc_url_default_port(self):
        config = ConnectionConfig.from_url('jdbc:redshift://cluster.example.com/dev')
        assert config.port == 5439

    @pytest.mark.parametrize('identifier', [
        'postgres://h/dev',
        'redshift:///dev',
        'redshift://h',
    ])
    def test_invalid_url(self, identifier):
        with pytest.raises(ConfigurationError):
            ConnectionConfig.from_url(identifier)

    def test_to_dict_omits_empty_login(self):
        config = ConnectionConfig(host='h', database='dev')
        result = config.to_dict()
        assert 'user' not in result
        assert 'password' not in result
        assert result['port'] == 5439

    def test_from_dict(self, sample_config):
        config = ConnectionConfig.from_dict(sample_config['redshift'])
        assert config.host == 'test-cluster.example.com'
        assert config.user == 'loader'


class TestRedshiftConnectionManager:
    def test_execute_returns_rowcount(self, manager, mock_redshift_connection):
        mock_connect, mock_conn, mock_cursor = mock_redshift_connection

        assert manager.execute("DELETE FROM t;") == 3

        mock_cursor.execute.assert_any_call("DELETE FROM t;")
        assert mock_conn.autocommit is True

    def test_connection_reused_from_pool(self, manager, mock_redshift_connection):
        mock_connect, _, _ = mock_redshift_connection

        manager.execute("SELECT 1")
        manager.execute("SELECT 2")

        assert mock_connect.call_count == 1
        assert manager.pool_usage == {'idle': 1, 'in_use': 0}

    def test_driver_error_wrapped(self, manager, mock_redshift_connection):
        _, _, mock_cursor = mock_redshift_connection
        mock_cursor.execute.side_effect = redshift_connector.ProgrammingError("syntax error")

        with pytest.raises(ExecutionError) as exc_info:
            manager.execute("COPY nonsense")

        assert isinstance(exc_info.value.__cause__, redshift_connector.ProgrammingError)

    def test_query(self, manager, mock_redshift_connection):
        assert manager.query("SELECT COUNT(*) FROM t") == [(42,)]

    def test_execute_many(self, manager, mock_redshift_connection):
        _, _, mock_cursor = mock_redshift_connection

        assert manager.execute_many("INSERT INTO t VALUES (%s)", [(1,), (2,)]) == 2
        mock_cursor.executemany.assert_called_once_with("INSERT INTO t VALUES (%s)", [(1,), (2,)])

    def test_execute_many_empty(self, manager, mock_redshift_connection):
        mock_connect, _, _ = mock_redshift_connection
        assert manager.execute_many("INSERT", []) == 0
        mock_connect.assert_not_called()

    def test_table_exists_uses_catalog_metadata(self, manager, mock_redshift_connection):
        _, _, mock_cursor = mock_redshift_connection
        mock_cursor.get_tables.return_value = [['dev', 'sales', 'orders', 'TABLE']]

        assert manager.table_exists('Sales.Orders') is True
        mock_cursor.get_tables.assert_called_once_with(schema_pattern='sales', table_name_pattern='orders')

    def test_table_exists_ignores_pattern_matches(self, manager, mock_redshift_connection):
        _, _, mock_cursor = mock_redshift_connection
        mock_cursor.get_tables.return_value = [['dev', 'public', 'myxtable', 'TABLE']]

        assert manager.table_exists('my_table') is False

    def test_table_exists_quoted_and_default_schema(self, manager, mock_redshift_connection):
        _, _, mock_cursor = mock_redshift_connection

        assert manager.table_exists('"Orders"') is False
        mock_cursor.get_tables.assert_called_once_with(schema_pattern='public', table_name_pattern='Orders')

    @patch('redshift_etl.utils.redshift_connection.time.sleep')
    def test_connect_retries_then_fails(self, mock_sleep, manager):
        with patch('redshift_etl.utils.redshift_connection.redshift_connector.connect') as mock_connect:
            mock_connect.side_effect = redshift_connector.InterfaceError("unreachable")

            with pytest.raises(ExecutionError, match="Could not connect"):
                manager.execute("SELECT 1")

        assert mock_connect.call_count == 3
        assert mock_sleep.call_count == 2

    def test_close(self, manager, mock_redshift_connection):
        _, mock_conn, _ = mock_redshift_connection
        manager.execute("SELECT 1")

        manager.close()

        mock_conn.close.assert_called_once()
        with pytest.raises(RuntimeError):
            manager.execute("SELECT 1")
