"""
Application Context for Dependency Injection
Manages shared resources across the application lifecycle
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from redshift_etl.core.factory import (
    PROTOCOL_JDBC_PASSWORD,
    PROTOCOL_JDBC_USER,
    PROTOCOL_S3_OUTPUT_PATH,
    RedshiftFactory,
    RedshiftTap,
)
from redshift_etl.core.progress import LoggingProgressTracker, NoOpProgressTracker, ProgressTracker
from redshift_etl.core.table_desc_builder import PROTOCOL_TABLE_NAME
from redshift_etl.models.fields import Fields
from redshift_etl.models.sink_mode import SinkMode
from redshift_etl.utils.config_manager import ConfigManager
from redshift_etl.utils.logging_config import setup_logging
from redshift_etl.utils.redshift_connection import ConnectionConfig, RedshiftConnectionManager


class ApplicationContext:
    """
    Central context for managing application-wide resources.

    The context is created once at application startup and passed
    to all operations that need shared resources.
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        log_dir: Optional[Path] = None,
        log_level: str = 'INFO',
        quiet: bool = False,
        progress_bars: bool = True,
        json_logs: bool = False
    ):
        """
        Initialize application context with shared resources

        Args:
            config_path: Path to configuration file
            log_dir: Directory for log files
            log_level: Logging level
            quiet: Suppress console output
            progress_bars: Show tqdm progress bars instead of log lines
            json_logs: Write console and operation logs as JSON lines
        """
        self.log_dir = log_dir or Path('logs')
        self.quiet = quiet
        self.progress_bars = progress_bars
        setup_logging(
            operation='redshift_etl',
            log_dir=self.log_dir,
            level=log_level,
            json_format=json_logs,
            quiet=quiet
        )
        self.logger = logging.getLogger('redshift_etl')
        self.logger.info("Initializing application context")

        self.config_manager = ConfigManager()
        self._config = None
        self._config_path = None

        if config_path:
            self.load_config(config_path)

        # Created on first use
        self._connection_manager = None
        self._progress_tracker = None
        self.factory = RedshiftFactory()

    def load_config(self, config_path: Union[str, Path]):
        """
        Load configuration file

        Args:
            config_path: Path to configuration file
        """
        self._config_path = Path(config_path)
        self._config = self.config_manager.load_config(config_path)
        self.logger.info(f"Loaded configuration from {config_path}")

    @property
    def config(self) -> Dict[str, Any]:
        """Get current configuration"""
        if self._config is None:
            raise RuntimeError("No configuration loaded. Call load_config() first.")
        return self._config

    @property
    def config_path(self) -> Path:
        if self._config_path is None:
            raise RuntimeError("No configuration loaded. Call load_config() first.")
        return self._config_path

    @property
    def redshift_config(self) -> Dict[str, Any]:
        return self.config_manager.get_redshift_config(self.config_path)

    @property
    def staging_config(self) -> Dict[str, Any]:
        return self.config_manager.get_staging_config(self.config_path)

    @property
    def identifier(self) -> str:
        """redshift://host:port/database for the configured cluster"""
        conn = ConnectionConfig.from_dict(self.redshift_config)
        return f"redshift://{conn.host}:{conn.port}/{conn.database}"

    @property
    def connection_manager(self) -> RedshiftConnectionManager:
        """
        Get or create connection manager (lazy initialization)

        Returns:
            RedshiftConnectionManager instance
        """
        if self._connection_manager is None:
            conn_config = ConnectionConfig.from_dict(self.redshift_config)
            pool_size = self.config.get('connection_pool_size', 5)
            self._connection_manager = RedshiftConnectionManager(config=conn_config, pool_size=pool_size)
            self.logger.info(f"Initialized Redshift connection pool (size: {pool_size})")

        return self._connection_manager

    @property
    def progress_tracker(self) -> ProgressTracker:
        """
        Get or create progress tracker (lazy initialization)

        Returns:
            ProgressTracker instance
        """
        if self._progress_tracker is None:
            if self.quiet:
                self._progress_tracker = NoOpProgressTracker()
            elif self.progress_bars:
                from redshift_etl.ui.progress_bars import TqdmProgressTracker
                self._progress_tracker = TqdmProgressTracker()
            else:
                self._progress_tracker = LoggingProgressTracker()

            self.logger.info(f"Using progress tracker: {self._progress_tracker.__class__.__name__}")

        return self._progress_tracker

    def set_progress_tracker(self, tracker: ProgressTracker):
        """
        Set a custom progress tracker

        Args:
            tracker: ProgressTracker instance
        """
        self._progress_tracker = tracker
        self.logger.info(f"Progress tracker set to: {tracker.__class__.__name__}")

    def get_table_config(self, table_name: str) -> Dict[str, Any]:
        """
        Raises:
            ValueError: If the table is not configured
        """
        tables = self.config_manager.get_table_configs(self.config_path, table_name=table_name)
        if not tables:
            known = ', '.join(self.config_manager.get_all_table_names(self.config_path))
            raise ValueError(f"Table {table_name} not found in configuration (configured: {known})")
        return tables[0]

    def create_tap(self, table_config: Dict[str, Any], sink_mode: Union[SinkMode, str] = SinkMode.APPEND,
                   fields: Optional[Fields] = None, **kwargs) -> RedshiftTap:
        """
        Build a tap for one configured table.

        The table's properties are used for both the scheme and the tap;
        the cluster login and staging path come from the config sections
        unless the table overrides them. A table with its own jdbcuser or
        jdbcpassword gets a tap that opens its own connections instead of
        sharing this context's pool.

        Args:
            table_config: Entry of the tables section
            sink_mode: Caller's sink mode
            fields: Fields to use when the table config declares none
            **kwargs: Passed through to RedshiftFactory.create_tap

        Returns:
            RedshiftTap
        """
        properties = {k: v for k, v in table_config.get('properties', {}).items()}
        properties.setdefault(PROTOCOL_TABLE_NAME, table_config['name'])
        properties.setdefault(PROTOCOL_S3_OUTPUT_PATH, self.staging_config['path'])
        if self.redshift_config.get('user'):
            properties.setdefault(PROTOCOL_JDBC_USER, self.redshift_config['user'])
        if self.redshift_config.get('password'):
            properties.setdefault(PROTOCOL_JDBC_PASSWORD, self.redshift_config['password'])

        if table_config.get('fields'):
            fields = Fields(tuple(pair) if len(pair) == 2 else pair[0] for pair in table_config['fields'])

        scheme = self.factory.create_scheme('delimited', fields, properties)

        kwargs.setdefault('region', self.staging_config.get('region'))
        kwargs.setdefault('progress_tracker', self.progress_tracker)
        if 'executor' not in kwargs and not self._overrides_login(properties):
            kwargs['executor'] = self.connection_manager

        return self.factory.create_tap('redshift', scheme, self.identifier, sink_mode, properties, **kwargs)

    def _overrides_login(self, properties: Dict[str, Any]) -> bool:
        cluster = self.redshift_config
        return ((properties.get(PROTOCOL_JDBC_USER) or None) != (cluster.get('user') or None)
                or (properties.get(PROTOCOL_JDBC_PASSWORD) or None) != (cluster.get('password') or None))

    def cleanup(self):
        """Clean up resources on shutdown"""
        self.logger.info("Cleaning up application context")

        if self._connection_manager is not None:
            self._connection_manager.close()
            self.logger.info("Closed connection pool")

        self.config_manager.clear_cache()

        if self._progress_tracker is not None:
            self._progress_tracker.close()
            self.logger.info("Closed progress tracker")

        self.logger.info("Application context cleanup complete")

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - cleanup resources"""
        self.cleanup()


class BaseOperation:
    """
    Base class for all operations
    Operations receive the application context for accessing shared resources
    """

    def __init__(self, context: ApplicationContext):
        """
        Initialize operation with application context

        Args:
            context: Application context with shared resources
        """
        self.context = context
        self.logger = logging.getLogger(f'redshift_etl.{self.__class__.__name__}')

    def execute(self, **kwargs):
        """
        Execute the operation

        Args:
            **kwargs: Operation-specific parameters

        Returns:
            Operation result
        """
        raise NotImplementedError("Subclasses must implement execute()")
