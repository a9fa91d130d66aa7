"""
Progress tracking abstractions for Redshift ETL Pipeline
Clean separation between progress reporting and display implementation
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional
import time
import logging


class ProgressPhase(Enum):
    """Phases of a load, in the order the orchestrator moves through them"""
    STAGING = "staging"
    TABLE_CHECK = "table_check"
    CREATE = "create"
    SKIP = "skip"
    DROP_RECREATE = "drop_recreate"
    LOADING = "loading"
    VERIFY = "verify"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ProgressStats:
    """Statistics for progress tracking"""
    total_loads: int = 0
    processed_loads: int = 0
    staged_rows: int = 0
    loaded_rows: int = 0
    start_time: float = None
    current_phase: ProgressPhase = None
    current_table: str = None
    errors: int = 0

    def __post_init__(self):
        if self.start_time is None:
            self.start_time = time.time()

    @property
    def elapsed_time(self) -> float:
        """Get elapsed time in seconds"""
        return time.time() - self.start_time

    @property
    def progress_percentage(self) -> float:
        """Calculate overall progress percentage"""
        if self.total_loads > 0:
            return (self.processed_loads / self.total_loads) * 100
        return 0.0


class ProgressTracker(ABC):
    """
    Abstract base class for progress tracking
    Implementations can use tqdm, logging, or any other mechanism
    """

    def __init__(self):
        self.stats = ProgressStats()
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def initialize(self, total_loads: int, **kwargs):
        """
        Initialize progress tracking for a batch of loads

        Args:
            total_loads: Number of tables to load
            **kwargs: Implementation-specific options
        """
        pass

    @abstractmethod
    def start_load(self, table_name: str, sink_mode: str = None):
        """
        Start loading a table

        Args:
            table_name: Target table
            sink_mode: Sink mode name
        """
        pass

    @abstractmethod
    def update_phase(self, phase: ProgressPhase, **kwargs):
        """
        Update the current processing phase

        Args:
            phase: Current phase of processing
            **kwargs: Phase-specific metadata
        """
        pass

    @abstractmethod
    def update_progress(self, rows_staged: int = 0, rows_loaded: int = 0, **kwargs):
        """
        Update progress within current phase

        Args:
            rows_staged: Additional rows written to the staging store
            rows_loaded: Rows reported loaded by the warehouse
        """
        pass

    @abstractmethod
    def complete_load(self, success: bool = True, error_message: str = None):
        """
        Mark current load as complete

        Args:
            success: Whether the load succeeded
            error_message: Error message if failed
        """
        pass

    @abstractmethod
    def close(self):
        """Clean up any resources"""
        pass


class NoOpProgressTracker(ProgressTracker):
    """
    No-operation progress tracker for quiet mode or testing
    Updates stats but doesn't display anything
    """

    def initialize(self, total_loads: int, **kwargs):
        self.stats.total_loads = total_loads

    def start_load(self, table_name: str, sink_mode: str = None):
        self.stats.current_table = table_name

    def update_phase(self, phase: ProgressPhase, **kwargs):
        self.stats.current_phase = phase

    def update_progress(self, rows_staged: int = 0, rows_loaded: int = 0, **kwargs):
        self.stats.staged_rows += rows_staged
        self.stats.loaded_rows += rows_loaded

    def complete_load(self, success: bool = True, error_message: str = None):
        self.stats.processed_loads += 1
        if not success:
            self.stats.errors += 1
        self.stats.current_table = None

    def close(self):
        pass


class LoggingProgressTracker(ProgressTracker):
    """
    Progress tracker that uses logging instead of visual progress bars
    Good for non-interactive environments
    """

    def __init__(self, log_interval: int = 10):
        """
        Initialize logging progress tracker

        Args:
            log_interval: Seconds between staging progress messages
        """
        super().__init__()
        self.log_interval = log_interval
        self.last_log_time = 0

    def initialize(self, total_loads: int, **kwargs):
        self.stats.total_loads = total_loads
        self.logger.info(f"Starting {total_loads} load(s)")

    def start_load(self, table_name: str, sink_mode: str = None):
        self.stats.current_table = table_name
        mode_str = f" [{sink_mode}]" if sink_mode else ""
        self.logger.info(f"Loading table {table_name}{mode_str}")

    def update_phase(self, phase: ProgressPhase, **kwargs):
        self.stats.current_phase = phase
        self.logger.info(f"  Phase: {phase.value}")

    def update_progress(self, rows_staged: int = 0, rows_loaded: int = 0, **kwargs):
        self.stats.staged_rows += rows_staged
        self.stats.loaded_rows += rows_loaded

        current_time = time.time()
        if current_time - self.last_log_time >= self.log_interval:
            self.logger.info(
                f"  Staged {self.stats.staged_rows:,} rows, loaded {self.stats.loaded_rows:,}"
            )
            self.last_log_time = current_time

    def complete_load(self, success: bool = True, error_message: str = None):
        self.stats.processed_loads += 1

        if success:
            self.logger.info(f"  Completed: {self.stats.current_table}")
        else:
            self.stats.errors += 1
            self.logger.error(f"  Failed: {self.stats.current_table} - {error_message}")
        self.stats.current_table = None

    def close(self):
        elapsed = timedelta(seconds=int(self.stats.elapsed_time))
        self.logger.info(
            f"Loading complete: {self.stats.processed_loads}/{self.stats.total_loads} tables in {elapsed}"
        )
        if self.stats.errors > 0:
            self.logger.warning(f"Completed with {self.stats.errors} errors")
