"""
Load orchestrator: stages a record stream and bulk-loads it into Redshift.

One call to load() runs one load through the states
STAGING -> TABLE_CHECK -> CREATE | SKIP | DROP_RECREATE -> LOADING -> VERIFY -> DONE,
ending in FAILED from whichever state raised.
"""

import logging
import time
import uuid
from itertools import islice
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from redshift_etl.core import command_compiler as compiler
from redshift_etl.core.copy_options import CopyOption
from redshift_etl.core.exceptions import (
    ConfigurationError,
    ExecutionError,
    StagingError,
    TableStateError,
)
from redshift_etl.core.interfaces import SqlExecutor, StagingStore
from redshift_etl.core.progress import NoOpProgressTracker, ProgressPhase, ProgressTracker
from redshift_etl.models.credentials import AWSCredentials
from redshift_etl.models.load_result import LoadResult
from redshift_etl.models.loader_config import LoaderConfig
from redshift_etl.models.sink_mode import SinkMode
from redshift_etl.models.table_desc import TableDescriptor
from redshift_etl.utils.logging_config import log_performance

# Rows between staging progress updates
PROGRESS_INTERVAL_ROWS = 10000


class LoadOrchestrator:
    """
    Drives a single load end to end.

    All collaborators are injected: the SQL executor, the staging store, the
    logger and the progress tracker. The table descriptor is treated as
    immutable once load() starts.
    """

    def __init__(self,
                 executor: SqlExecutor,
                 staging_store: StagingStore,
                 table_desc: TableDescriptor,
                 copy_options: Mapping[CopyOption, Optional[str]],
                 credentials: AWSCredentials = AWSCredentials.RUNTIME_DETERMINED,
                 config: Optional[LoaderConfig] = None,
                 progress_tracker: Optional[ProgressTracker] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize orchestrator with injected dependencies.

        Args:
            executor: Runs SQL against the warehouse
            staging_store: Durable storage the warehouse loads from
            table_desc: Target table shape
            copy_options: COPY options for the load command
            credentials: Credentials authorizing reads of staged data
            config: Sink mode, staging path and load settings
            progress_tracker: Optional progress tracking implementation
            logger: Optional logger instance
        """
        self.executor = executor
        self.staging_store = staging_store
        self.table_desc = table_desc
        self.copy_options = dict(copy_options)
        self.credentials = credentials
        self.config = config or LoaderConfig()
        self.progress_tracker = progress_tracker or NoOpProgressTracker()
        self.logger = logger or logging.getLogger(__name__)
        self.state: Optional[ProgressPhase] = None
        self.rows_staged = 0

    @property
    def sink_mode(self) -> SinkMode:
        return self.config.sink_mode

    def _transition(self, state: ProgressPhase, result: LoadResult):
        self.state = state
        result.state = state.name
        self.progress_tracker.update_phase(state)
        self.logger.debug(f"{self.table_desc.name}: entering {state.name}")

    def validate(self):
        """
        Check everything that can be checked without I/O.

        Raises:
            CompileError: If the descriptor cannot be rendered
            ConfigurationError: If an UPDATE load has no merge key
        """
        needs_create = self.sink_mode in (SinkMode.CREATE, SinkMode.REPLACE)
        compiler.validate_table_desc(self.table_desc, require_types=needs_create)

        if self.sink_mode is SinkMode.UPDATE and not self.table_desc.distribution_key:
            raise ConfigurationError(
                f"UPDATE load into {self.table_desc.name} requires a distribution key to merge on"
            )

    def load(self, records: Iterable[Sequence[Any]]) -> LoadResult:
        """
        Load a record stream into the target table.

        Args:
            records: Record stream, one sequence of values per row

        Returns:
            LoadResult describing what happened

        Raises:
            ConfigurationError, CompileError: Before any I/O
            StagingError: Staging failed, no table was touched
            TableStateError: Table existence conflicts with the sink mode
            ExecutionError: A warehouse statement failed
        """
        self.validate()
        self.rows_staged = 0

        result = LoadResult(table_name=self.table_desc.name, sink_mode=self.sink_mode.name)
        start_time = time.time()
        staged_location = None
        succeeded = False

        self.progress_tracker.start_load(self.table_desc.name, self.sink_mode.name)
        self.logger.info(f"Loading {self.table_desc.name} in {self.sink_mode.name} mode")

        try:
            if self.config.use_direct_insert:
                self.logger.info("Direct insert enabled, skipping staging")
            else:
                self._transition(ProgressPhase.STAGING, result)
                staged_location = self._stage(records)
                result.staged_location = staged_location
                records = None

            self._transition(ProgressPhase.TABLE_CHECK, result)
            self._prepare_table(result)

            self._transition(ProgressPhase.LOADING, result)
            if self.sink_mode is SinkMode.UPDATE:
                self._merge(records, staged_location, result)
            else:
                result.rows_loaded = self._load_into(self.table_desc.name, records, staged_location, result)
            self.progress_tracker.update_progress(rows_loaded=result.rows_loaded)

            if self.config.verify:
                self._transition(ProgressPhase.VERIFY, result)
                self._verify(result)

            self._transition(ProgressPhase.DONE, result)
            succeeded = True

        except Exception as e:
            self.logger.error(f"Failed to load {self.table_desc.name} during {result.state}: {e}")
            self._transition(ProgressPhase.FAILED, result)
            self.progress_tracker.complete_load(success=False, error_message=str(e))
            raise

        finally:
            result.duration = time.time() - start_time
            if staged_location:
                self._cleanup_stage(staged_location, succeeded)

        self.progress_tracker.complete_load(success=True)
        self.logger.info(
            f"Successfully loaded {result.rows_loaded:,} rows to {self.table_desc.name} "
            f"in {result.duration:.1f}s"
        )
        log_performance(
            'load',
            result.duration,
            table=self.table_desc.name,
            sink_mode=self.sink_mode.name,
            rows_loaded=result.rows_loaded,
            direct_insert=self.config.use_direct_insert,
        )
        return result

    def _stage_path(self) -> str:
        table = self.table_desc.name.replace('"', '').replace('.', '_')
        return f"{self.config.staging_path.rstrip('/')}/{table}/{uuid.uuid4().hex}"

    def _count_records(self, records: Iterable[Sequence[Any]]) -> Iterator[Sequence[Any]]:
        pending = 0
        for record in records:
            yield record
            self.rows_staged += 1
            pending += 1
            if pending >= PROGRESS_INTERVAL_ROWS:
                self.progress_tracker.update_progress(rows_staged=pending)
                pending = 0
        if pending:
            self.progress_tracker.update_progress(rows_staged=pending)

    def _stage(self, records: Iterable[Sequence[Any]]) -> str:
        """
        Write the records to a fresh, unique staging path.

        A failed write discards whatever was written so a retry starts
        from scratch.
        """
        stage_path = self._stage_path()
        self.logger.info(f"Staging records to {stage_path}")

        try:
            location = self.staging_store.write(stage_path, self._count_records(records))
        except Exception as e:
            self._discard_partial_stage(stage_path)
            raise StagingError(f"Failed to stage records to {stage_path}: {e}") from e
        except BaseException:
            # interrupted: nothing warehouse-side happens
            self._discard_partial_stage(stage_path)
            raise

        self.logger.info(f"Staged records at {location}")
        return location

    def _discard_partial_stage(self, stage_path: str):
        try:
            self.staging_store.delete(stage_path)
        except Exception as e:
            self.logger.warning(f"Could not discard partial stage {stage_path}: {e}")

    def _prepare_table(self, result: LoadResult):
        """Reconcile the existing table with the sink mode"""
        name = self.table_desc.name
        exists = self.executor.table_exists(name)
        self.logger.info(f"Table {name} {'exists' if exists else 'does not exist'}")

        if self.sink_mode is SinkMode.CREATE:
            if exists:
                raise TableStateError(f"Table {name} already exists", name, exists)
            self._transition(ProgressPhase.CREATE, result)
            self._execute(compiler.compile_create_table(self.table_desc), result)

        elif self.sink_mode is SinkMode.REPLACE:
            if exists:
                self._transition(ProgressPhase.DROP_RECREATE, result)
                self._execute(compiler.compile_drop_table(name), result)
            else:
                self._transition(ProgressPhase.CREATE, result)
            self._execute(compiler.compile_create_table(self.table_desc), result)

        else:
            if not exists:
                raise TableStateError(
                    f"Table {name} does not exist, {self.sink_mode.name} needs an existing table",
                    name, exists
                )
            self._transition(ProgressPhase.SKIP, result)

        result.table_action = self.state.name

    def _execute(self, sql: str, result: LoadResult, log_sql: Optional[str] = None) -> int:
        self.logger.debug(f"Executing: {log_sql or sql}")
        try:
            rows = self.executor.execute(sql)
        except ExecutionError as e:
            e.statement = log_sql or sql
            raise
        except Exception as e:
            raise ExecutionError(f"Statement failed: {e}", statement=log_sql or sql) from e
        result.statements_executed += 1
        return rows

    def _load_into(self, table_name: str, records: Optional[Iterable[Sequence[Any]]],
                   staged_location: Optional[str], result: LoadResult) -> int:
        """COPY staged data, or direct-insert the records, into table_name"""
        if self.config.use_direct_insert:
            return self._insert_records(table_name, records, result)

        command = compiler.compile_copy_command(
            self.table_desc, self.copy_options, staged_location, self.credentials,
            table_name=table_name
        )
        redacted = compiler.compile_copy_command(
            self.table_desc, self.copy_options, staged_location, self.credentials.redacted(),
            table_name=table_name
        )

        start_time = time.time()
        rows_loaded = self._execute(command, result, log_sql=redacted)
        copy_time = time.time() - start_time

        if rows_loaded is None or rows_loaded < 0:
            rows_loaded = self.rows_staged
        rows_per_sec = rows_loaded / copy_time if copy_time > 0 else 0
        self.logger.info(
            f"COPY into {table_name} completed in {copy_time:.1f}s "
            f"({rows_loaded:,} rows at {rows_per_sec:,.0f} rows/sec)"
        )
        return rows_loaded

    def _insert_records(self, table_name: str, records: Iterable[Sequence[Any]],
                        result: LoadResult) -> int:
        statement = compiler.compile_insert_statement(self.table_desc, table_name=table_name)
        batch_size = self.config.insert_batch_size
        iterator = iter(records)
        total = 0

        while True:
            batch = [tuple(r) for r in islice(iterator, batch_size)]
            if not batch:
                break
            try:
                self.executor.execute_many(statement, batch)
            except ExecutionError as e:
                e.statement = statement
                raise
            except Exception as e:
                raise ExecutionError(f"Insert batch failed: {e}", statement=statement) from e
            result.statements_executed += 1
            total += len(batch)
            self.progress_tracker.update_progress(rows_staged=len(batch))

        self.logger.info(f"Inserted {total:,} rows into {table_name}")
        return total

    def _intermediate_table_name(self) -> str:
        suffix = f"{self.config.merge_table_suffix}_{uuid.uuid4().hex[:8]}"
        name = self.table_desc.name
        if name.endswith('"'):
            return f'{name[:-1]}{suffix}"'
        return f"{name}{suffix}"

    def _merge(self, records: Optional[Iterable[Sequence[Any]]],
               staged_location: Optional[str], result: LoadResult):
        """
        Load into an intermediate table, then delete-and-insert into the
        target on the distribution key. The first failing statement
        abandons the sequence.
        """
        staging_table = self._intermediate_table_name()
        merged = False

        self._execute(compiler.compile_create_like(staging_table, self.table_desc.name), result)
        try:
            result.rows_loaded = self._load_into(staging_table, records, staged_location, result)
            for statement in compiler.compile_merge_statements(self.table_desc, staging_table):
                self._execute(statement, result)
            merged = True
        finally:
            if merged or not self.config.keep_debug_data:
                self._drop_quietly(staging_table, result)
            else:
                self.logger.warning(f"Keeping intermediate table {staging_table} for debugging")

        self.logger.info(
            f"Merged {result.rows_loaded:,} rows into {self.table_desc.name} "
            f"on {self.table_desc.distribution_key}"
        )

    def _drop_quietly(self, table_name: str, result: LoadResult):
        try:
            self._execute(compiler.compile_drop_table(table_name), result)
        except ExecutionError as e:
            self.logger.warning(f"Could not drop intermediate table {table_name}: {e}")

    def _verify(self, result: LoadResult):
        """Best-effort re-check; problems are recorded as warnings"""
        name = self.table_desc.name
        try:
            if not self.executor.table_exists(name):
                result.warnings.append(f"Table {name} not found after load")
                return
            rows = self.executor.query(compiler.compile_count(name))
            count = rows[0][0] if rows else None
            result.verified_row_count = count
            if count is not None and count < result.rows_loaded:
                result.warnings.append(
                    f"Table {name} has {count:,} rows, fewer than the {result.rows_loaded:,} loaded"
                )
        except Exception as e:
            result.warnings.append(f"Verification of {name} failed: {e}")

        for warning in result.warnings:
            self.logger.warning(warning)

    def _cleanup_stage(self, location: str, succeeded: bool):
        """Remove staged data, unless a failed load asked to keep it"""
        if not succeeded and self.config.keep_debug_data:
            self.logger.warning(f"Load failed, keeping staged data for debugging: {location}")
            return
        try:
            self.staging_store.delete(location)
            self.logger.debug(f"Removed staged data: {location}")
        except Exception as e:
            self.logger.warning(f"Could not remove staged data {location}: {e}")
