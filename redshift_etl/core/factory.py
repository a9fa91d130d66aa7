"""
Connector factory: turns string-keyed configuration into a scheme (the
staged file format and table shape) and a tap (the load/read endpoint).

Construction is pure. Nothing touches the warehouse or the staging store
until a tap is handed records or asked for them.
"""

import logging
import os
from collections.abc import Mapping as MappingABC
from collections.abc import Sequence as SequenceABC
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from redshift_etl.core import command_compiler as compiler
from redshift_etl.core.copy_options import (
    COPY_OPTIONS_PREFIX,
    CopyOption,
    extract_copy_options,
)
from redshift_etl.core.credentials import determine_aws_credentials
from redshift_etl.core.exceptions import ConfigurationError, StagingError
from redshift_etl.core.interfaces import RecordSink, RecordSource, SqlExecutor, StagingStore
from redshift_etl.core.load_orchestrator import LoadOrchestrator
from redshift_etl.core.progress import ProgressTracker
from redshift_etl.core.table_desc_builder import build_table_desc
from redshift_etl.models.credentials import AWSCredentials
from redshift_etl.models.fields import Fields
from redshift_etl.models.load_result import LoadResult
from redshift_etl.models.loader_config import LoaderConfig
from redshift_etl.models.sink_mode import SinkMode
from redshift_etl.models.table_desc import TableDescriptor
from redshift_etl.utils.redshift_connection import ConnectionConfig, RedshiftConnectionManager
from redshift_etl.utils.staging import create_staging_store

logger = logging.getLogger(__name__)

PROTOCOL_S3_OUTPUT_PATH = 's3outputpath'
PROTOCOL_KEEP_DEBUG_HFS_DATA = 'keepdebughfsdata'
PROTOCOL_USE_DIRECT_INSERT = 'usedirectinsert'
PROTOCOL_JDBC_USER = 'jdbcuser'
PROTOCOL_JDBC_PASSWORD = 'jdbcpassword'
PROTOCOL_SINK_MODE = 'sinkmode'

FORMAT_FIELD_DELIMITER = 'fielddelimiter'
FORMAT_QUOTE_CHARACTER = 'quotecharacter'
FORMAT_TABLE_ALIAS = 'tablealias'

DEFAULT_DELIMITER = ','
DEFAULT_QUOTE = '"'
DEFAULT_STAGING_PATH = '/tmp'

# COPY options that cannot describe the CSV files the staging stores write
INCOMPATIBLE_WITH_STAGED_CSV = (CopyOption.FIXEDWIDTH, CopyOption.REMOVEQUOTES, CopyOption.ESCAPE)


def parse_bool(value: Any, default: bool = False) -> bool:
    """Interpret a property value as a boolean; anything but 'true' is false"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == 'true'


def _non_blank(value: Optional[str]) -> Optional[str]:
    if value is None or not str(value).strip():
        return None
    return str(value)


def _given(value: Optional[str]) -> Optional[str]:
    """Like _non_blank, but whitespace counts: a tab is a valid delimiter"""
    if value is None or str(value) == '':
        return None
    return str(value)


class RedshiftScheme:
    """
    Format side of the connector.

    Holds the declared fields, the table shape from the format properties,
    the staged file format and the COPY options. The column list is the
    projection applied to records on their way to the staging store.
    """

    def __init__(self, fields: Optional[Fields], table_desc: TableDescriptor,
                 delimiter: str = DEFAULT_DELIMITER, quote_char: str = DEFAULT_QUOTE,
                 copy_options: Optional[Mapping[CopyOption, Optional[str]]] = None,
                 table_alias: bool = True):
        self.fields = fields if fields is not None else Fields.UNKNOWN
        self.table_desc = table_desc
        self.delimiter = delimiter
        self.quote_char = quote_char
        self.copy_options = dict(copy_options or {})
        self.table_alias = table_alias
        self.columns: List[str] = list(table_desc.column_names)

    @property
    def source_fields(self) -> Fields:
        return self.fields

    @property
    def sink_fields(self) -> Fields:
        return self.fields

    @property
    def compress(self) -> bool:
        """Staged files are gzipped when the COPY command expects them to be"""
        return CopyOption.GZIP in self.copy_options

    def set_columns(self, column_names: Sequence[str]):
        self.columns = list(column_names)

    def effective_copy_options(self) -> Dict[CopyOption, Optional[str]]:
        """
        COPY options with the staged file format spelled out.

        DELIMITER and CSV QUOTE always carry this scheme's delimiter and
        quote character, the values the staging store writes with.
        """
        options = dict(self.copy_options)
        options[CopyOption.DELIMITER] = self.delimiter
        options[CopyOption.CSV] = self.quote_char
        return options

    def project(self, record: Union[Mapping[str, Any], Sequence[Any]]) -> Sequence[Any]:
        """Order a record by column; mappings are looked up by column name"""
        if isinstance(record, MappingABC):
            return tuple(record.get(column) for column in self.columns)
        return record

    def __repr__(self) -> str:
        return (f"RedshiftScheme(fields={self.fields!r}, columns={self.columns}, "
                f"delimiter={self.delimiter!r}, copy_options={sorted(o.value for o in self.copy_options)})")


class RedshiftTap(RecordSource, RecordSink):
    """
    Endpoint for one Redshift table.

    consume_record_stream() runs a load through LoadOrchestrator;
    produce_record_stream() reads the table back. The SQL executor and the
    staging store are created on first use unless injected.
    """

    def __init__(self,
                 identifier: Optional[str],
                 user: Optional[str],
                 password: Optional[str],
                 staging_path: str,
                 credentials: AWSCredentials,
                 table_desc: TableDescriptor,
                 scheme: RedshiftScheme,
                 sink_mode: SinkMode,
                 keep_debug_data: bool = False,
                 use_direct_insert: bool = True,
                 region: Optional[str] = None,
                 executor: Optional[SqlExecutor] = None,
                 staging_store: Optional[StagingStore] = None,
                 progress_tracker: Optional[ProgressTracker] = None,
                 logger: Optional[logging.Logger] = None):
        self.identifier = identifier
        self.staging_path = staging_path
        self.credentials = credentials
        self.table_desc = table_desc
        self.scheme = scheme
        self.sink_mode = sink_mode
        self.keep_debug_data = keep_debug_data
        self.use_direct_insert = use_direct_insert
        self.region = region
        self.progress_tracker = progress_tracker
        self.logger = logger or logging.getLogger(__name__)

        self.connection_config = None
        if identifier:
            self.connection_config = ConnectionConfig.from_url(identifier, user, password)
        elif executor is None:
            raise ConfigurationError("no Redshift identifier given")

        self._executor = executor
        self._owns_executor = executor is None
        self._staging_store = staging_store

    @property
    def executor(self) -> SqlExecutor:
        if self._executor is None:
            self._executor = RedshiftConnectionManager(self.connection_config)
        return self._executor

    @property
    def staging_store(self) -> StagingStore:
        if self._staging_store is None:
            self._staging_store = create_staging_store(
                self.staging_path,
                self.credentials,
                region=self.region,
                delimiter=self.scheme.delimiter,
                quote_char=self.scheme.quote_char,
                compress=self.scheme.compress,
            )
        return self._staging_store

    def loader_config(self) -> LoaderConfig:
        return LoaderConfig(
            staging_path=self.staging_path,
            keep_debug_data=self.keep_debug_data,
            sink_mode=self.sink_mode,
            use_direct_insert=self.use_direct_insert,
        )

    def create_orchestrator(self) -> LoadOrchestrator:
        return LoadOrchestrator(
            executor=self.executor,
            staging_store=self.staging_store,
            table_desc=self.table_desc,
            copy_options=self.scheme.effective_copy_options(),
            credentials=self.credentials,
            config=self.loader_config(),
            progress_tracker=self.progress_tracker,
            logger=self.logger,
        )

    def compile_copy_command(self, staged_location: str, redact: bool = True) -> str:
        """COPY command this tap would run for data staged at staged_location"""
        credentials = self.credentials.redacted() if redact else self.credentials
        return compiler.compile_copy_command(
            self.table_desc, self.scheme.effective_copy_options(), staged_location, credentials
        )

    def consume_record_stream(self, records: Iterable[Any], max_attempts: int = 1) -> LoadResult:
        """
        Load records into the table.

        A load that fails while staging is started over from scratch, up to
        max_attempts times, when the records can be iterated again. Failures
        after staging are never retried.

        Args:
            records: Sequences in column order, or mappings keyed by column
            max_attempts: Attempts for loads that fail while staging

        Returns:
            LoadResult of the successful attempt
        """
        if max_attempts > 1 and not isinstance(records, SequenceABC):
            self.logger.warning("Record stream can only be read once, staging will not be retried")
            max_attempts = 1

        attempt = 0
        while True:
            attempt += 1
            rows = (self.scheme.project(record) for record in records)
            try:
                return self.create_orchestrator().load(rows)
            except StagingError as e:
                if attempt >= max_attempts:
                    raise
                self.logger.warning(f"Staging attempt {attempt}/{max_attempts} failed, retrying: {e}")

    def produce_record_stream(self) -> List[tuple]:
        """Read every row of the table, columns in descriptor order"""
        sql = compiler.compile_select_statement(self.table_desc, table_alias=self.scheme.table_alias)
        self.logger.info(f"Reading {self.table_desc.name}")
        self.logger.debug(f"Executing: {sql}")
        rows = self.executor.query(sql)
        self.logger.info(f"Read {len(rows):,} rows from {self.table_desc.name}")
        return rows

    def close(self):
        """Close the executor this tap created; injected executors belong to the caller"""
        if not self._owns_executor:
            return
        close = getattr(self._executor, 'close', None)
        if callable(close):
            close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class RedshiftFactory:
    """Builds schemes and taps from string-keyed properties"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            environ: Environment used for credential fallback (defaults to os.environ)
        """
        self.environ = environ if environ is not None else os.environ

    def get_description(self) -> str:
        return self.__class__.__name__

    def create_scheme(self, format_name: Optional[str], fields: Optional[Fields],
                      format_properties: Mapping[str, Any]) -> RedshiftScheme:
        """
        Create the format side of the connector.

        Args:
            format_name: Format name, informational only
            fields: Declared fields, may be untyped or a wildcard
            format_properties: Delimiter, quote character, table shape and COPY options

        Returns:
            RedshiftScheme

        Raises:
            ConfigurationError: If the COPY options describe a file format
                the staging stores cannot write
        """
        logger.info(f"Creating RedshiftScheme for format {format_name} with fields {fields!r}")

        table_desc = build_table_desc(fields, format_properties, require_table_name=False)
        copy_options = extract_copy_options(format_properties, COPY_OPTIONS_PREFIX)
        delimiter, quote_char = self._staged_format(format_properties, copy_options)
        table_alias = parse_bool(format_properties.get(FORMAT_TABLE_ALIAS), default=True)

        return RedshiftScheme(fields, table_desc, delimiter, quote_char, copy_options, table_alias)

    def create_tap(self, protocol: Optional[str], scheme: RedshiftScheme, identifier: Optional[str],
                   sink_mode: Union[SinkMode, str], protocol_properties: Mapping[str, Any],
                   **kwargs) -> RedshiftTap:
        """
        Create the load/read endpoint for one table.

        Args:
            protocol: Protocol name, informational only
            scheme: Scheme from create_scheme
            identifier: redshift://host[:port]/database
            sink_mode: Caller's sink mode; a sinkmode property overrides it
            protocol_properties: Table name, staging, credentials and load flags
            **kwargs: Injected collaborators passed through to RedshiftTap

        Returns:
            RedshiftTap

        Raises:
            ConfigurationError: If no table name is given or a sink mode is invalid
        """
        logger.info(f"Creating RedshiftTap for {protocol or 'redshift'} in mode {sink_mode}")

        user = _non_blank(protocol_properties.get(PROTOCOL_JDBC_USER))
        password = _non_blank(protocol_properties.get(PROTOCOL_JDBC_PASSWORD))
        staging_path = _non_blank(protocol_properties.get(PROTOCOL_S3_OUTPUT_PATH)) or DEFAULT_STAGING_PATH

        credentials = determine_aws_credentials(protocol_properties, self.environ)

        keep_debug_data = parse_bool(protocol_properties.get(PROTOCOL_KEEP_DEBUG_HFS_DATA))
        use_direct_insert = parse_bool(protocol_properties.get(PROTOCOL_USE_DIRECT_INSERT), default=True)

        table_desc = build_table_desc(scheme.source_fields, protocol_properties, require_table_name=True)
        self._complete_table_desc(table_desc, scheme)

        sink_mode = self._resolve_sink_mode(sink_mode, protocol_properties.get(PROTOCOL_SINK_MODE))

        return RedshiftTap(
            identifier, user, password, staging_path, credentials, table_desc, scheme, sink_mode,
            keep_debug_data=keep_debug_data, use_direct_insert=use_direct_insert, **kwargs
        )

    @staticmethod
    def _staged_format(format_properties: Mapping[str, Any],
                       copy_options: Mapping[CopyOption, Optional[str]]) -> Tuple[str, str]:
        """
        Delimiter and quote character of the staged files.

        Staging writes CSV, so the COPY command must read CSV with the same
        delimiter and quote. An explicit copyoptions.DELIMITER or
        copyoptions.CSV argument wins over fielddelimiter / quotecharacter;
        a bare CSV flag means Redshift's default quote, '"'.
        """
        rejected = [option.value for option in INCOMPATIBLE_WITH_STAGED_CSV if option in copy_options]
        if rejected:
            raise ConfigurationError(
                f"COPY option(s) {', '.join(rejected)} cannot read the staged CSV files"
            )

        delimiter = (_given(copy_options.get(CopyOption.DELIMITER))
                     or _given(format_properties.get(FORMAT_FIELD_DELIMITER))
                     or DEFAULT_DELIMITER)
        if CopyOption.CSV in copy_options:
            quote_char = _given(copy_options[CopyOption.CSV]) or DEFAULT_QUOTE
        else:
            quote_char = _given(format_properties.get(FORMAT_QUOTE_CHARACTER)) or DEFAULT_QUOTE

        for name, value in (('delimiter', delimiter), ('quote character', quote_char)):
            if len(value) != 1:
                raise ConfigurationError(f"Staged file {name} must be a single character, got {value!r}")
        if delimiter == quote_char:
            raise ConfigurationError(f"Delimiter and quote character are both {delimiter!r}")

        return delimiter, quote_char

    @staticmethod
    def _complete_table_desc(table_desc: TableDescriptor, scheme: RedshiftScheme):
        """
        Fill gaps in the tap's descriptor from the scheme.

        Keys missing from the protocol properties come from the format
        properties. When names or types are still missing and the sink
        fields are typed, the descriptor is completed from them and the
        scheme's column projection is updated to match. This must run
        before the tap is built: the scheme projects records by the
        columns set here.
        """
        if not table_desc.distribution_key:
            table_desc.distribution_key = scheme.table_desc.distribution_key
        if not table_desc.sort_keys:
            table_desc.sort_keys = list(scheme.table_desc.sort_keys)

        sink_fields = scheme.sink_fields
        if table_desc.has_required_table_information():
            if not scheme.columns:
                scheme.set_columns(table_desc.column_names)
            return

        if sink_fields is not None and not sink_fields.is_wildcard and sink_fields.types is not None:
            logger.debug(f"Table descriptor incomplete, falling back to sink fields {sink_fields!r}")
            table_desc.complete_from_fields(sink_fields)
            scheme.set_columns(table_desc.column_names)
        elif not scheme.columns:
            scheme.set_columns(table_desc.column_names)

    @staticmethod
    def _resolve_sink_mode(sink_mode: Union[SinkMode, str], override: Optional[str]) -> SinkMode:
        value = _non_blank(override) or sink_mode
        if isinstance(value, SinkMode):
            return value
        try:
            return SinkMode.parse(value)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
