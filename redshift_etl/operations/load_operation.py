"""
Load operation: delimited input file -> staged data -> COPY into Redshift.
Uses ApplicationContext for dependency injection.
"""

import csv
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, TextIO

from ..core.application_context import ApplicationContext, BaseOperation
from ..core.command_compiler import compile_insert_statement
from ..models.fields import Fields

DRY_RUN_LOCATION = '<staged-location>'


def read_delimited_records(stream: TextIO, header: List[str], delimiter: str = ',') -> Iterator[Dict[str, Any]]:
    """Yield one dict per line keyed by header; empty fields become None"""
    reader = csv.reader(stream, delimiter=delimiter)
    for row in reader:
        if not row:
            continue
        yield {name: (value if value != '' else None) for name, value in zip(header, row)}


class LoadOperation(BaseOperation):
    """
    Loads one delimited input file (with a header line) into a configured table:
    1. Read the header and build the tap
    2. Stage the records
    3. Reconcile the table with the sink mode and COPY
    4. Verify
    """

    def __init__(self, context: ApplicationContext):
        super().__init__(context)

    def execute(self,
                table: str,
                input_path: str,
                sink_mode: str = 'APPEND',
                delimiter: str = ',',
                dry_run: bool = False,
                max_attempts: int = 1) -> Dict[str, Any]:
        """
        Load an input file into a table.

        Args:
            table: Table name from the configuration
            input_path: Delimited file with a header line
            sink_mode: CREATE, REPLACE, APPEND or UPDATE
            delimiter: Field delimiter of the input file
            dry_run: Compile the load statement without touching anything
            max_attempts: Attempts for loads that fail while staging

        Returns:
            Result dictionary
        """
        table_config = self.context.get_table_config(table)
        input_path = Path(input_path)

        with open(input_path, 'r', encoding='utf-8', newline='') as f:
            header = next(csv.reader(f, delimiter=delimiter), None)
            if not header:
                raise ValueError(f"Input file {input_path} has no header line")

            with self.context.create_tap(table_config, sink_mode, fields=Fields(header)) as tap:
                if dry_run:
                    return self._dry_run(tap)

                self.logger.info(f"Loading {input_path} into {tap.table_desc.name}")
                records = read_delimited_records(f, header, delimiter)
                if max_attempts > 1:
                    records = list(records)

                self.context.progress_tracker.initialize(1)
                result = tap.consume_record_stream(records, max_attempts=max_attempts)

        summary = result.to_dict()
        summary['input'] = str(input_path)
        summary['success'] = result.success
        return summary

    def _dry_run(self, tap) -> Dict[str, Any]:
        """Validate and compile the load statement without touching anything"""
        tap.create_orchestrator().validate()
        if tap.use_direct_insert:
            command = compile_insert_statement(tap.table_desc)
        else:
            command = tap.compile_copy_command(DRY_RUN_LOCATION, redact=True)
        self.logger.info(f"Dry run for {tap.table_desc.name}, nothing was staged or loaded")
        return {
            'table': tap.table_desc.name,
            'sink_mode': tap.sink_mode.name,
            'dry_run': True,
            'direct_insert': tap.use_direct_insert,
            'command': command,
        }
