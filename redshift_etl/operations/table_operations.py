"""
Read-side table operations: existence/row-count check and export.
"""

from pathlib import Path
from typing import Any, Dict

from ..core.application_context import BaseOperation
from ..core.command_compiler import compile_count
from ..utils.staging import write_delimited


class CheckTableOperation(BaseOperation):
    """Reports whether a configured table exists and how many rows it has"""

    def execute(self, table: str) -> Dict[str, Any]:
        table_config = self.context.get_table_config(table)
        with self.context.create_tap(table_config) as tap:
            name = tap.table_desc.name
            exists = tap.executor.table_exists(name)
            rows = tap.executor.query(compile_count(name)) if exists else None

        result = {'table': name, 'exists': exists, 'row_count': None}

        if exists:
            result['row_count'] = rows[0][0] if rows else None
            if result['row_count'] is None:
                self.logger.warning(f"Table {name} exists but its row count could not be read")
            else:
                self.logger.info(f"Table {name} exists with {result['row_count']:,} rows")
        else:
            self.logger.info(f"Table {name} does not exist")

        return result


class ExportOperation(BaseOperation):
    """Writes every row of a configured table to a delimited file"""

    def execute(self, table: str, output_path: str, delimiter: str = ',') -> Dict[str, Any]:
        table_config = self.context.get_table_config(table)
        with self.context.create_tap(table_config) as tap:
            rows = tap.produce_record_stream()
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8', newline='') as f:
            write_delimited([tap.scheme.columns], f, delimiter=delimiter)
            count = write_delimited(rows, f, delimiter=delimiter)

        self.logger.info(f"Exported {count:,} rows from {tap.table_desc.name} to {output_path}")
        return {'table': tap.table_desc.name, 'output': str(output_path), 'rows': count}
