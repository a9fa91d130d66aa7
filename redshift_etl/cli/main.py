#!/usr/bin/env python3
"""
Main CLI Entry Point for Redshift ETL Pipeline
Single entry point for all operations
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from redshift_etl.core.application_context import ApplicationContext
from redshift_etl.models.sink_mode import SinkMode


class RedshiftETLCLI:
    """
    Main CLI handler for Redshift ETL operations
    """

    def __init__(self):
        """Initialize CLI"""
        self.context = None
        self.logger = None

    def create_parser(self) -> argparse.ArgumentParser:
        """Build the argument parser with one subparser per operation"""
        parser = argparse.ArgumentParser(
            prog='redshift-etl',
            description='Redshift ETL Pipeline - stage records and bulk-load them with COPY',
            formatter_class=argparse.RawDescriptionHelpFormatter
        )

        # Global options
        parser.add_argument(
            '--config', '-c',
            type=str,
            required=True,
            help='Path to configuration file'
        )
        parser.add_argument(
            '--log-dir',
            type=str,
            default='logs',
            help='Directory for log files (default: logs)'
        )
        parser.add_argument(
            '--log-level',
            type=str,
            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
            default='INFO',
            help='Logging level (default: INFO)'
        )
        parser.add_argument(
            '--quiet', '-q',
            action='store_true',
            help='Suppress console output'
        )
        parser.add_argument(
            '--no-progress',
            action='store_true',
            help='Log progress instead of drawing progress bars'
        )
        parser.add_argument(
            '--json-logs',
            action='store_true',
            help='Write log records as JSON lines'
        )

        subparsers = parser.add_subparsers(
            dest='operation',
            help='Operation to perform'
        )

        # Load operation
        load_parser = subparsers.add_parser('load', help='Load a delimited file into a table')
        load_parser.add_argument('--table', type=str, required=True, help='Table name from the configuration')
        load_parser.add_argument('--input', type=str, required=True, help='Delimited input file with a header line')
        load_parser.add_argument('--sink-mode', type=str.upper, default='APPEND',
                                 choices=[m.name for m in SinkMode],
                                 help='How to treat an existing table (default: APPEND)')
        load_parser.add_argument('--delimiter', type=str, default=',', help='Input field delimiter (default: ,)')
        load_parser.add_argument('--retries', type=int, default=0,
                                 help='Times to retry a load that fails while staging')
        load_parser.add_argument('--dry-run', action='store_true',
                                 help='Print the load statement without staging or loading')

        # Check table operation
        check_parser = subparsers.add_parser('check-table', help='Check table existence and row count')
        check_parser.add_argument('--table', type=str, required=True, help='Table name from the configuration')

        # Export operation
        export_parser = subparsers.add_parser('export', help='Export a table to a delimited file')
        export_parser.add_argument('--table', type=str, required=True, help='Table name from the configuration')
        export_parser.add_argument('--output', type=str, required=True, help='Output file')
        export_parser.add_argument('--delimiter', type=str, default=',', help='Output field delimiter (default: ,)')

        return parser

    def parse_args(self, args=None):
        """
        Parse command line arguments

        Args:
            args: Arguments to parse (defaults to sys.argv)

        Returns:
            Parsed arguments
        """
        return self.create_parser().parse_args(args)

    def initialize_context(self, args):
        """
        Initialize application context from arguments

        Args:
            args: Parsed command line arguments
        """
        self.context = ApplicationContext(
            config_path=args.config,
            log_dir=Path(args.log_dir),
            log_level=args.log_level,
            quiet=args.quiet,
            progress_bars=not args.no_progress,
            json_logs=args.json_logs
        )
        self.logger = logging.getLogger('redshift_etl.cli')

    def execute_load(self, args) -> int:
        """Execute load operation"""
        from redshift_etl.operations.load_operation import LoadOperation

        operation = LoadOperation(self.context)
        result = operation.execute(
            table=args.table,
            input_path=args.input,
            sink_mode=args.sink_mode,
            delimiter=args.delimiter,
            dry_run=args.dry_run,
            max_attempts=args.retries + 1
        )

        if args.dry_run:
            print(result['command'])
            return 0

        self.logger.info(
            f"Load complete: {result['rows_loaded']:,} rows into {result['table_name']} "
            f"({result['table_action']}) in {result['duration']:.1f}s"
        )
        for warning in result['warnings']:
            self.logger.warning(warning)
        return 0 if result['success'] else 1

    def execute_check_table(self, args) -> int:
        """Execute check-table operation"""
        from redshift_etl.operations.table_operations import CheckTableOperation

        result = CheckTableOperation(self.context).execute(table=args.table)
        print(json.dumps(result, indent=2))
        return 0 if result['exists'] else 1

    def execute_export(self, args) -> int:
        """Execute export operation"""
        from redshift_etl.operations.table_operations import ExportOperation

        result = ExportOperation(self.context).execute(
            table=args.table,
            output_path=args.output,
            delimiter=args.delimiter
        )
        self.logger.info(f"Exported {result['rows']:,} rows to {result['output']}")
        return 0

    def run(self, args=None) -> int:
        """
        Main entry point

        Args:
            args: Command line arguments

        Returns:
            Exit code (0 for success)
        """
        try:
            parsed_args = self.parse_args(args)

            if not parsed_args.operation:
                print("Error: No operation specified. Use -h for help.")
                return 1

            self.initialize_context(parsed_args)

            with self.context:
                operation_handlers = {
                    'load': self.execute_load,
                    'check-table': self.execute_check_table,
                    'export': self.execute_export
                }

                handler = operation_handlers.get(parsed_args.operation)
                if handler:
                    return handler(parsed_args)
                else:
                    self.logger.error(f"Unknown operation: {parsed_args.operation}")
                    return 1

        except KeyboardInterrupt:
            print("\nOperation cancelled by user")
            return 130
        except Exception as e:
            if self.logger:
                self.logger.error(f"Operation failed: {e}", exc_info=True)
            else:
                print(f"Error: {e}")
            return 1


def main():
    """Main entry point"""
    cli = RedshiftETLCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
