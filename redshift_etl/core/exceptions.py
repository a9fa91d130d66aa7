"""
Exception hierarchy for Redshift ETL operations
"""


class RedshiftETLError(Exception):
    """Base class for all errors raised by this package"""


class ConfigurationError(RedshiftETLError, ValueError):
    """Configuration is missing or malformed; raised before any warehouse I/O"""


class CompileError(RedshiftETLError):
    """A table descriptor cannot be rendered into SQL"""


class TableStateError(RedshiftETLError):
    """Target table existence conflicts with the requested sink mode"""

    def __init__(self, message: str, table_name: str, exists: bool):
        super().__init__(message)
        self.table_name = table_name
        self.exists = exists


class StagingError(RedshiftETLError):
    """Writing records to the staging store failed"""


class ExecutionError(RedshiftETLError):
    """A statement failed against the warehouse"""

    def __init__(self, message: str, statement: str = None):
        super().__init__(message)
        self.statement = statement
