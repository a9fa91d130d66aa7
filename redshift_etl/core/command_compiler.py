"""
Renders table descriptors and COPY options into Redshift SQL.

All functions are pure: identical inputs always produce identical text.
Credentials only ever appear in the output of compile_copy_command; log the
result of compiling with credentials.redacted() instead of the real command.
"""

import re
from typing import List, Mapping, Optional

from redshift_etl.core.copy_options import CopyOption, render_copy_options
from redshift_etl.core.exceptions import CompileError
from redshift_etl.models.credentials import AWSCredentials
from redshift_etl.models.table_desc import TableDescriptor

_PART = r'(?:"[^"]+"|[A-Za-z_][A-Za-z0-9_$]*)'
_IDENTIFIER = re.compile(rf'^{_PART}(?:\.{_PART})?$')


def _quote_literal(value: str) -> str:
    return "'%s'" % value.replace("'", "''")


def _check_identifier(identifier: str, what: str) -> str:
    if not identifier or not _IDENTIFIER.match(identifier):
        raise CompileError(f"Invalid {what}: {identifier!r}")
    return identifier


def validate_table_desc(table_desc: TableDescriptor, require_types: bool = False) -> None:
    """
    Check that a descriptor can be rendered.

    Args:
        table_desc: Descriptor to check
        require_types: Also require a declared type for every column

    Raises:
        CompileError: If name or columns are missing, identifiers are
            malformed, keys reference unknown columns, or (with
            require_types) the column definitions do not line up
    """
    if not table_desc.name or not table_desc.name.strip():
        raise CompileError("Table descriptor has no table name")
    _check_identifier(table_desc.name, "table name")

    if not table_desc.column_names:
        raise CompileError(f"Table descriptor for {table_desc.name} has no columns")
    for column in table_desc.column_names:
        _check_identifier(column, "column name")

    if len(set(table_desc.column_names)) != len(table_desc.column_names):
        raise CompileError(f"Duplicate column names for {table_desc.name}: {table_desc.column_names}")

    if table_desc.distribution_key and table_desc.distribution_key not in table_desc.column_names:
        raise CompileError(
            f"Distribution key '{table_desc.distribution_key}' is not a column of {table_desc.name}"
        )
    for sort_key in table_desc.sort_keys:
        if sort_key not in table_desc.column_names:
            raise CompileError(f"Sort key '{sort_key}' is not a column of {table_desc.name}")

    if require_types:
        defs = table_desc.column_defs or []
        if len(defs) != len(table_desc.column_names):
            raise CompileError(
                f"{len(defs)} column definitions given for {len(table_desc.column_names)} "
                f"columns of {table_desc.name}"
            )
        missing = [name for name, col_def in table_desc.columns if not col_def]
        if missing:
            raise CompileError(f"No column type for {', '.join(missing)} in {table_desc.name}")


def compile_authorization(credentials: AWSCredentials) -> str:
    """Authorization clause for reading the staged files"""
    if credentials.is_runtime_determined:
        return "IAM_ROLE default"
    secret = f"aws_access_key_id={credentials.access_key};aws_secret_access_key={credentials.secret_key}"
    return f"CREDENTIALS {_quote_literal(secret)}"


def compile_copy_command(table_desc: TableDescriptor,
                         copy_options: Mapping[CopyOption, Optional[str]],
                         staged_location: str,
                         credentials: AWSCredentials,
                         table_name: Optional[str] = None) -> str:
    """
    Render the COPY command loading staged files into a table.

    Args:
        table_desc: Target descriptor (name and columns required)
        copy_options: COPY options, rendered in canonical order
        staged_location: Location the staging store returned
        credentials: Resolved credentials, embedded verbatim
        table_name: Load into this table instead of table_desc.name

    Returns:
        COPY statement text

    Raises:
        CompileError: If the descriptor is incomplete
    """
    validate_table_desc(table_desc)
    target = _check_identifier(table_name, "table name") if table_name else table_desc.name

    if not staged_location:
        raise CompileError("No staged location to load from")

    columns = ", ".join(table_desc.column_names)
    return (
        f"COPY {target} ({columns}) "
        f"FROM {_quote_literal(staged_location)} "
        f"{compile_authorization(credentials)} "
        f"{render_copy_options(copy_options)};"
    )


def compile_create_table(table_desc: TableDescriptor, table_name: Optional[str] = None) -> str:
    """CREATE TABLE with DISTKEY/SORTKEY from the descriptor"""
    validate_table_desc(table_desc, require_types=True)
    target = _check_identifier(table_name, "table name") if table_name else table_desc.name

    column_list = ", ".join(f"{name} {col_def}" for name, col_def in table_desc.columns)
    statement = f"CREATE TABLE {target} ({column_list})"

    if table_desc.distribution_key:
        statement += f" DISTKEY({table_desc.distribution_key})"
    if table_desc.sort_keys:
        statement += f" SORTKEY({', '.join(table_desc.sort_keys)})"
    return statement + ";"


def compile_drop_table(table_name: str) -> str:
    return f"DROP TABLE IF EXISTS {_check_identifier(table_name, 'table name')};"


def compile_create_like(table_name: str, like_table: str) -> str:
    """Empty copy of an existing table's structure"""
    return (
        f"CREATE TABLE {_check_identifier(table_name, 'table name')} "
        f"(LIKE {_check_identifier(like_table, 'table name')});"
    )


def compile_merge_statements(table_desc: TableDescriptor, staging_table: str) -> List[str]:
    """
    Delete-then-insert merge of a staging table into the target.

    Rows are matched on the distribution key.

    Raises:
        CompileError: If the descriptor has no distribution key
    """
    validate_table_desc(table_desc)
    _check_identifier(staging_table, "table name")

    key = table_desc.distribution_key
    if not key:
        raise CompileError(f"Merging into {table_desc.name} requires a distribution key")

    target = table_desc.name
    columns = ", ".join(table_desc.column_names)
    return [
        f"DELETE FROM {target} USING {staging_table} WHERE {target}.{key} = {staging_table}.{key};",
        f"INSERT INTO {target} ({columns}) SELECT {columns} FROM {staging_table};",
    ]


def compile_insert_statement(table_desc: TableDescriptor, table_name: Optional[str] = None) -> str:
    """Parameterized INSERT for executemany, one placeholder per column"""
    validate_table_desc(table_desc)
    target = _check_identifier(table_name, "table name") if table_name else table_desc.name
    columns = ", ".join(table_desc.column_names)
    placeholders = ", ".join(["%s"] * len(table_desc.column_names))
    return f"INSERT INTO {target} ({columns}) VALUES ({placeholders})"


def compile_select_statement(table_desc: TableDescriptor, table_alias: bool = True) -> str:
    """SELECT of the descriptor's columns, optionally through a table alias"""
    validate_table_desc(table_desc)
    if not table_alias:
        return f"SELECT {', '.join(table_desc.column_names)} FROM {table_desc.name}"
    _, table = table_desc.schema_and_table
    alias = table.strip('"')[:1].lower() or 't'
    columns = ", ".join(f"{alias}.{name}" for name in table_desc.column_names)
    return f"SELECT {columns} FROM {table_desc.name} {alias}"


def compile_count(table_name: str) -> str:
    return f"SELECT COUNT(*) FROM {_check_identifier(table_name, 'table name')}"
