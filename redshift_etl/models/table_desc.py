"""
Table descriptor model for Redshift load targets.
"""

import datetime
import decimal
from dataclasses import dataclass, field
from itertools import zip_longest
from typing import Any, List, Optional, Tuple

from redshift_etl.models.fields import Fields


# Python types to Redshift column types, used when fields carry Python types
PYTHON_TYPE_MAPPING = {
    bool: 'BOOLEAN',
    int: 'BIGINT',
    float: 'DOUBLE PRECISION',
    decimal.Decimal: 'DECIMAL(38,10)',
    str: 'VARCHAR(256)',
    bytes: 'VARBYTE',
    datetime.datetime: 'TIMESTAMP',
    datetime.date: 'DATE',
    datetime.time: 'TIME',
}


def to_redshift_type(field_type: Any) -> Optional[str]:
    """
    Map a declared field type to a Redshift column type.

    Strings are taken as already being warehouse types. Unknown Python
    types map to None so the column stays untyped.
    """
    if field_type is None:
        return None
    if isinstance(field_type, str):
        return field_type.strip() or None
    return PYTHON_TYPE_MAPPING.get(field_type)


@dataclass
class TableDescriptor:
    """
    Shape of a load target: name, columns, declared types and layout keys.

    column_defs holds the declared type per column position and may be None
    (nothing known) or contain None entries (partially known). Its length is
    not forced to match column_names; a mismatch is reported when the
    descriptor is compiled into SQL.

    Attributes:
        name: Target table name, optionally schema-qualified
        column_names: Ordered column names
        column_defs: Ordered column type declarations
        distribution_key: DISTKEY column, also the merge key for UPDATE loads
        sort_keys: SORTKEY columns
    """
    name: Optional[str] = None
    column_names: List[str] = field(default_factory=list)
    column_defs: Optional[List[Optional[str]]] = None
    distribution_key: Optional[str] = None
    sort_keys: List[str] = field(default_factory=list)

    @property
    def columns(self) -> List[Tuple[str, Optional[str]]]:
        """(name, declared type) pairs, one per column name"""
        defs = self.column_defs or []
        return [(name, col_def) for name, col_def in zip_longest(self.column_names, defs[:len(self.column_names)])]

    def has_required_table_information(self) -> bool:
        """True when name, columns and a type for every column are all present"""
        if not self.name or not self.name.strip():
            return False
        if not self.column_names or any(not c for c in self.column_names):
            return False
        if not self.column_defs or len(self.column_defs) < len(self.column_names):
            return False
        return all(d for d in self.column_defs[:len(self.column_names)])

    def complete_from_fields(self, fields: Fields) -> None:
        """
        Fill in missing column names and types from a field list.

        Values already present are never overwritten. Mutates in place.

        Args:
            fields: Field list carrying names and (ideally) types
        """
        if not self.column_names:
            self.column_names = list(fields.names)

        inferred = [to_redshift_type(f.type) for f in fields]
        if self.column_defs is None:
            self.column_defs = [None] * len(self.column_names)

        defs = list(self.column_defs)
        if len(defs) < len(self.column_names):
            defs.extend([None] * (len(self.column_names) - len(defs)))
        for index in range(min(len(self.column_names), len(inferred))):
            if not defs[index]:
                defs[index] = inferred[index]
        self.column_defs = defs

    @property
    def schema_and_table(self) -> Tuple[Optional[str], str]:
        """Split 'schema.table' into its parts; schema is None if unqualified"""
        if self.name and '.' in self.name:
            schema, table = self.name.split('.', 1)
            return schema, table
        return None, self.name or ''
