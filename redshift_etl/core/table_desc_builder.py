"""
Builds TableDescriptors from connector properties and field declarations.
"""

import logging
from typing import List, Mapping, Optional

from redshift_etl.core.exceptions import ConfigurationError
from redshift_etl.models.fields import Fields
from redshift_etl.models.table_desc import TableDescriptor, to_redshift_type

logger = logging.getLogger(__name__)

PROTOCOL_TABLE_NAME = 'tablename'
PROTOCOL_FIELD_SEPARATOR = 'separator'
PROTOCOL_COLUMN_NAMES = 'columnnames'
PROTOCOL_COLUMN_DEFS = 'columndefs'
FORMAT_DISTRIBUTION_KEY = 'distributionkey'
FORMAT_SORT_KEYS = 'sortkeys'

DEFAULT_SEPARATOR = ','


def _is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ''


def _split(value: str, separator: str) -> List[str]:
    return [part.strip() for part in value.split(separator)]


def get_column_names(fields: Optional[Fields], properties: Mapping[str, str], separator: str) -> List[str]:
    """Explicit column names if configured, otherwise the field names"""
    column_names_property = properties.get(PROTOCOL_COLUMN_NAMES)
    if not _is_blank(column_names_property):
        return _split(column_names_property, separator)
    if fields is None or fields.is_wildcard:
        return []
    return fields.names


def build_table_desc(fields: Optional[Fields],
                     properties: Mapping[str, str],
                     require_table_name: bool) -> TableDescriptor:
    """
    Merge configuration and field declarations into a TableDescriptor.

    Types are inferred from the fields when every field carries one and the
    field count matches the column count. Entries of the columndefs property
    replace inferred types position by position; a columndefs list longer or
    shorter than the column list is kept as-is and reported at compile time.

    Args:
        fields: Field declarations, may be None or a wildcard
        properties: String-keyed connector configuration
        require_table_name: Fail when no table name is configured

    Returns:
        A possibly incomplete TableDescriptor

    Raises:
        ConfigurationError: If a table name is required but missing
    """
    table_name = properties.get(PROTOCOL_TABLE_NAME)

    if require_table_name and _is_blank(table_name):
        raise ConfigurationError("no tablename given")

    separator = properties.get(PROTOCOL_FIELD_SEPARATOR) or DEFAULT_SEPARATOR

    column_names = get_column_names(fields, properties, separator)

    column_defs = None
    if fields is not None and not fields.is_wildcard and fields.types is not None \
            and len(fields) == len(column_names):
        column_defs = [to_redshift_type(t) for t in fields.types]

    column_defs_property = properties.get(PROTOCOL_COLUMN_DEFS)
    if not _is_blank(column_defs_property):
        overrides = _split(column_defs_property, separator)
        inferred = column_defs or []
        column_defs = overrides + inferred[len(overrides):]

    distribution_key = properties.get(FORMAT_DISTRIBUTION_KEY)
    if _is_blank(distribution_key):
        distribution_key = None

    sort_keys = []
    sort_keys_property = properties.get(FORMAT_SORT_KEYS)
    if not _is_blank(sort_keys_property):
        sort_keys = _split(sort_keys_property, separator)

    desc = TableDescriptor(
        name=table_name.strip() if not _is_blank(table_name) else None,
        column_names=column_names,
        column_defs=column_defs,
        distribution_key=distribution_key.strip() if distribution_key else None,
        sort_keys=sort_keys,
    )
    logger.debug(f"Built table descriptor: {desc}")
    return desc
