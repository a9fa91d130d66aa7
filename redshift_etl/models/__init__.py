"""
Data models for Redshift ETL Pipeline
"""

from redshift_etl.models.credentials import AWSCredentials
from redshift_etl.models.fields import Field, Fields
from redshift_etl.models.load_result import LoadResult
from redshift_etl.models.loader_config import LoaderConfig
from redshift_etl.models.sink_mode import SinkMode
from redshift_etl.models.table_desc import TableDescriptor

__all__ = [
    'AWSCredentials',
    'Field',
    'Fields',
    'LoadResult',
    'LoaderConfig',
    'SinkMode',
    'TableDescriptor',
]
