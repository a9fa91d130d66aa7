"""
Redshift ETL Pipeline Package
Stages record streams and bulk-loads them into Amazon Redshift with COPY

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Redshift ETL Team"

# Lazy imports so the models can be used without the warehouse driver installed
__all__ = [
    'RedshiftFactory',
    'RedshiftConnectionManager',
    'ConfigManager',
    '__version__'
]


def __getattr__(name):
    """Lazy import for heavy dependencies"""
    if name == 'RedshiftFactory':
        from redshift_etl.core.factory import RedshiftFactory
        return RedshiftFactory
    elif name == 'RedshiftConnectionManager':
        from redshift_etl.utils.redshift_connection import RedshiftConnectionManager
        return RedshiftConnectionManager
    elif name == 'ConfigManager':
        from redshift_etl.utils.config_manager import ConfigManager
        return ConfigManager
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
