"""
Configuration dataclass for LoadOrchestrator.
Separated to avoid import dependencies.
"""

from dataclasses import dataclass

from redshift_etl.models.sink_mode import SinkMode


@dataclass
class LoaderConfig:
    """
    Configuration for LoadOrchestrator.
    Provides sensible defaults while allowing full customization.
    """

    # Staging settings
    staging_path: str = '/tmp'
    keep_debug_data: bool = False

    # Load settings
    sink_mode: SinkMode = SinkMode.APPEND
    use_direct_insert: bool = False
    insert_batch_size: int = 1000

    # Post-load checks
    verify: bool = True

    # Intermediate table suffix for UPDATE merges
    merge_table_suffix: str = '_stage'
