"""
Sink modes: how a load reconciles with a pre-existing target table.
"""

from enum import Enum


class SinkMode(Enum):
    """Policy for a target table that may already exist"""
    CREATE = "create"    # table must not exist
    REPLACE = "replace"  # drop and recreate if it exists
    APPEND = "append"    # table must exist, insert only
    UPDATE = "update"    # table must exist, merge on the distribution key

    @classmethod
    def parse(cls, value: str) -> 'SinkMode':
        """
        Parse a sink mode name, case-insensitively.

        Raises:
            ValueError: If the name is not a sink mode
        """
        try:
            return cls[value.strip().upper()]
        except KeyError:
            valid = ", ".join(m.name for m in cls)
            raise ValueError(f"Invalid sink mode '{value}'. Must be one of: {valid}")

    @property
    def requires_existing_table(self) -> bool:
        return self in (SinkMode.APPEND, SinkMode.UPDATE)
