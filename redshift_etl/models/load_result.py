"""
Load result dataclass.
Separated to avoid import dependencies.
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional


@dataclass
class LoadResult:
    """Data class for the outcome of one load operation."""
    table_name: str
    sink_mode: str
    state: str = 'STAGING'
    table_action: Optional[str] = None
    staged_location: Optional[str] = None
    rows_loaded: int = 0
    verified_row_count: Optional[int] = None
    statements_executed: int = 0
    duration: float = 0.0
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == 'DONE'

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)
