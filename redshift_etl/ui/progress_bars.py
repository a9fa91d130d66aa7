"""
Visual progress tracking using tqdm
"""

import sys

from tqdm import tqdm

from redshift_etl.core.progress import ProgressTracker, ProgressPhase


# Position of each phase on the per-table bar, in percent
PHASE_PROGRESS = {
    ProgressPhase.STAGING: 10,
    ProgressPhase.TABLE_CHECK: 40,
    ProgressPhase.CREATE: 50,
    ProgressPhase.SKIP: 50,
    ProgressPhase.DROP_RECREATE: 50,
    ProgressPhase.LOADING: 60,
    ProgressPhase.VERIFY: 90,
    ProgressPhase.DONE: 100,
}


class TqdmProgressTracker(ProgressTracker):
    """
    Progress tracker using tqdm for visual progress bars
    One bar for tables, one per table for its phases, one for staged rows
    """

    def __init__(self, position: int = 0, leave: bool = True):
        """
        Initialize tqdm progress tracker

        Args:
            position: Starting position for progress bars
            leave: Whether to leave progress bars on screen after completion
        """
        super().__init__()
        self.position = position
        self.leave = leave
        self.bars = {}

    def initialize(self, total_loads: int, **kwargs):
        """Initialize progress bars"""
        self.stats.total_loads = total_loads

        self.bars['tables'] = tqdm(
            total=total_loads,
            desc="Tables",
            unit="table",
            position=self.position,
            leave=self.leave,
            file=sys.stderr
        )

    def start_load(self, table_name: str, sink_mode: str = None):
        """Start loading a table"""
        self.stats.current_table = table_name

        if 'tables' in self.bars:
            mode_str = f" [{sink_mode}]" if sink_mode else ""
            self.bars['tables'].set_postfix_str(f"Current: {table_name}{mode_str}")

        for name in ('phase', 'rows'):
            if name in self.bars:
                self.bars.pop(name).close()

        self.bars['phase'] = tqdm(
            total=100,
            desc="Load Progress",
            unit="%",
            position=self.position + 1,
            leave=False,
            file=sys.stderr
        )
        self.bars['rows'] = tqdm(
            desc="Staged",
            unit="rows",
            unit_scale=True,
            position=self.position + 2,
            leave=False,
            file=sys.stderr
        )

    def update_phase(self, phase: ProgressPhase, **kwargs):
        """Update current processing phase"""
        self.stats.current_phase = phase

        if 'phase' in self.bars:
            self.bars['phase'].set_description(phase.value.replace('_', ' ').title())

            target = PHASE_PROGRESS.get(phase)
            current = self.bars['phase'].n
            if target is not None and target > current:
                self.bars['phase'].update(target - current)

    def update_progress(self, rows_staged: int = 0, rows_loaded: int = 0, **kwargs):
        """Update row counters"""
        self.stats.staged_rows += rows_staged
        self.stats.loaded_rows += rows_loaded

        if 'rows' in self.bars and rows_staged > 0:
            self.bars['rows'].update(rows_staged)

    def complete_load(self, success: bool = True, error_message: str = None):
        """Mark current load as complete"""
        self.stats.processed_loads += 1

        if not success:
            self.stats.errors += 1
            if 'tables' in self.bars:
                self.bars['tables'].set_postfix_str(f"Error: {error_message}")

        if 'tables' in self.bars:
            self.bars['tables'].update(1)

        for name in ('phase', 'rows'):
            if name in self.bars:
                self.bars.pop(name).close()

        self.stats.current_table = None

    def close(self):
        """Close all progress bars"""
        for bar in self.bars.values():
            bar.close()
        self.bars.clear()
