"""
Tests for progress trackers
"""

from unittest.mock import patch

from redshift_etl.core.progress import (
    LoggingProgressTracker,
    NoOpProgressTracker,
    ProgressPhase,
)
from redshift_etl.ui.progress_bars import TqdmProgressTracker


class TestNoOpProgressTracker:
    def test_stats_updated(self):
        tracker = NoOpProgressTracker()
        tracker.initialize(2)
        tracker.start_load('users', 'APPEND')
        tracker.update_phase(ProgressPhase.STAGING)
        tracker.update_progress(rows_staged=10)
        tracker.update_progress(rows_loaded=10)
        tracker.complete_load(success=False, error_message='boom')

        stats = tracker.stats
        assert stats.total_loads == 2
        assert stats.processed_loads == 1
        assert stats.staged_rows == 10
        assert stats.loaded_rows == 10
        assert stats.errors == 1
        assert stats.current_phase is ProgressPhase.STAGING
        assert stats.current_table is None
        assert stats.progress_percentage == 50.0


class TestLoggingProgressTracker:
    def test_logs_phases_and_failures(self):
        tracker = LoggingProgressTracker()
        with patch.object(tracker, 'logger') as logger:
            tracker.initialize(1)
            tracker.start_load('users', 'REPLACE')
            tracker.update_phase(ProgressPhase.DROP_RECREATE)
            tracker.complete_load(success=False, error_message='boom')
            tracker.close()

        messages = [call.args[0] for call in logger.info.call_args_list]
        assert "Loading table users [REPLACE]" in messages
        assert "  Phase: drop_recreate" in messages
        logger.error.assert_called_once_with("  Failed: users - boom")
        logger.warning.assert_called_once_with("Completed with 1 errors")

    def test_row_progress_throttled(self):
        tracker = LoggingProgressTracker(log_interval=3600)
        with patch.object(tracker, 'logger') as logger:
            tracker.update_progress(rows_staged=5)
            tracker.update_progress(rows_staged=5)

        assert logger.info.call_count == 1
        assert tracker.stats.staged_rows == 10


class TestTqdmProgressTracker:
    @patch('redshift_etl.ui.progress_bars.tqdm')
    def test_phase_bar_advances(self, mock_tqdm):
        bar = mock_tqdm.return_value
        bar.n = 0
        tracker = TqdmProgressTracker()

        tracker.initialize(1)
        tracker.start_load('users', 'APPEND')
        tracker.update_phase(ProgressPhase.STAGING)

        bar.update.assert_called_with(10)
        assert tracker.stats.current_phase is ProgressPhase.STAGING

    @patch('redshift_etl.ui.progress_bars.tqdm')
    def test_complete_closes_load_bars(self, mock_tqdm):
        tracker = TqdmProgressTracker()
        tracker.initialize(1)
        tracker.start_load('users')
        tracker.update_progress(rows_staged=3)

        tracker.complete_load()

        assert set(tracker.bars) == {'tables'}
        assert tracker.stats.processed_loads == 1
        tracker.close()
        assert tracker.bars == {}
