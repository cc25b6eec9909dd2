"""
Unit tests for streak and win-rate calculations
"""

import pytest

from app.services.stats import calculate_streaks, win_rate


class TestStreaks:
    """Statuses are ordered most recent first"""

    def test_mixed_history(self):
        summary = calculate_streaks(["won", "won", "lost", "won"])
        assert summary.current_streak.type == "win"
        assert summary.current_streak.count == 2
        assert summary.best_win_streak == 2
        assert summary.worst_loss_streak == 1

    def test_losing_run(self):
        summary = calculate_streaks(["lost", "lost", "won", "won", "won", "lost"])
        assert summary.current_streak.type == "loss"
        assert summary.current_streak.count == 2
        assert summary.best_win_streak == 3
        assert summary.worst_loss_streak == 2

    def test_no_history(self):
        summary = calculate_streaks([])
        assert summary.current_streak.type == "none"
        assert summary.current_streak.count == 0
        assert summary.best_win_streak == 0
        assert summary.worst_loss_streak == 0

    def test_single_win(self):
        summary = calculate_streaks(["won"])
        assert summary.current_streak.count == 1
        assert summary.best_win_streak == 1
        assert summary.worst_loss_streak == 0


class TestWinRate:

    @pytest.mark.parametrize("won, lost, expected", [
        (0, 0, 0),
        (1, 1, 50),
        (2, 1, 67),
        (1, 2, 33),
        (1, 7, 13),
        (5, 0, 100),
    ])
    def test_rounded_percentage(self, won, lost, expected):
        assert win_rate(won, lost) == expected
