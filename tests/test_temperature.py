"""Tests for the move-selection temperature schedule."""

import pytest

from engine.temperature import effective_tau, move_number, moves_played


class TestPlyConversion:
    @pytest.mark.parametrize(("ply", "played", "number"), [(0, 0, 1), (1, 0, 1), (2, 1, 2), (3, 1, 2), (4, 2, 3)])
    def test_boundaries(self, ply: int, played: int, number: int) -> None:
        assert moves_played(ply) == played
        assert move_number(ply) == number


class TestEffectiveTau:
    def test_no_cutoff_no_decay(self) -> None:
        assert effective_tau(0, 1.0, 0, 0, 0, 0.0) == pytest.approx(1.0)
        assert effective_tau(2, 0.8, 0, 0, 0, 0.0) == pytest.approx(0.8)

    def test_cutoff_uses_move_number(self) -> None:
        assert effective_tau(0, 1.0, 2, 0, 0, 0.5) == pytest.approx(1.0)
        # Black's first move is still move 1.
        assert effective_tau(1, 1.0, 2, 0, 0, 0.5) == pytest.approx(1.0)
        assert effective_tau(2, 1.0, 2, 0, 0, 0.5) == pytest.approx(0.5)
        assert effective_tau(4, 1.0, 2, 0, 0, 0.5) == pytest.approx(0.5)

    def test_cutoff_applies_even_with_zero_temperature(self) -> None:
        assert effective_tau(10, 0.0, 3, 0, 0, 0.4) == pytest.approx(0.4)

    def test_decay_uses_moves_played(self) -> None:
        assert effective_tau(0, 1.0, 0, 0, 2, 0.0) == pytest.approx(1.0)
        assert effective_tau(1, 1.0, 0, 0, 2, 0.0) == pytest.approx(1.0)
        assert effective_tau(2, 1.0, 0, 0, 2, 0.0) == pytest.approx(0.5)
        assert effective_tau(4, 1.0, 0, 0, 2, 0.0) == pytest.approx(0.0)

    def test_decay_delay(self) -> None:
        assert effective_tau(0, 1.0, 0, 1, 2, 0.0) == pytest.approx(1.0)
        assert effective_tau(2, 1.0, 0, 1, 2, 0.0) == pytest.approx(1.0)
        assert effective_tau(4, 1.0, 0, 1, 2, 0.0) == pytest.approx(0.5)
        assert effective_tau(6, 1.0, 0, 1, 2, 0.0) == pytest.approx(0.0)

    def test_decay_never_below_endgame_temperature(self) -> None:
        assert effective_tau(4, 1.0, 0, 0, 2, 0.3) == pytest.approx(0.3)

    def test_endgame_floor_not_applied_without_decay(self) -> None:
        assert effective_tau(4, 0.1, 0, 0, 0, 0.3) == pytest.approx(0.1)

    def test_zero_temperature_stays_zero(self) -> None:
        assert effective_tau(4, 0.0, 0, 0, 2, 0.3) == pytest.approx(0.0)
