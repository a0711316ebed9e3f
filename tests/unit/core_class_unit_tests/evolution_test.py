# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


"""
Unit tests for the evolution API (evolve, evolve_in_place,
compute_trajectory)

Tests cover:
1. Zero time span
2. Composition of in-place evolutions
3. Trajectory grid length and first row
4. Argument validation before any solve
5. End-to-end scenarios on du/dt = -u
6. Configuration handling
"""

import math
from fractions import Fraction
from unittest.mock import patch

import numpy as np
import pytest

from contds import (
    ContinuousDS,
    InvalidArgumentError,
    SolverConfig,
    Trajectory,
    compute_trajectory,
    evolve,
    evolve_in_place,
    time_grid,
)

TIGHT = {"abstol": 1e-12, "reltol": 1e-10}


# ============================================================================
# Mock Systems
# ============================================================================


def decay(du, u):
    """du/dt = -u"""
    du[:] = -u


def harmonic(du, u):
    du[0] = u[1]
    du[1] = -u[0]


def lorenz(du, u, sigma=10.0, rho=28.0, beta=8.0 / 3.0):
    du[0] = sigma * (u[1] - u[0])
    du[1] = u[0] * (rho - u[2]) - u[1]
    du[2] = u[0] * u[1] - beta * u[2]


@pytest.fixture
def decay_system():
    return ContinuousDS(np.array([1.0]), decay, name="decay")


@pytest.fixture
def oscillator():
    return ContinuousDS(np.array([1.0, 0.0]), harmonic, name="oscillator")


# ============================================================================
# Test Class 1: evolve / evolve_in_place
# ============================================================================


class TestEvolve:
    """Test evolve and evolve_in_place"""

    def test_zero_time_returns_initial_state(self, oscillator):
        np.testing.assert_allclose(evolve(oscillator, 0.0), [1.0, 0.0])

    def test_evolve_does_not_mutate(self, oscillator):
        evolve(oscillator, 2.0)
        np.testing.assert_array_equal(oscillator.state, [1.0, 0.0])

    def test_evolve_returns_fresh_array(self, oscillator):
        result = evolve(oscillator, 0.5)
        assert result is not oscillator.state

    def test_default_time_is_one(self, decay_system):
        np.testing.assert_allclose(
            evolve(decay_system, config=TIGHT), evolve(decay_system, 1.0, TIGHT)
        )

    def test_oscillator_analytical(self, oscillator):
        result = evolve(oscillator, math.pi / 2, TIGHT)
        np.testing.assert_allclose(result, [0.0, -1.0], atol=1e-8)

    def test_empty_saveat_returns_final_state(self, decay_system):
        result = evolve(decay_system, 1.0, {"saveat": [], **TIGHT})
        np.testing.assert_allclose(result, [np.exp(-1.0)], atol=1e-8)

    def test_evolve_in_place_mutates_and_returns(self, decay_system):
        result = evolve_in_place(decay_system, 1.0, TIGHT)

        np.testing.assert_allclose(decay_system.state, [np.exp(-1.0)], atol=1e-8)
        np.testing.assert_array_equal(result, decay_system.state)

    def test_in_place_composition(self, oscillator):
        """Evolving by T1 then T2 matches a single evolution by T1 + T2"""
        single = evolve(oscillator, 1.7, TIGHT)

        evolve_in_place(oscillator, 0.5, TIGHT)
        evolve_in_place(oscillator, 1.2, TIGHT)

        np.testing.assert_allclose(oscillator.state, single, atol=1e-8)

    def test_in_place_keeps_dimension(self):
        ds = ContinuousDS([1.0, 1.0, 1.0], lorenz)
        evolve_in_place(ds, 0.1)
        assert ds.dimension == 3


# ============================================================================
# Test Class 2: compute_trajectory
# ============================================================================


class TestTrajectory:
    """Test compute_trajectory"""

    @pytest.mark.parametrize(
        "T, dt, expected",
        [
            (1.0, 0.05, 21),
            (1.0, 0.5, 3),
            (2.0, 0.5, 5),
            (1.0, 0.3, 4),
            (0.3, 0.1, 4),
            (1.0, 2.0, 1),
        ],
    )
    def test_length(self, decay_system, T, dt, expected):
        assert expected == math.floor(T / dt + 1e-9) + 1
        assert len(compute_trajectory(decay_system, T, dt)) == expected

    def test_first_row_is_initial_state(self, oscillator):
        traj = compute_trajectory(oscillator, 3.0, 0.1)
        np.testing.assert_allclose(traj[0], [1.0, 0.0])

    def test_returns_trajectory(self, oscillator):
        traj = compute_trajectory(oscillator, 1.0, 0.25)

        assert isinstance(traj, Trajectory)
        assert traj.shape == (5, 2)
        np.testing.assert_allclose(traj.t, [0.0, 0.25, 0.5, 0.75, 1.0])

    def test_does_not_mutate(self, oscillator):
        compute_trajectory(oscillator, 1.0, 0.1)
        np.testing.assert_array_equal(oscillator.state, [1.0, 0.0])

    def test_default_dt(self, decay_system):
        assert len(compute_trajectory(decay_system, 1.0)) == 21

    def test_endpoint_off_grid_excluded(self, decay_system):
        traj = compute_trajectory(decay_system, 1.0, 0.3, TIGHT)

        assert traj.t[-1] == pytest.approx(0.9)
        np.testing.assert_allclose(traj.column(0), np.exp(-traj.t), atol=1e-8)

    def test_integer_time_coerced(self, decay_system):
        traj = compute_trajectory(decay_system, 1, 0.5)

        assert traj.t.dtype == np.float64
        assert len(traj) == 3

    def test_fraction_time_coerced(self, decay_system):
        assert len(compute_trajectory(decay_system, Fraction(1, 2), 0.25)) == 3

    @pytest.mark.parametrize("T", [0.0, -1.0, 0, float("nan")])
    def test_non_positive_time_raises_before_solving(self, decay_system, T):
        with patch("contds.systems.evolution.get_solution") as mock_solution:
            with pytest.raises(InvalidArgumentError, match="total time must be positive"):
                compute_trajectory(decay_system, T, 0.1)

        mock_solution.assert_not_called()

    @pytest.mark.parametrize("dt", [0.0, -0.1])
    def test_non_positive_step_raises(self, decay_system, dt):
        with pytest.raises(InvalidArgumentError, match="time step must be positive"):
            compute_trajectory(decay_system, 1.0, dt)

    def test_saveat_overridden(self, decay_system):
        traj = compute_trajectory(decay_system, 1.0, 0.5, config={"saveat": [0.1, 0.2]})
        np.testing.assert_allclose(traj.t, [0.0, 0.5, 1.0])
        assert len(traj) == 3

    def test_scipy_t_eval_overridden(self, decay_system):
        traj = compute_trajectory(decay_system, 1.0, 0.5, config={"t_eval": [0.1]})
        assert len(traj) == 3

    def test_config_not_mutated(self, decay_system):
        config = {"solver": "DOP853", "abstol": 1e-10}
        compute_trajectory(decay_system, 1.0, 0.5, config)
        assert config == {"solver": "DOP853", "abstol": 1e-10}

    def test_solver_config_accepted(self, decay_system):
        traj = compute_trajectory(decay_system, 1.0, 0.5, SolverConfig("Radau", TIGHT))
        np.testing.assert_allclose(traj.column(0), np.exp(-traj.t), atol=1e-6)

    def test_tstops_pass_through(self, decay_system):
        traj = compute_trajectory(decay_system, 1.0, 0.25, {"tstops": [0.6], **TIGHT})
        np.testing.assert_allclose(traj.column(0), np.exp(-traj.t), atol=1e-8)


# ============================================================================
# Test Class 3: End-to-End Scenarios
# ============================================================================


class TestLinearDecayScenarios:
    """du/dt = -u from u(0) = 1"""

    def test_evolve_one_time_unit(self, decay_system):
        np.testing.assert_allclose(evolve(decay_system, 1.0, TIGHT), [0.36787944], atol=1e-6)

    def test_evolve_default_tolerances(self, decay_system):
        np.testing.assert_allclose(evolve(decay_system, 1.0), [np.exp(-1.0)], atol=1e-6)

    def test_trajectory_three_rows(self, decay_system):
        traj = compute_trajectory(decay_system, 1.0, dt=0.5, config=TIGHT)

        assert len(traj) == 3
        np.testing.assert_allclose(traj.t, [0.0, 0.5, 1.0])
        np.testing.assert_allclose(traj.x, [[1.0], [0.6065307], [0.3678794]], atol=1e-6)


# ============================================================================
# Test Class 4: time_grid
# ============================================================================


class TestTimeGrid:
    def test_inclusive_grid(self):
        np.testing.assert_allclose(time_grid(1.0, 0.25), [0.0, 0.25, 0.5, 0.75, 1.0])

    def test_never_exceeds_end(self):
        for T, dt in [(1.0, 0.05), (0.3, 0.1), (0.7, 0.1), (10.0, 0.01)]:
            grid = time_grid(T, dt)
            assert grid[-1] <= T
            assert grid[-1] == pytest.approx(T)

    def test_last_point_exactly_end_when_on_grid(self):
        assert time_grid(0.3, 0.1)[-1] == 0.3
