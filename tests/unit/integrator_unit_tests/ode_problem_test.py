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
Unit tests for ODEProblem / build_problem
"""

import dataclasses
from fractions import Fraction

import numpy as np
import pytest

from contds import ContinuousDS
from contds.systems.numerical_integration.ode_problem import ODEProblem, build_problem


def decay(du, u):
    du[:] = -u


def linear_2d(du, u):
    du[0] = -2.0 * u[0] + u[1]
    du[1] = -u[1]


def linear_2d_jacobian(u):
    return [[-2.0, 1.0], [0.0, -1.0]]


class TestBuildProblem:
    """Test problem construction from a system"""

    def test_tspan_starts_at_zero(self):
        prob = build_problem(ContinuousDS([1.0], decay), 5.0)

        assert prob.tspan == (0.0, 5.0)
        assert prob.t0 == 0.0
        assert prob.tf == 5.0

    def test_exact_end_time_kept(self):
        prob = build_problem(ContinuousDS([1.0], decay), Fraction(1, 2))
        assert prob.tf == Fraction(1, 2)

    def test_initial_state_is_snapshot(self):
        ds = ContinuousDS([1.0, 2.0], linear_2d)
        prob = build_problem(ds, 1.0)

        assert prob.u0 is not ds.state
        ds.state = [5.0, 5.0]
        np.testing.assert_array_equal(prob.u0, [1.0, 2.0])

    def test_initial_state_is_read_only(self):
        prob = build_problem(ContinuousDS([1.0], decay), 1.0)
        with pytest.raises(ValueError):
            prob.u0[0] = 3.0

    def test_problem_is_frozen(self):
        prob = build_problem(ContinuousDS([1.0], decay), 1.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            prob.tspan = (0.0, 2.0)

    def test_dimension_and_name(self):
        prob = ODEProblem.from_system(ContinuousDS([1.0, 2.0], linear_2d, name="lin"), 1.0)
        assert prob.dimension == 2
        assert prob.name == "lin"

    def test_building_does_not_mutate_system(self):
        ds = ContinuousDS([1.0, 2.0], linear_2d)
        build_problem(ds, 1.0)
        np.testing.assert_array_equal(ds.state, [1.0, 2.0])


class TestVectorFieldWrappers:
    """Calling conventions exposed to the engines"""

    def test_out_of_place_wrapper(self):
        prob = build_problem(ContinuousDS([1.0, 2.0], linear_2d), 1.0)

        du = prob.f(0.0, np.array([1.0, 2.0]))

        np.testing.assert_array_equal(du, [0.0, -2.0])

    def test_out_of_place_wrapper_returns_fresh_buffer(self):
        prob = build_problem(ContinuousDS([1.0], decay), 1.0)

        a = prob.f(0.0, np.array([1.0]))
        b = prob.f(0.0, np.array([2.0]))

        assert a is not b
        np.testing.assert_array_equal(a, [-1.0])

    def test_in_place_wrapper(self):
        prob = build_problem(ContinuousDS([1.0, 2.0], linear_2d), 1.0)
        du = np.zeros(2)

        result = prob.f_inplace(du, np.array([1.0, 2.0]), 0.3)

        assert result is None
        np.testing.assert_array_equal(du, [0.0, -2.0])

    def test_no_jacobian(self):
        prob = build_problem(ContinuousDS([1.0], decay), 1.0)
        assert prob.jac is None
        assert not prob.has_jacobian

    def test_jacobian_wrapper(self):
        ds = ContinuousDS([1.0, 2.0], linear_2d, linear_2d_jacobian)
        prob = build_problem(ds, 1.0)

        J = prob.jac(0.0, np.array([1.0, 2.0]))

        assert prob.has_jacobian
        assert isinstance(J, np.ndarray)
        np.testing.assert_array_equal(J, [[-2.0, 1.0], [0.0, -1.0]])
