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
contds - Continuous Dynamical Systems

Wraps an in-place vector field ``eom(du, u)`` (and optional Jacobian) as an
initial value problem, integrates it with scipy.integrate or Julia's
DifferentialEquations.jl, and returns final states or fixed-step
trajectories.

>>> import numpy as np
>>> from contds import ContinuousDS, evolve, compute_trajectory
>>>
>>> def decay(du, u):
...     du[:] = -u
>>>
>>> ds = ContinuousDS(np.array([1.0]), decay, name="decay")
>>> evolve(ds, 1.0)
array([0.36787944])
>>> len(compute_trajectory(ds, 1.0, dt=0.05))
21
"""

from contds.errors import IntegrationError, InvalidArgumentError
from contds.systems.continuous_ds import ContinuousDS
from contds.systems.evolution import compute_trajectory, evolve, evolve_in_place, time_grid
from contds.systems.numerical_integration import (
    DEFAULT_SOLVER,
    ODEProblem,
    SolverConfig,
    build_problem,
    create_integrator,
    get_solution,
    resolve_solver,
)
from contds.types.trajectories import ODESolution, Trajectory

__version__ = "0.1.0"

__all__ = [
    "ContinuousDS",
    "DEFAULT_SOLVER",
    "IntegrationError",
    "InvalidArgumentError",
    "ODEProblem",
    "ODESolution",
    "SolverConfig",
    "Trajectory",
    "build_problem",
    "compute_trajectory",
    "create_integrator",
    "evolve",
    "evolve_in_place",
    "get_solution",
    "resolve_solver",
    "time_grid",
]
