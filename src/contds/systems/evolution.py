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
Evolution of Continuous Systems

- evolve(): state after time T, system untouched
- evolve_in_place(): same, then overwrite the system state
- compute_trajectory(): states sampled every dt on [0, T]

Each call builds its own ODEProblem from a snapshot of the state, so
only evolve_in_place writes to the system. Nothing here locks: callers
sharing one ContinuousDS across threads must serialise access.

Examples
--------
>>> def decay(du, u):
...     du[:] = -u
>>> ds = ContinuousDS([1.0], decay)
>>> evolve(ds, 1.0)
array([0.36787944])
>>> compute_trajectory(ds, 1.0, dt=0.5).x
array([[1.        ],
       [0.60653066],
       [0.36787944]])
"""

import logging
import math

import numpy as np

from contds.errors import InvalidArgumentError
from contds.systems.continuous_ds import ContinuousDS
from contds.systems.numerical_integration.integrator_factory import get_solution
from contds.systems.numerical_integration.ode_problem import build_problem
from contds.systems.numerical_integration.solver_config import ConfigLike, SolverConfig
from contds.types.core import ScalarLike, StateVector
from contds.types.trajectories import TimePoints, Trajectory

logger = logging.getLogger(__name__)

# Relative slack when counting grid points, so that 1.0 / 0.05 gives 20
GRID_RTOL = 1e-9


def evolve(ds: ContinuousDS, T: ScalarLike = 1.0, config: ConfigLike = None) -> StateVector:
    """
    Evolve ds for time T and return the final state.

    Parameters
    ----------
    ds : ContinuousDS
        System to evolve. Not modified.
    T : float
        Time span (default: 1.0)
    config : Mapping, SolverConfig or None
        Solver configuration, e.g. {"solver": "DOP853", "abstol": 1e-12}

    Returns
    -------
    StateVector
        State at time T
    """
    prob = build_problem(ds, T)
    return get_solution(prob, config)[-1]


def evolve_in_place(
    ds: ContinuousDS, T: ScalarLike = 1.0, config: ConfigLike = None
) -> StateVector:
    """
    Evolve ds for time T, store the result as its state and return it.
    """
    ds.state = evolve(ds, T, config)
    return ds.state


def time_grid(T: float, dt: float) -> TimePoints:
    """
    Uniform grid 0, dt, 2dt, ... not exceeding T.

    Has floor(T/dt) + 1 points. T itself is the last point only when it is
    a multiple of dt (up to GRID_RTOL).

    Examples
    --------
    >>> time_grid(1.0, 0.5)
    array([0. , 0.5, 1. ])
    >>> time_grid(1.0, 0.3)
    array([0. , 0.3, 0.6, 0.9])
    """
    n = int(math.floor(T / dt * (1.0 + GRID_RTOL)))
    grid = dt * np.arange(n + 1, dtype=np.float64)
    return np.minimum(grid, T)


def compute_trajectory(
    ds: ContinuousDS,
    T: ScalarLike,
    dt: ScalarLike = 0.05,
    config: ConfigLike = None,
) -> Trajectory:
    """
    Sample the evolution of ds every dt over [0, T].

    Parameters
    ----------
    ds : ContinuousDS
        System to evolve. Not modified.
    T : float
        Total time, must be positive. Exact values (int, Fraction) are
        converted to float.
    dt : float
        Sampling interval (default: 0.05)
    config : Mapping, SolverConfig or None
        Solver configuration. Any saveat in it is replaced by the grid.

    Returns
    -------
    Trajectory
        floor(T/dt) + 1 rows, the first one being the current state

    Raises
    ------
    InvalidArgumentError
        If T <= 0 or dt <= 0. Raised before any solver call.
    """
    T = float(T)
    dt = float(dt)
    if not T > 0:
        raise InvalidArgumentError(f"total time must be positive, got T={T}")
    if not dt > 0:
        raise InvalidArgumentError(f"time step must be positive, got dt={dt}")

    t = time_grid(T, dt)
    prob = build_problem(ds, T)
    if not isinstance(config, SolverConfig):
        config = SolverConfig.from_mapping(config)
    config = config.with_options(saveat=t)

    # Drop any scipy spelling of the save times so saveat stays the only one
    options = {key: value for key, value in config.options.items() if key != "t_eval"}
    logger.debug("Sampling '%s' at %d points with dt=%g", ds.name, len(t), dt)

    data = get_solution(prob, SolverConfig(config.solver, options))
    return Trajectory(data, t)
