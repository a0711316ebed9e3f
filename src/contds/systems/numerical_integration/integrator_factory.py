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
Integration Driver

Routes an ODEProblem to the engine that implements the chosen algorithm
and hands back either a finished solution or a live stepping handle.

Routing:
- scipy methods ('RK45', 'DOP853', 'Radau', 'BDF', 'LSODA', 'RK23') and
  OdeSolver subclasses go to scipy.integrate
- capitalised names that are not scipy methods ('Tsit5', 'Vern9'),
  composites ('AutoTsit5(Rosenbrock23())') and non-string algorithm
  objects go to Julia through diffeqpy

Examples
--------
>>> prob = build_problem(ds, 10.0)
>>> get_solution(prob, {"abstol": 1e-10})[-1]      # final state
>>> integ = create_integrator(prob, {"solver": "DOP853"})
>>> integ.advance(1.0).u
"""

import logging
from typing import Any, Dict

import numpy as np
from scipy.integrate import OdeSolver

from contds.errors import IntegrationError
from contds.systems.numerical_integration.ode_problem import ODEProblem
from contds.systems.numerical_integration.solver_config import (
    SCIPY_METHODS,
    ConfigLike,
    SolverChoice,
    normalize_options,
    resolve_solver,
)
from contds.types.trajectories import ODESolution

logger = logging.getLogger(__name__)


def is_julia_method(solver: SolverChoice) -> bool:
    """
    Check if solver names a Julia DifferentialEquations.jl algorithm.

    Julia methods are identified by:
    1. Capital first letter and not a scipy method (e.g., Tsit5, Vern9)
    2. Parentheses (e.g., AutoTsit5(Rosenbrock23()))
    3. Any non-string value that is not an OdeSolver subclass
    """
    if isinstance(solver, type) and issubclass(solver, OdeSolver):
        return False
    if not isinstance(solver, str):
        return True
    if not solver:
        return False
    if "(" in solver:
        return True
    return solver[0].isupper() and solver not in SCIPY_METHODS


def solve(problem: ODEProblem, solver: SolverChoice, **options) -> ODESolution:
    """
    One-shot solve of problem with the engine that owns solver.

    Errors raised by the engine propagate unchanged.
    """
    if is_julia_method(solver):
        from contds.systems.numerical_integration.diffeqpy_integrator import solve_julia

        logger.debug("Routing %r to DifferentialEquations.jl", solver)
        return solve_julia(problem, solver, **options)

    from contds.systems.numerical_integration.scipy_integrator import solve_scipy

    logger.debug("Routing %r to scipy.integrate", solver)
    return solve_scipy(problem, solver, **options)


def get_solution(problem: ODEProblem, config: ConfigLike = None) -> np.ndarray:
    """
    Solve problem and return the saved states.

    Parameters
    ----------
    problem : ODEProblem
        Problem to solve
    config : Mapping, SolverConfig or None
        Solver configuration; "solver" selects the algorithm
        (default: DEFAULT_SOLVER). Not modified.

    Returns
    -------
    np.ndarray
        Saved states (n, D) in solver order. Without saveat this is the
        initial and the final state.

    Raises
    ------
    IntegrationError
        If the engine did not reach the end of the interval
    """
    solver, options = resolve_solver(config)
    options = normalize_options(options)
    options.setdefault("save_everystep", False)

    sol = solve(problem, solver, **options)
    if not sol["success"]:
        raise IntegrationError(
            f"{sol['solver']} failed on '{problem.name or 'system'}': {sol['message']}",
            solver=sol["solver"],
            retcode=sol["retcode"],
        )
    return sol["u"]


def create_integrator(problem: ODEProblem, config: ConfigLike = None) -> Any:
    """
    Stepping handle for problem.

    The handle saves neither the first point nor every step
    (save_start=False, save_everystep=False), whatever config says.

    Returns
    -------
    ScipyODEIntegrator or Julia integrator
        See ScipyODEIntegrator for the scipy interface; Julia handles
        follow diffeqpy's integrator interface.
    """
    solver, options = resolve_solver(config)
    options: Dict[str, Any] = normalize_options(options)
    options["save_start"] = False
    options["save_everystep"] = False

    if is_julia_method(solver):
        from contds.systems.numerical_integration.diffeqpy_integrator import init_julia

        return init_julia(problem, solver, **options)

    from contds.systems.numerical_integration.scipy_integrator import ScipyODEIntegrator

    return ScipyODEIntegrator(problem, solver, **options)
